"""Declarative base shared by the web models."""

from sqlalchemy.orm import declarative_base

Base = declarative_base()
