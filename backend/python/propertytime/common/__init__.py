"""Shared configuration and database plumbing."""
