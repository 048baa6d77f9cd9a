"""Route blueprints for the Flask app."""
from .api import api_bp
from .admin import admin_bp
