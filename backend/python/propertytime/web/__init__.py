"""Web layer: Flask app, routes, auth and services."""
