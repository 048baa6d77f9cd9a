"""
WSGI entry point for Gunicorn.
Run with: gunicorn --workers 2 --threads 8 --bind 127.0.0.1:5000 wsgi:app
"""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent))

from propertytime.common.config_loader import load_settings
from propertytime.web.app import create_app

# Settings are read once per worker process
settings = load_settings()

# Create the application
app = create_app(settings)

if __name__ == '__main__':
    app.run(host=settings.app.host, port=settings.app.port)
