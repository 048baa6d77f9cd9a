"""
Create the application tables.

Creates PropertyTime on the configured database. The staff directory is a
view owned upstream and is only created (as a plain table) with
--with-directory, for local SQLite demos.

Usage:
    python scripts/init_db.py
    python scripts/init_db.py --db-url sqlite:///propertytime.db --with-directory
"""

import argparse
import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from propertytime.common.config_loader import load_settings
from propertytime.common.engine import create_engine_from_config, create_engine_from_url
from propertytime.web.models import create_tables


def run(db_url=None, with_directory=False):
    """Create tables and report what was created."""
    settings = load_settings()
    if db_url:
        engine = create_engine_from_url(db_url, settings.database)
    else:
        engine = create_engine_from_config(settings.database)

    print("=" * 60)
    print(f"Initializing database ({engine.url.get_backend_name()})")
    print("=" * 60)

    created = create_tables(engine, include_views=with_directory)
    for name in created:
        print(f"  [{name}] OK")

    print()
    print("Done.")
    engine.dispose()


if __name__ == '__main__':
    parser = argparse.ArgumentParser(description='Create application tables')
    parser.add_argument('--db-url', help='Database URL (defaults to config/database.yaml)')
    parser.add_argument('--with-directory', action='store_true',
                        help='Also create the staff directory as a table (local demos only)')
    args = parser.parse_args()
    run(args.db_url, args.with_directory)
