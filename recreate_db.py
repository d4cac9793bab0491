"""
Script to recreate the local SQLite database from the models.
Production databases are managed with `alembic upgrade head`.
"""
import os
import sys
from sqlalchemy import inspect
from portal.config import settings
from portal.database import Base, engine
from portal.models import *  # noqa: F401,F403

if not settings.DATABASE_URL.startswith("sqlite:///"):
    print("[ERROR] recreate_db.py only handles SQLite databases. Use alembic for anything else.")
    sys.exit(1)

db_file = settings.DATABASE_URL[len("sqlite:///"):]
if os.path.exists(db_file):
    try:
        os.remove(db_file)
        print(f"Deleted existing {db_file}")
    except OSError as e:
        print(f"Could not delete {db_file}: {e}")
        print("Please stop the server and try again")
        sys.exit(1)

print("Creating database tables...")
Base.metadata.create_all(bind=engine)
print("Database created successfully!")

tables = inspect(engine).get_table_names()
print(f"Created tables: {', '.join(tables)}")
