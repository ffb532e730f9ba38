#!/usr/bin/env python3
""" Create the Stitch tables. Usage: init_db.py [DATABASE_URL] """
import sys
from pathlib import Path

# Add the parent directory to the Python path
sys.path.append(str(Path(__file__).parent.parent))

from sqlalchemy import inspect  # noqa: E402

from app.db import base as db_base  # noqa: E402

if __name__ == "__main__":
    if len(sys.argv) > 1:
        db_base.reconfigure(sys.argv[1])
    print(f"Initializing database at {db_base.engine.url!r}...")
    db_base.init_db()
    tables = sorted(inspect(db_base.engine).get_table_names())
    print(f"Tables ready: {', '.join(tables)}")
    db_base.engine.dispose()
