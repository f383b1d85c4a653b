"""
database/init_db.py

Creates every table of the ORM metadata on the configured database.
Schema changes after the first deploy go through Alembic.

Usage:
    python -m reportsonic.database.init_db
"""

import sys

from sqlalchemy.exc import SQLAlchemyError

from reportsonic.database import models  # noqa: F401  (registers tables on Base.metadata)
from reportsonic.database.base import Base
from reportsonic.database.hints import explain_db_error
from reportsonic.database.sync import get_sync_engine


def main() -> int:
    engine = get_sync_engine()
    print(f"🔍 Using database: {engine.url.render_as_string(hide_password=True)}")
    try:
        Base.metadata.create_all(engine)
    except SQLAlchemyError as e:
        print(f"❌ Table creation failed: {e}")
        hint = explain_db_error(e)
        if hint:
            print(f"💡 {hint}")
        return 1
    finally:
        engine.dispose()

    for table in Base.metadata.sorted_tables:
        print(f"✅ {table.name}")
    print("🎉 Database initialized.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
