"""
database/purge.py

Deletes every usage log, report and user. Asks for confirmation unless
--yes is given.

Usage:
    python -m reportsonic.database.purge [--yes]
"""

import argparse
import sys

from sqlalchemy import delete
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from reportsonic.database.hints import explain_db_error
from reportsonic.database.models import Report, UsageLog, User
from reportsonic.database.sync import get_sync_engine

# Children first so the purge does not rely on ON DELETE CASCADE
PURGE_ORDER = (UsageLog, Report, User)


def purge_all(db: Session) -> dict[str, int]:
    counts: dict[str, int] = {}
    for model in PURGE_ORDER:
        result = db.execute(delete(model))
        counts[model.__tablename__] = result.rowcount or 0
    db.commit()
    return counts


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Delete all ReportSonic users, reports and usage logs.")
    parser.add_argument("--yes", action="store_true", help="Skip the confirmation prompt")
    args = parser.parse_args(argv)

    if not args.yes:
        answer = input("⚠️  This deletes ALL users, reports and usage logs. Type 'yes' to continue: ")
        if answer.strip().lower() != "yes":
            print("Aborted.")
            return 1

    engine = get_sync_engine()
    try:
        with Session(bind=engine) as db:
            counts = purge_all(db)
    except SQLAlchemyError as e:
        print(f"❌ Purge failed: {e}")
        hint = explain_db_error(e)
        if hint:
            print(f"💡 {hint}")
        return 1
    finally:
        engine.dispose()

    for table, count in counts.items():
        print(f"🧹 {table}: {count} rows deleted")
    print("✅ Database purged.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
