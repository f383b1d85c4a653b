"""
database/seed.py

Creates the superadmin account when none exists. Credentials default to the
SUPERADMIN_* settings and can be overridden on the command line.

Usage:
    python -m reportsonic.database.seed [--email E] [--name N] [--password P]
"""

import argparse
import sys

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from reportsonic.core.config import settings
from reportsonic.core.security import get_password_hash
from reportsonic.core.validators import normalize_email
from reportsonic.database.enums import (
    AuthProvider,
    SubscriptionPlan,
    SubscriptionStatus,
    UserRole,
)
from reportsonic.database.hints import explain_db_error
from reportsonic.database.models import User
from reportsonic.database.sync import get_sync_engine


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Create the ReportSonic superadmin account.")
    parser.add_argument("--email", default=str(settings.SUPERADMIN_EMAIL))
    parser.add_argument("--name", default=settings.SUPERADMIN_NAME)
    parser.add_argument("--password", default=settings.SUPERADMIN_PASSWORD)
    return parser


def create_superadmin(db: Session, email: str, name: str, password: str) -> User | None:
    """Returns the new account, or None when a superadmin already exists."""
    existing = db.execute(select(User).filter(User.role == UserRole.SUPERADMIN)).scalars().all()
    if existing:
        print("⚠️  Superadmin already exists:")
        for admin in existing:
            print(f"   - ID: {admin.id}, Email: {admin.email}")
        return None

    user = User(
        email=normalize_email(email),
        name=name,
        password=get_password_hash(password),
        provider=AuthProvider.CREDENTIALS,
        role=UserRole.SUPERADMIN,
        subscription_plan=SubscriptionPlan.PROFESSIONAL,
        subscription_status=SubscriptionStatus.ACTIVE,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    engine = get_sync_engine()
    try:
        with Session(bind=engine) as db:
            user = create_superadmin(db, args.email, args.name, args.password)
    except SQLAlchemyError as e:
        print(f"❌ Error creating superadmin: {e}")
        hint = explain_db_error(e)
        if hint:
            print(f"💡 {hint}")
        return 1
    finally:
        engine.dispose()

    if user:
        print("✅ Superadmin created successfully!")
        print(f"   User ID: {user.id}")
        print(f"   Email: {user.email}")
        print("🔗 Admin API: /api/admin/users")
    return 0


if __name__ == "__main__":
    sys.exit(main())
