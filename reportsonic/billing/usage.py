"""
reportsonic/billing/usage.py

Per-user quota enforcement on top of the static plan tables:
- Monthly counter reset once a calendar month has passed
- Limit check raising 429 with an upgrade prompt
- Usage counters and usage log entries after a report is generated
"""

import logging
from datetime import datetime, timezone
from typing import Any

from fastapi import status
from sqlalchemy.ext.asyncio import AsyncSession

from reportsonic.billing.pricing import check_limits, get_upgrade_prompt
from reportsonic.core.exceptions import APIError
from reportsonic.database.enums import UsageAction
from reportsonic.database.models import UsageLog, User

logger = logging.getLogger(__name__)


def _as_utc(value: datetime) -> datetime:
    # MySQL DATETIME columns come back naive
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def months_between(start: datetime, end: datetime) -> int:
    """Calendar months from start to end, ignoring the day of month."""
    start, end = _as_utc(start), _as_utc(end)
    return (end.year - start.year) * 12 + (end.month - start.month)


async def reset_monthly_usage_if_needed(
    user: User, db: AsyncSession, now: datetime | None = None
) -> bool:
    """
    Zeroes the monthly counters when at least one calendar month passed since
    `last_reset_date`. Returns True when a reset happened.
    """
    now = now or datetime.now(timezone.utc)
    if not user.last_reset_date or months_between(user.last_reset_date, now) < 1:
        return False

    user.monthly_cells_used = 0
    user.monthly_reports_used = 0
    user.last_reset_date = now
    await db.commit()
    await db.refresh(user)
    logger.info(f"[BILLING] Monthly usage reset for user {user.id}")
    return True


async def log_usage(
    user: User,
    action: UsageAction,
    db: AsyncSession,
    cells_used: int = 0,
    reports_used: int = 0,
    report_id: int | None = None,
    details: dict[str, Any] | None = None,
) -> UsageLog:
    entry = UsageLog(
        user_id=user.id,
        report_id=report_id,
        action_type=action,
        cells_used=cells_used,
        reports_used=reports_used,
        details=details,
    )
    db.add(entry)
    await db.commit()
    return entry


async def log_limit_reached(
    user: User, cells_required: int, errors: list[str], db: AsyncSession
) -> None:
    try:
        await log_usage(
            user,
            UsageAction.LIMIT_REACHED,
            db,
            cells_used=cells_required,
            details={"errors": errors},
        )
    except Exception as e:
        logger.error(f"[BILLING] Failed to log limit event for user {user.id}: {e}")


async def check_user_limits(user: User, data: Any, db: AsyncSession) -> int:
    """
    Verifies the user can generate a report from `data`.

    Returns:
        int: The number of cells the report will consume.

    Raises:
        APIError 429: "Usage limit exceeded" with message, upgradePrompt,
        limitExceeded and cellsUsed fields.
    """
    await reset_monthly_usage_if_needed(user, db)

    result = check_limits(
        user.subscription_plan,
        user.monthly_cells_used or 0,
        user.monthly_reports_used or 0,
        data,
    )
    if result.allowed:
        return result.cells_required

    logger.info(f"[BILLING] Limit exceeded for user {user.id}: {result.errors}")
    await log_limit_reached(user, result.cells_required, result.errors, db)
    raise APIError(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        message="Usage limit exceeded",
        extra={
            "message": " ".join(result.errors),
            "upgradePrompt": get_upgrade_prompt(user.subscription_plan),
            "limitExceeded": True,
            "cellsUsed": result.cells_required,
        },
    )


async def increment_user_usage(
    user: User,
    cells_used: int,
    db: AsyncSession,
    report_id: int | None = None,
    details: dict[str, Any] | None = None,
) -> None:
    """Counts one report and its cells against the user and records a usage log."""
    user.monthly_cells_used = (user.monthly_cells_used or 0) + cells_used
    user.monthly_reports_used = (user.monthly_reports_used or 0) + 1
    user.total_cells_used = (user.total_cells_used or 0) + cells_used
    await log_usage(
        user,
        UsageAction.REPORT_GENERATED,
        db,
        cells_used=cells_used,
        reports_used=1,
        report_id=report_id,
        details={"timestamp": datetime.now(timezone.utc).isoformat(), **(details or {})},
    )
    logger.info(f"[BILLING] Usage recorded for user {user.id}: +{cells_used} cells, +1 report")
