"""
database/hints.py

Turns common database driver failures into actionable hints for the
operator scripts.
"""

HINTS: list[tuple[tuple[str, ...], str]] = [
    (("1062", "Duplicate entry"), "A row with the same unique value (usually the email) already exists."),
    (("1045", "Access denied"), "Database access denied. Check the credentials in DATABASE_URL."),
    (("1146", "doesn't exist"), "Database tables not found. Run `python -m reportsonic.database.init_db` or `alembic upgrade head` first."),
    (("1049", "Unknown database"), "The database named in DATABASE_URL does not exist. Create it first."),
    (("2003", "Can't connect", "Connection refused"), "Cannot reach the database server. Is it running and is the host/port in DATABASE_URL correct?"),
]


def explain_db_error(error: BaseException) -> str | None:
    """Returns a hint for a recognised driver error, else None."""
    message = str(error)
    for markers, hint in HINTS:
        if any(marker in message for marker in markers):
            return hint
    return None
