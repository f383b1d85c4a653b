"""
reportsonic/database/enums.py

Enumerations

Defines enumerations used across the platform:
- UserRole: Roles assigned to users
- AuthProvider: How an account signs in
- SubscriptionPlan / SubscriptionStatus: Billing tier and its state
- UsageAction: Kinds of usage log entries
"""

from enum import Enum

# ---------------------------------------------------
# User Role Enumeration
# ---------------------------------------------------


class UserRole(str, Enum):
    """
    Enum representing user roles for access control.

    Values:
    - user
    - admin
    - superadmin
    """

    USER = "user"
    ADMIN = "admin"
    SUPERADMIN = "superadmin"


class AuthProvider(str, Enum):
    CREDENTIALS = "credentials"
    GOOGLE = "google"


# ---------------------------------------------------
# Subscription Enumerations
# ---------------------------------------------------


class SubscriptionPlan(str, Enum):
    """
    Enum representing the subscription tier that gates usage quotas.

    Values:
    - free
    - starter
    - professional
    """

    FREE = "free"
    STARTER = "starter"
    PROFESSIONAL = "professional"


class SubscriptionStatus(str, Enum):
    ACTIVE = "active"
    CANCELED = "canceled"
    PAST_DUE = "past_due"


class UsageAction(str, Enum):
    REPORT_GENERATED = "report_generated"
    CELLS_USED = "cells_used"
    LIMIT_REACHED = "limit_reached"
