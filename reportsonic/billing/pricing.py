"""
reportsonic/billing/pricing.py

Static plan tables and the pure quota arithmetic built on them:
- Cell counting for uploaded datasets
- Limit checks (reports per month, cells per report, monthly cell quota)
- Usage statistics, overage charges and upgrade prompts
"""

import math
from dataclasses import dataclass, field
from typing import Any

from reportsonic.database.enums import SubscriptionPlan


@dataclass(frozen=True)
class PlanLimits:
    name: str
    reports_per_month: int
    cells_per_month: int
    max_cells_per_report: int
    export_formats: tuple[str, ...]
    white_label: bool
    price: float
    overage_rate: float | None = None  # dollars per OVERAGE_BLOCK_CELLS cells

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "reportsPerMonth": self.reports_per_month,
            "cellsPerMonth": self.cells_per_month,
            "maxCellsPerReport": self.max_cells_per_report,
            "exportFormats": list(self.export_formats),
            "whiteLabel": self.white_label,
            "price": self.price,
            "overageRate": self.overage_rate,
        }


OVERAGE_BLOCK_CELLS = 10_000

PRICING_PLANS: dict[SubscriptionPlan, PlanLimits] = {
    SubscriptionPlan.FREE: PlanLimits(
        name="Free",
        reports_per_month=5,
        cells_per_month=100_000,
        max_cells_per_report=10_000,
        export_formats=("pdf",),
        white_label=False,
        price=0,
    ),
    SubscriptionPlan.STARTER: PlanLimits(
        name="Starter",
        reports_per_month=25,
        cells_per_month=500_000,
        max_cells_per_report=50_000,
        export_formats=("pdf", "docx", "xlsx"),
        white_label=False,
        price=9,
    ),
    SubscriptionPlan.PROFESSIONAL: PlanLimits(
        name="Professional",
        reports_per_month=100,
        cells_per_month=2_000_000,
        max_cells_per_report=200_000,
        export_formats=("pdf", "docx", "xlsx"),
        white_label=True,
        price=29,
        overage_rate=0.10,
    ),
}

UPGRADE_PROMPTS: dict[SubscriptionPlan, str] = {
    SubscriptionPlan.FREE: "Upgrade to Starter ($9/month) for 25 reports and 500K cells monthly!",
    SubscriptionPlan.STARTER: "Upgrade to Professional ($29/month) for 100 reports and 2M cells monthly!",
    SubscriptionPlan.PROFESSIONAL: "You're on our highest plan! Contact support for enterprise options.",
}


@dataclass
class LimitCheck:
    allowed: bool
    cells_required: int
    errors: list[str] = field(default_factory=list)


@dataclass
class UsageStats:
    cells_used: int
    cells_remaining: int
    cells_percentage: float
    reports_used: int
    reports_remaining: int
    reports_percentage: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "cellsUsed": self.cells_used,
            "cellsRemaining": self.cells_remaining,
            "cellsPercentage": self.cells_percentage,
            "reportsUsed": self.reports_used,
            "reportsRemaining": self.reports_remaining,
            "reportsPercentage": self.reports_percentage,
        }


def _as_plan(plan: SubscriptionPlan | str | None) -> SubscriptionPlan:
    try:
        return SubscriptionPlan(plan) if plan else SubscriptionPlan.FREE
    except ValueError:
        return SubscriptionPlan.FREE


def get_pricing_limits(plan: SubscriptionPlan | str | None) -> PlanLimits:
    """Unknown or missing plans fall back to the free tier."""
    return PRICING_PLANS[_as_plan(plan)]


def calculate_cells(data: Any) -> int:
    """
    Cells of a dataset: rows times the columns of the first record.
    Accepts a list of dicts (records) or a list of lists (rows); any other
    first element has no columns.
    """
    if not isinstance(data, list) or not data:
        return 0
    first = data[0]
    if isinstance(first, dict):
        columns = len(first.keys())
    elif isinstance(first, (list, tuple)):
        columns = len(first)
    else:
        columns = 0
    return len(data) * columns


def check_limits(
    plan: SubscriptionPlan | str | None,
    monthly_cells_used: int,
    monthly_reports_used: int,
    data: Any,
) -> LimitCheck:
    limits = get_pricing_limits(plan)
    cells = calculate_cells(data)
    errors: list[str] = []

    if monthly_reports_used >= limits.reports_per_month:
        errors.append(
            f"You've reached your monthly report limit of {limits.reports_per_month} reports."
        )

    if cells > limits.max_cells_per_report:
        errors.append(
            f"This file exceeds the maximum {limits.max_cells_per_report:,} cells per report limit."
        )

    if monthly_cells_used + cells > limits.cells_per_month:
        remaining = max(0, limits.cells_per_month - monthly_cells_used)
        errors.append(
            f"This would exceed your monthly cell quota. You have {remaining:,} cells remaining."
        )

    return LimitCheck(allowed=not errors, cells_required=cells, errors=errors)


def _percentage(used: int, limit: int) -> float:
    if limit <= 0:
        return 0.0
    return round(min(100.0, used / limit * 100), 1)


def calculate_usage_stats(
    plan: SubscriptionPlan | str | None, monthly_cells_used: int, monthly_reports_used: int
) -> UsageStats:
    limits = get_pricing_limits(plan)
    return UsageStats(
        cells_used=monthly_cells_used,
        cells_remaining=max(0, limits.cells_per_month - monthly_cells_used),
        cells_percentage=_percentage(monthly_cells_used, limits.cells_per_month),
        reports_used=monthly_reports_used,
        reports_remaining=max(0, limits.reports_per_month - monthly_reports_used),
        reports_percentage=_percentage(monthly_reports_used, limits.reports_per_month),
    )


def calculate_overage_charge(plan: SubscriptionPlan | str | None, cells_over: int) -> float:
    """Only plans with an overage rate are billed; partial blocks round up."""
    limits = get_pricing_limits(plan)
    if limits.overage_rate is None or cells_over <= 0:
        return 0.0
    blocks = math.ceil(cells_over / OVERAGE_BLOCK_CELLS)
    return round(blocks * limits.overage_rate, 2)


def format_currency(amount: float) -> str:
    return f"${amount:,.2f}"


def get_plan_display_name(plan: SubscriptionPlan | str | None) -> str:
    return get_pricing_limits(plan).name


def get_upgrade_prompt(plan: SubscriptionPlan | str | None) -> str:
    return UPGRADE_PROMPTS[_as_plan(plan)]


def is_export_allowed(plan: SubscriptionPlan | str | None, extension: str) -> bool:
    """PDF is open to every plan; other formats need a paid plan."""
    if extension == "pdf":
        return True
    return _as_plan(plan) != SubscriptionPlan.FREE
