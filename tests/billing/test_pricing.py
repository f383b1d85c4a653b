"""
tests/billing/test_pricing.py

Plan tables and quota arithmetic.
"""

import pytest

from reportsonic.billing.pricing import (
    PRICING_PLANS,
    calculate_cells,
    calculate_overage_charge,
    calculate_usage_stats,
    check_limits,
    format_currency,
    get_plan_display_name,
    get_pricing_limits,
    get_upgrade_prompt,
    is_export_allowed,
)
from reportsonic.database.enums import SubscriptionPlan


def _records(rows: int, columns: int) -> list[dict]:
    return [{f"c{c}": r for c in range(columns)} for r in range(rows)]


def test_plan_table() -> None:
    free = PRICING_PLANS[SubscriptionPlan.FREE]
    assert (free.reports_per_month, free.cells_per_month, free.max_cells_per_report) == (5, 100_000, 10_000)
    starter = PRICING_PLANS[SubscriptionPlan.STARTER]
    assert (starter.reports_per_month, starter.cells_per_month, starter.max_cells_per_report) == (25, 500_000, 50_000)
    pro = PRICING_PLANS[SubscriptionPlan.PROFESSIONAL]
    assert (pro.reports_per_month, pro.cells_per_month, pro.max_cells_per_report) == (100, 2_000_000, 200_000)
    assert pro.white_label and not starter.white_label


@pytest.mark.parametrize("plan", [None, "", "enterprise"])
def test_unknown_plan_falls_back_to_free(plan: object) -> None:
    assert get_pricing_limits(plan) is PRICING_PLANS[SubscriptionPlan.FREE]
    assert get_plan_display_name(plan) == "Free"


@pytest.mark.parametrize(
    "data, cells",
    [
        ([], 0),
        (None, 0),
        ("not a list", 0),
        (_records(10, 3), 30),
        ([[1, 2], [3, 4], [5, 6]], 6),
        ([1, 2, 3], 0),
        (["a", "b"], 0),
        ([None, {"a": 1}], 0),
    ],
)
def test_calculate_cells(data: object, cells: int) -> None:
    assert calculate_cells(data) == cells


def test_check_limits_allows_within_quota() -> None:
    result = check_limits(SubscriptionPlan.FREE, 0, 0, _records(100, 10))
    assert result.allowed
    assert result.cells_required == 1000
    assert result.errors == []


def test_check_limits_report_count() -> None:
    result = check_limits(SubscriptionPlan.FREE, 0, 5, _records(1, 1))
    assert not result.allowed
    assert result.errors == ["You've reached your monthly report limit of 5 reports."]


def test_check_limits_cells_per_report() -> None:
    result = check_limits(SubscriptionPlan.FREE, 0, 0, _records(1001, 10))
    assert not result.allowed
    assert "This file exceeds the maximum 10,000 cells per report limit." in result.errors


def test_check_limits_monthly_quota_reports_remaining() -> None:
    result = check_limits(SubscriptionPlan.FREE, 95_000, 1, _records(600, 10))
    assert not result.allowed
    assert result.errors == [
        "This would exceed your monthly cell quota. You have 5,000 cells remaining."
    ]


def test_check_limits_collects_every_violation() -> None:
    result = check_limits(SubscriptionPlan.FREE, 99_000, 5, _records(2000, 10))
    assert len(result.errors) == 3


def test_usage_stats() -> None:
    stats = calculate_usage_stats(SubscriptionPlan.STARTER, 250_000, 30)
    assert stats.cells_remaining == 250_000
    assert stats.cells_percentage == 50.0
    assert stats.reports_remaining == 0
    assert stats.reports_percentage == 100.0
    assert stats.to_dict()["cellsUsed"] == 250_000


def test_overage_only_on_professional() -> None:
    assert calculate_overage_charge(SubscriptionPlan.FREE, 50_000) == 0.0
    assert calculate_overage_charge(SubscriptionPlan.PROFESSIONAL, 0) == 0.0
    assert calculate_overage_charge(SubscriptionPlan.PROFESSIONAL, 10_000) == 0.10
    assert calculate_overage_charge(SubscriptionPlan.PROFESSIONAL, 10_001) == 0.20


def test_format_currency() -> None:
    assert format_currency(1234.5) == "$1,234.50"


def test_upgrade_prompts() -> None:
    assert "Starter" in get_upgrade_prompt(SubscriptionPlan.FREE)
    assert "Professional" in get_upgrade_prompt(SubscriptionPlan.STARTER)
    assert "highest plan" in get_upgrade_prompt(SubscriptionPlan.PROFESSIONAL)


@pytest.mark.parametrize(
    "plan, extension, allowed",
    [
        (SubscriptionPlan.FREE, "pdf", True),
        (SubscriptionPlan.FREE, "docx", False),
        (SubscriptionPlan.FREE, "pptx", False),
        (SubscriptionPlan.STARTER, "docx", True),
        (SubscriptionPlan.PROFESSIONAL, "pptx", True),
    ],
)
def test_export_gating(plan: SubscriptionPlan, extension: str, allowed: bool) -> None:
    assert is_export_allowed(plan, extension) is allowed
