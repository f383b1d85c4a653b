"""
reportsonic/reports/analysis.py

Deterministic statistical analysis of a parsed table:
- Per numeric column statistics (count, sum, average, median, min, max,
  population standard deviation, quartiles, range)
- Trend detection comparing the averages of the first and second halves
- Outlier patterns beyond 1.5 x IQR
- Data quality issues (columns with more than 20% missing values)
- Narrative insights, recommendations and summary text

Also renders the markdown body of a generated report.
"""

import math
from datetime import datetime, timezone
from typing import Any

from reportsonic.charts.transforms import is_missing, to_date, to_number

TREND_MIN_POINTS = 10
TREND_THRESHOLD = 0.10
MISSING_THRESHOLD_PERCENT = 20.0


def _column(rows: list[list[Any]], index: int) -> list[Any]:
    return [row[index] if index < len(row) else None for row in rows]


def column_statistics(column: str, values: list[float]) -> dict[str, Any] | None:
    """Quartiles and median use the lower-index convention on the sorted values."""
    if not values:
        return None
    count = len(values)
    total = sum(values)
    average = total / count
    variance = sum((v - average) ** 2 for v in values) / count
    ordered = sorted(values)
    minimum, maximum = ordered[0], ordered[-1]
    return {
        "column": column,
        "count": count,
        "sum": total,
        "average": average,
        "median": ordered[count // 2],
        "max": maximum,
        "min": minimum,
        "stdDev": math.sqrt(variance),
        "q1": ordered[math.floor(count * 0.25)],
        "q3": ordered[math.floor(count * 0.75)],
        "range": maximum - minimum,
    }


def detect_trend(column: str, values: list[float]) -> str | None:
    if len(values) <= TREND_MIN_POINTS:
        return None
    half = len(values) // 2
    first = sum(values[:half]) / half
    second = sum(values[half:]) / (len(values) - half)
    if second > first * (1 + TREND_THRESHOLD) and second > first:
        return f"Upward trend detected in '{column}' - values increasing over time"
    if second < first * (1 - TREND_THRESHOLD) and second < first:
        return f"Downward trend detected in '{column}' - values decreasing over time"
    return f"Stable trend in '{column}' - values remaining consistent"


def detect_outliers(stat: dict[str, Any], values: list[float]) -> str | None:
    iqr = stat["q3"] - stat["q1"]
    low, high = stat["q1"] - 1.5 * iqr, stat["q3"] + 1.5 * iqr
    outliers = sum(1 for v in values if v < low or v > high)
    if not outliers:
        return None
    return f"Potential outliers detected in '{stat['column']}' - {outliers} values may need review"


def _size_insight(total_rows: int) -> str:
    if total_rows > 10000:
        return f"Large-scale dataset with {total_rows:,} rows - excellent for machine learning and advanced analytics"
    if total_rows > 1000:
        return f"Substantial dataset with {total_rows:,} rows - great for comprehensive analysis"
    if total_rows > 100:
        return f"Medium-sized dataset with {total_rows} rows - good for statistical analysis"
    return f"Small dataset with {total_rows} rows - suitable for quick insights and basic analysis"


def analyze_data(headers: list[str], rows: list[list[Any]]) -> dict[str, Any]:
    if not headers or not rows:
        return {
            "summary": "No data found in the uploaded file",
            "insights": [],
            "recommendations": [],
            "statistics": [],
            "trends": [],
            "patterns": [],
            "qualityIssues": [],
            "dataTypes": {"numeric": 0, "text": 0, "date": 0},
        }

    total_rows = len(rows)
    numeric_columns: list[str] = []
    text_columns: list[str] = []
    date_columns: list[str] = []
    statistics: list[dict[str, Any]] = []
    trends: list[str] = []
    patterns: list[str] = []
    quality_issues: list[str] = []

    for index, header in enumerate(headers):
        column = _column(rows, index)
        present = [v for v in column if not is_missing(v)]
        numbers = [n for n in (to_number(v) for v in present) if n is not None]

        if numbers:
            numeric_columns.append(header)
            stat = column_statistics(header, numbers)
            if stat:
                statistics.append(stat)
                trend = detect_trend(header, numbers)
                if trend:
                    trends.append(trend)
                pattern = detect_outliers(stat, numbers)
                if pattern:
                    patterns.append(pattern)
        if any(isinstance(v, str) and to_number(v) is None for v in present):
            text_columns.append(header)
        if any(to_date(v) is not None for v in present[:TREND_MIN_POINTS]):
            date_columns.append(header)

        missing = (total_rows - len(present)) / total_rows * 100
        if missing > MISSING_THRESHOLD_PERCENT:
            quality_issues.append(f"Column '{header}' has {missing:.1f}% missing values")

    insights = [_size_insight(total_rows)]
    if numeric_columns:
        insights.append(
            f"Found {len(numeric_columns)} numeric columns - perfect for statistical analysis and visualizations"
        )
    if text_columns:
        insights.append(f"Found {len(text_columns)} text columns - ideal for categorization and text analysis")
    if date_columns:
        insights.append(
            f"Found {len(date_columns)} date columns - excellent for time-series analysis and trend detection"
        )
    if statistics:
        highest = max(statistics, key=lambda s: s["average"])
        lowest = min(statistics, key=lambda s: s["average"])
        most_variable = max(statistics, key=lambda s: s["stdDev"])
        insights.append(f"'{highest['column']}' has the highest average value ({highest['average']:.2f})")
        insights.append(f"'{lowest['column']}' has the lowest average value ({lowest['average']:.2f})")
        insights.append(
            f"'{most_variable['column']}' shows the highest variability (std dev: {most_variable['stdDev']:.2f})"
        )
    if quality_issues:
        insights.append(f"Data quality issues detected - {len(quality_issues)} columns need attention")
    else:
        insights.append("Excellent data quality - no significant missing values detected")

    recommendations: list[str] = []
    if len(numeric_columns) >= 2:
        recommendations.append("Perform correlation analysis to identify relationships between numeric variables")
    if date_columns and numeric_columns:
        recommendations.append("Create time-series analysis to identify seasonal patterns and trends")
    if total_rows > 1000:
        recommendations.append("Apply machine learning algorithms for predictive modeling and classification")
    if text_columns:
        recommendations.append("Perform text analysis and sentiment analysis on text columns")
    if len(numeric_columns) >= 2:
        recommendations.append("Create scatter plots to visualize relationships between variables")
    if statistics:
        recommendations.append("Generate histograms and box plots to understand data distribution")
    if date_columns:
        recommendations.append("Create line charts to show trends over time")
    recommendations.append("Export comprehensive PDF report for stakeholder presentation")
    recommendations.append("Create interactive dashboard for real-time data exploration")

    quality_text = (
        "Data quality is excellent" if not quality_issues else f"{len(quality_issues)} data quality issues found"
    )
    summary = (
        f"Analysis Complete: Processed {total_rows:,} rows across {len(headers)} columns. "
        f"Identified {len(numeric_columns)} numeric, {len(text_columns)} text, and {len(date_columns)} date columns. "
        f"Detected {len(trends)} trends and {len(patterns)} patterns. "
        f"{quality_text}."
    )

    return {
        "summary": summary,
        "insights": insights,
        "recommendations": recommendations,
        "statistics": statistics,
        "trends": trends,
        "patterns": patterns,
        "qualityIssues": quality_issues,
        "dataTypes": {
            "numeric": len(numeric_columns),
            "text": len(text_columns),
            "date": len(date_columns),
        },
    }


def generate_report_content(
    analysis: dict[str, Any],
    record_count: int,
    template: str,
    title: str,
    company_name: str | None = None,
    client_name: str | None = None,
) -> str:
    """Markdown body of a generated report, built from a prior analyze_data result."""
    lines = [f"# {title}", ""]
    if company_name:
        suffix = f" for {client_name}" if client_name else ""
        lines += [f"*Prepared by {company_name}{suffix}*", ""]
    elif client_name:
        lines += [f"*Prepared for {client_name}*", ""]
    lines += [
        f"*Template: {template}*",
        "",
        "## Executive Summary",
        "",
        f"This report analyzes {record_count} records. {analysis.get('summary', '')}",
        "",
        "## Key Findings",
        "",
    ]
    lines += [f"- {insight}" for insight in analysis.get("insights", [])] or ["- No findings"]

    if analysis.get("trends"):
        lines += ["", "## Trends", ""]
        lines += [f"- {trend}" for trend in analysis["trends"]]

    if analysis.get("statistics"):
        lines += ["", "## Statistics", "", "| Column | Average | Min | Max | Std Dev |", "|---|---|---|---|---|"]
        for stat in analysis["statistics"]:
            lines.append(
                f"| {stat['column']} | {stat['average']:.2f} | {stat['min']:.2f} | "
                f"{stat['max']:.2f} | {stat['stdDev']:.2f} |"
            )

    if analysis.get("qualityIssues"):
        lines += ["", "## Data Quality", ""]
        lines += [f"- {issue}" for issue in analysis["qualityIssues"]]

    lines += ["", "## Recommendations", ""]
    lines += [f"{i}. {rec}" for i, rec in enumerate(analysis.get("recommendations", []), start=1)]
    lines += ["", "---", f"*Report generated on {datetime.now(timezone.utc).date().isoformat()}*"]
    return "\n".join(lines)
