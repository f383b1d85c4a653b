"""
reportsonic/charts/generator.py

Chart recommendation and rendering for uploaded tables:
- Column data type detection (numeric / date / categorical / text)
- Chart type recommendation per column
- Chart.js-style configuration (labels + datasets) per column
- PNG rendering of a configuration with matplotlib (headless Agg backend)
- Multi-chart analysis over the first suitable columns of a table
"""

import base64
import io
import logging
from collections import Counter
from typing import Any

import matplotlib

matplotlib.use("Agg")
import matplotlib.pyplot as plt  # noqa: E402

from reportsonic.charts.transforms import is_missing, to_date, to_number  # noqa: E402

logger = logging.getLogger(__name__)

TYPE_SAMPLE_SIZE = 10
CATEGORICAL_MAX_UNIQUE = 20
CATEGORICAL_TOP_N = 10
BAR_TOP_N = 15
LABEL_MAX_CHARS = 20
DEFAULT_MAX_CHARTS = 5

PALETTE = [
    "rgba(59, 130, 246, 0.6)",  # Blue
    "rgba(16, 185, 129, 0.6)",  # Green
    "rgba(245, 101, 101, 0.6)",  # Red
    "rgba(251, 191, 36, 0.6)",  # Yellow
    "rgba(139, 92, 246, 0.6)",  # Purple
    "rgba(236, 72, 153, 0.6)",  # Pink
    "rgba(6, 182, 212, 0.6)",  # Cyan
    "rgba(34, 197, 94, 0.6)",  # Emerald
    "rgba(251, 146, 60, 0.6)",  # Orange
    "rgba(168, 85, 247, 0.6)",  # Violet
]

CHART_TYPE_DESCRIPTIONS = {
    "bar": "Best for comparing categories",
    "line": "Ideal for showing trends over time",
    "pie": "Perfect for showing proportions",
    "doughnut": "Great for highlighting key segments",
    "scatter": "Excellent for correlation analysis",
}


def _present(values: list[Any]) -> list[Any]:
    return [v for v in values if not is_missing(v)]


# ---------------------------------------------------
# Detection & Recommendation
# ---------------------------------------------------
def detect_data_type(values: list[Any]) -> str:
    """Classifies a column from its first values; uniqueness is judged on the whole column."""
    values = _present(values)
    if not values:
        return "unknown"

    sample = values[:TYPE_SAMPLE_SIZE]
    if all(to_number(v) is not None for v in sample):
        return "numeric"
    if all(to_date(v) is not None for v in sample):
        return "date"
    if len({str(v) for v in values}) <= CATEGORICAL_MAX_UNIQUE:
        return "categorical"
    return "text"


def recommend_chart_type(values: list[Any], data_type: str) -> str:
    values = _present(values)
    if not values:
        return "bar"
    unique_count = len({str(v) for v in values})

    if data_type == "numeric":
        numeric = [n for n in (to_number(v) for v in values) if n is not None]
        if len(numeric) < 5:
            return "pie"
        if unique_count / len(values) < 0.1:
            return "bar"
        if len(numeric) > 20:
            return "line"
        return "bar"

    if data_type == "date":
        return "line"

    if data_type in ("categorical", "text"):
        return "doughnut" if unique_count <= 10 else "bar"

    return "bar"


def generate_colors(count: int) -> list[str]:
    return [PALETTE[i % len(PALETTE)] for i in range(count)]


# ---------------------------------------------------
# Chart Configuration
# ---------------------------------------------------
def _categorical_dataset(values: list[Any], label: str) -> dict[str, Any]:
    counts = Counter(str(v) for v in values).most_common(CATEGORICAL_TOP_N)
    colors = generate_colors(len(counts))
    return {
        "labels": [key for key, _ in counts],
        "datasets": [
            {
                "label": label,
                "data": [count for _, count in counts],
                "backgroundColor": colors,
                "borderColor": [color.replace("0.6", "1") for color in colors],
                "borderWidth": 2,
            }
        ],
    }


def _series_dataset(values: list[Any], label: str) -> dict[str, Any]:
    numeric = [n for n in (to_number(v) for v in values) if n is not None]
    return {
        "labels": [f"Point {i + 1}" for i in range(len(numeric))],
        "datasets": [
            {
                "label": label,
                "data": numeric,
                "borderColor": "#3B82F6",
                "backgroundColor": "rgba(59, 130, 246, 0.1)",
                "fill": True,
                "tension": 0.4,
            }
        ],
    }


def _bar_dataset(values: list[Any], label: str) -> dict[str, Any]:
    counts = Counter(str(v) for v in values).most_common(BAR_TOP_N)
    return {
        "labels": [
            key if len(key) <= LABEL_MAX_CHARS else key[:LABEL_MAX_CHARS] + "..."
            for key, _ in counts
        ],
        "datasets": [
            {
                "label": label,
                "data": [count for _, count in counts],
                "backgroundColor": "#3B82F6",
                "borderColor": "#1E40AF",
                "borderWidth": 1,
            }
        ],
    }


def generate_chart_config(
    rows: list[list[Any]], headers: list[str], column_index: int, chart_type: str
) -> dict[str, Any]:
    column_name = str(headers[column_index])
    values = _present([row[column_index] if column_index < len(row) else None for row in rows])

    if chart_type in ("pie", "doughnut"):
        data = _categorical_dataset(values, column_name)
    elif chart_type == "line":
        data = _series_dataset(values, column_name)
    else:
        data = _bar_dataset(values, column_name)

    config: dict[str, Any] = {
        "type": chart_type,
        "title": f"Analysis: {column_name}",
        "data": data,
        "options": {
            "responsive": True,
            "plugins": {
                "title": {"display": True, "text": f"Analysis: {column_name}"},
                "legend": {"display": True, "position": "top"},
            },
        },
    }
    if chart_type == "line":
        config["options"]["scales"] = {
            "x": {"display": True, "title": {"display": True, "text": "Data Points"}},
            "y": {"display": True, "title": {"display": True, "text": column_name}},
        }
    return config


def generate_chart_insights(values: list[Any], column_name: str, data_type: str, chart_type: str) -> str:
    values = _present(values)
    total = len(values)
    lines = [f"**{column_name} Analysis**", ""]

    if data_type == "numeric":
        numeric = [n for n in (to_number(v) for v in values) if n is not None]
        average = sum(numeric) / len(numeric) if numeric else 0.0
        lines.append(f"- **Range**: {min(numeric, default=0):.2f} - {max(numeric, default=0):.2f}")
        lines.append(f"- **Average**: {average:.2f}")
        lines.append(f"- **Data Points**: {total}")
        if chart_type == "line" and len(numeric) > 1:
            trend = "Increasing" if numeric[0] < numeric[-1] else "Decreasing"
            lines.append(f"- **Trend**: {trend}")
    else:
        unique = len({str(v) for v in values})
        diversity = unique / total * 100 if total else 0.0
        lines.append(f"- **Unique Values**: {unique}")
        lines.append(f"- **Total Records**: {total}")
        lines.append(f"- **Diversity**: {diversity:.1f}%")

    description = CHART_TYPE_DESCRIPTIONS.get(chart_type, "Suitable for this data type")
    lines.append("")
    lines.append(f"**Chart Type**: {chart_type.upper()} - {description}")
    return "\n".join(lines)


# ---------------------------------------------------
# Rendering
# ---------------------------------------------------
def _rgba_to_mpl(color: str) -> Any:
    if color.startswith("rgba("):
        r, g, b, a = (float(part) for part in color[5:-1].split(","))
        return (r / 255, g / 255, b / 255, a)
    return color


def render_chart_image(config: dict[str, Any], width: float = 8, height: float = 6) -> str:
    """Renders a chart configuration to a PNG data URI."""
    data = config.get("data", {})
    labels = data.get("labels", [])
    datasets = data.get("datasets", [])
    values = datasets[0]["data"] if datasets else []
    chart_type = config.get("type", "bar")

    fig, ax = plt.subplots(figsize=(width, height))
    try:
        if chart_type in ("pie", "doughnut"):
            colors = [_rgba_to_mpl(c) for c in generate_colors(len(values))]
            wedgeprops = {"width": 0.45} if chart_type == "doughnut" else None
            ax.pie(values, labels=labels, colors=colors, wedgeprops=wedgeprops, autopct="%1.1f%%")
            ax.axis("equal")
        elif chart_type == "line":
            ax.plot(range(len(values)), values, color="#3B82F6", linewidth=2)
            ax.fill_between(range(len(values)), values, color="#3B82F6", alpha=0.1)
            ax.set_xlabel("Data Points")
        else:
            ax.bar(range(len(values)), values, color="#3B82F6", edgecolor="#1E40AF")
            ax.set_xticks(range(len(values)))
            ax.set_xticklabels(labels, rotation=45, ha="right")
        ax.set_title(config.get("title", ""), fontweight="bold")
        fig.tight_layout()

        buffer = io.BytesIO()
        fig.savefig(buffer, format="png", dpi=100, facecolor="white")
    finally:
        plt.close(fig)

    encoded = base64.b64encode(buffer.getvalue()).decode("ascii")
    return f"data:image/png;base64,{encoded}"


def decode_image(data_uri: str) -> bytes:
    """Inverse of render_chart_image: raw PNG bytes from a data URI."""
    _, _, payload = data_uri.partition(",")
    return base64.b64decode(payload)


# ---------------------------------------------------
# Multi-Chart Analysis
# ---------------------------------------------------
def generate_multi_chart_analysis(
    rows: list[list[Any]],
    headers: list[str],
    max_charts: int = DEFAULT_MAX_CHARTS,
    render: bool = False,
) -> list[dict[str, Any]]:
    """
    One chart per suitable column, up to max_charts.

    Each entry carries `column`, `dataType`, `config`, `insights` and, when
    `render` is set, an `image` PNG data URI.
    """
    charts: list[dict[str, Any]] = []
    for index, header in enumerate(headers):
        if len(charts) >= max_charts:
            break
        values = _present([row[index] if index < len(row) else None for row in rows])
        if not values:
            continue

        data_type = detect_data_type(values)
        if data_type == "unknown":
            continue

        chart_type = recommend_chart_type(values, data_type)
        config = generate_chart_config(rows, headers, index, chart_type)
        entry: dict[str, Any] = {
            "column": str(header),
            "dataType": data_type,
            "config": config,
            "insights": generate_chart_insights(values, str(header), data_type, chart_type),
        }
        if render:
            try:
                entry["image"] = render_chart_image(config)
            except (ValueError, TypeError) as e:
                logger.warning(f"[CHARTS] Rendering failed for column '{header}': {e}")
                entry["image"] = None
        charts.append(entry)

    logger.debug(f"[CHARTS] Generated {len(charts)} charts from {len(headers)} columns")
    return charts
