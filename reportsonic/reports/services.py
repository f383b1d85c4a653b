"""
reports/services.py

Report workflows:
- Upload: parse, analyse and chart a spreadsheet
- Generate: quota check, analysis and report text, usage accounting, optional save
- Saved report retrieval and deletion
- Export to PDF / Word / PowerPoint, gated by plan
"""

import logging
import time
from datetime import datetime, timezone
from typing import Any

from fastapi import UploadFile, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.concurrency import run_in_threadpool

from reportsonic.billing.pricing import get_plan_display_name, is_export_allowed
from reportsonic.billing.usage import check_user_limits, increment_user_usage
from reportsonic.charts.generator import generate_multi_chart_analysis
from reportsonic.core.exceptions import APIError
from reportsonic.core.upload import read_upload
from reportsonic.database.models import Report, User
from reportsonic.reports.analysis import analyze_data, generate_report_content
from reportsonic.reports.export import (
    CONTENT_TYPES,
    ExportOptions,
    build_export_charts,
    export_filename,
    normalize_format,
    render_export,
)
from reportsonic.reports.parsing import parse_tabular, records_to_rows
from reportsonic.reports.schemas import (
    ExportReport,
    ExportRequest,
    GenerateReportRequest,
    GenerateReportResponse,
    UploadedReport,
    UploadResponse,
)

logger = logging.getLogger(__name__)


def _epoch_ms() -> int:
    return int(time.time() * 1000)


# ---------------------------------------------------
# Upload
# ---------------------------------------------------
async def process_upload(file: UploadFile | None, user: User) -> UploadResponse:
    """Validates, parses and analyses an uploaded spreadsheet. Nothing is stored."""
    filename, content = await read_upload(file)
    headers, rows = await run_in_threadpool(parse_tabular, filename, content)

    analysis = analyze_data(headers, rows)
    charts = await run_in_threadpool(generate_multi_chart_analysis, rows, headers)

    logger.info(
        f"[REPORTS] User {user.id} uploaded '{filename}': {len(rows)} rows, {len(charts)} charts"
    )
    return UploadResponse(
        report=UploadedReport(
            id=str(_epoch_ms()),
            name=filename,
            headers=headers,
            rawData=rows,
            analysis=analysis,
            charts=charts,
            createdAt=datetime.now(timezone.utc),
        )
    )


# ---------------------------------------------------
# Generate
# ---------------------------------------------------
async def generate_report(
    payload: GenerateReportRequest, user: User, db: AsyncSession
) -> GenerateReportResponse:
    """
    Checks quota first (429), then builds the analysis and report text and
    counts the report against the user's plan.
    """
    cells_used = await check_user_limits(user, payload.data, db)

    if not payload.title or not payload.template:
        raise APIError(status_code=status.HTTP_400_BAD_REQUEST, message="Title and template are required")

    headers, rows = records_to_rows(payload.data)
    analysis = analyze_data(headers, rows)
    content = generate_report_content(
        analysis,
        len(rows),
        payload.template,
        payload.title,
        company_name=payload.companyName,
        client_name=payload.clientName,
    )

    report_id: int | None = None
    if payload.save:
        charts = await run_in_threadpool(generate_multi_chart_analysis, rows, headers)
        report = Report(
            user_id=user.id,
            title=payload.title,
            description=analysis.get("summary"),
            data=payload.data,
            charts=[chart["config"] for chart in charts],
            settings={
                "template": payload.template,
                "companyName": payload.companyName,
                "clientName": payload.clientName,
                "analysis": analysis,
                "content": content,
            },
            cells_used=cells_used,
        )
        db.add(report)
        await db.commit()
        await db.refresh(report)
        report_id = report.id
        logger.info(f"[REPORTS] Saved report {report.id} for user {user.id}")

    await increment_user_usage(
        user,
        cells_used,
        db,
        report_id=report_id,
        details={
            "title": payload.title,
            "template": payload.template,
            "companyName": payload.companyName,
            "clientName": payload.clientName,
        },
    )

    logger.info(f"[REPORTS] Report '{payload.title}' generated for user {user.id} ({cells_used} cells)")
    return GenerateReportResponse(
        reportId=str(report_id) if report_id is not None else f"temp_{_epoch_ms()}",
        analysis=analysis,
        reportContent=content,
        cellsUsed=cells_used,
    )


# ---------------------------------------------------
# Saved Reports
# ---------------------------------------------------
async def list_reports(user: User, db: AsyncSession) -> list[Report]:
    result = await db.execute(
        select(Report).filter(Report.user_id == user.id).order_by(Report.created_at.desc())
    )
    return list(result.scalars().all())


async def get_report(report_id: int, user: User, db: AsyncSession) -> Report:
    """Reports of other users are reported as missing."""
    result = await db.execute(
        select(Report).filter(Report.id == report_id, Report.user_id == user.id)
    )
    report = result.scalar_one_or_none()
    if not report:
        raise APIError(status_code=status.HTTP_404_NOT_FOUND, message="Report not found")
    return report


async def delete_report(report_id: int, user: User, db: AsyncSession) -> None:
    report = await get_report(report_id, user, db)
    await db.delete(report)
    await db.commit()
    logger.info(f"[REPORTS] User {user.id} deleted report {report_id}")


# ---------------------------------------------------
# Export
# ---------------------------------------------------
def _build_document(payload: ExportRequest, extension: str) -> bytes:
    charts = build_export_charts(payload.rawData, render=True)
    options = ExportOptions.from_report(payload.report or ExportReport(), charts)
    return render_export(options, extension)


async def export_report(payload: ExportRequest, user: User) -> tuple[bytes, str, str]:
    """
    Renders the export document.

    Returns:
        tuple[bytes, str, str]: Content, media type and download filename.
    """
    if payload.report is None:
        raise APIError(status_code=status.HTTP_400_BAD_REQUEST, message="Report data is required")

    extension = normalize_format(payload.format)
    if not is_export_allowed(user.subscription_plan, extension):
        plan_name = get_plan_display_name(user.subscription_plan)
        raise APIError(
            status_code=status.HTTP_403_FORBIDDEN,
            message=f"{extension.upper()} export is not available on the {plan_name} plan. Upgrade to unlock it.",
        )

    content = await run_in_threadpool(_build_document, payload, extension)
    filename = export_filename(payload.report.name or "report", extension)
    logger.info(f"[REPORTS] User {user.id} exported '{filename}'")
    return content, CONTENT_TYPES[extension], filename


def export_headers(filename: str) -> dict[str, Any]:
    return {"Content-Disposition": f'attachment; filename="{filename}"'}
