"""
reports/routes.py

Report endpoints:
- Spreadsheet upload and analysis
- Report generation against the caller's quota
- Saved report list / detail / delete
- Document export
- Chart data transformation
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, File, Path, Request, Response, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.concurrency import run_in_threadpool

from reportsonic.charts.transforms import transform_for_chart
from reportsonic.core.dependencies import get_current_user
from reportsonic.core.exceptions import APIError
from reportsonic.core.limiter import limiter
from reportsonic.core.schemas import ERROR_RESPONSES, SuccessMessageResponse
from reportsonic.database.models import User
from reportsonic.database.session import get_db
from reportsonic.reports.schemas import (
    ChartTransformRequest,
    ChartTransformResponse,
    ExportRequest,
    GenerateReportRequest,
    GenerateReportResponse,
    ReportDetail,
    ReportSummary,
    UploadResponse,
)
from reportsonic.reports.services import (
    delete_report,
    export_headers,
    export_report,
    generate_report,
    get_report,
    list_reports,
    process_upload,
)

router = APIRouter(prefix="/api/reports", tags=["Reports"], responses=ERROR_RESPONSES)
logger = logging.getLogger(__name__)

DBDep = Annotated[AsyncSession, Depends(get_db)]
CurrentUserDep = Annotated[User, Depends(get_current_user)]
ReportIdPath = Annotated[int, Path(..., description="ID of the saved report")]


# ---------------------------------------------------
# Upload / Generate
# ---------------------------------------------------
@router.post(
    "/upload",
    response_model=UploadResponse,
    status_code=status.HTTP_200_OK,
    summary="Upload Spreadsheet",
    description="Parses a CSV or Excel file and returns its analysis and charts. Max size set by MAX_UPLOAD_SIZE_MB.",
)
@limiter.limit("10/minute")
async def upload(
    request: Request,
    current_user: CurrentUserDep,
    file: UploadFile | None = File(None, description="CSV, XLSX or XLS file"),
) -> UploadResponse:
    return await process_upload(file, current_user)


@router.post(
    "/generate",
    response_model=GenerateReportResponse,
    status_code=status.HTTP_200_OK,
    summary="Generate Report",
    description="Checks the plan quota, analyses the data and returns the report text. Counts against monthly usage.",
)
@limiter.limit("20/minute")
async def generate(
    request: Request,
    payload: GenerateReportRequest,
    current_user: CurrentUserDep,
    db: DBDep,
) -> GenerateReportResponse:
    return await generate_report(payload, current_user, db)


# ---------------------------------------------------
# Saved Reports
# ---------------------------------------------------
@router.get(
    "",
    response_model=list[ReportSummary],
    status_code=status.HTTP_200_OK,
    summary="List Saved Reports",
    description="Returns the caller's saved reports, newest first.",
)
async def get_reports(current_user: CurrentUserDep, db: DBDep) -> list[ReportSummary]:
    reports = await list_reports(current_user, db)
    return [ReportSummary.model_validate(report) for report in reports]


@router.get(
    "/{report_id}",
    response_model=ReportDetail,
    status_code=status.HTTP_200_OK,
    summary="Get Saved Report",
)
async def get_saved_report(
    report_id: ReportIdPath, current_user: CurrentUserDep, db: DBDep
) -> ReportDetail:
    report = await get_report(report_id, current_user, db)
    return ReportDetail.model_validate(report)


@router.delete(
    "/{report_id}",
    response_model=SuccessMessageResponse,
    status_code=status.HTTP_200_OK,
    summary="Delete Saved Report",
)
async def remove_report(
    report_id: ReportIdPath, current_user: CurrentUserDep, db: DBDep
) -> SuccessMessageResponse:
    await delete_report(report_id, current_user, db)
    return SuccessMessageResponse(message="Report deleted successfully")


# ---------------------------------------------------
# Export
# ---------------------------------------------------
@router.post(
    "/export",
    status_code=status.HTTP_200_OK,
    summary="Export Report",
    description="Renders the report as PDF, Word or PowerPoint and returns it as an attachment.",
    response_class=Response,
)
@limiter.limit("10/minute")
async def export(
    request: Request,
    payload: ExportRequest,
    current_user: CurrentUserDep,
) -> Response:
    content, media_type, filename = await export_report(payload, current_user)
    return Response(content=content, media_type=media_type, headers=export_headers(filename))


# ---------------------------------------------------
# Chart Data
# ---------------------------------------------------
@router.post(
    "/charts",
    response_model=ChartTransformResponse,
    status_code=status.HTTP_200_OK,
    summary="Transform Chart Data",
    description="Remaps records into the point format of the requested chart type.",
)
@limiter.limit("60/minute")
async def chart_data(request: Request, payload: ChartTransformRequest) -> ChartTransformResponse:
    if not payload.chartType:
        raise APIError(status_code=status.HTTP_400_BAD_REQUEST, message="Chart type is required")
    points = await run_in_threadpool(transform_for_chart, payload.chartType, payload.data)
    return ChartTransformResponse(chartType=payload.chartType, data=points)
