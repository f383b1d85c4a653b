"""
reports/schemas.py

Request and response models for report upload, generation, storage,
export and chart-data transformation.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


# ---------------------------------------------------
# Upload
# ---------------------------------------------------
class UploadedReport(BaseModel):
    id: str = Field(..., description="Client-side reference (epoch milliseconds)")
    name: str = Field(..., description="Original filename")
    headers: list[str]
    rawData: list[list[Any]] = Field(..., description="Data rows without the header row")
    analysis: dict[str, Any]
    charts: list[dict[str, Any]] = Field(default_factory=list)
    createdAt: datetime
    status: str = "completed"


class UploadResponse(BaseModel):
    success: bool = True
    report: UploadedReport


# ---------------------------------------------------
# Generate
# ---------------------------------------------------
class GenerateReportRequest(BaseModel):
    """
    Report generation payload. `data` is a list of records keyed by column.
    """
    title: str | None = None
    template: str | None = None
    companyName: str | None = None
    clientName: str | None = None
    data: list[dict[str, Any]] = Field(default_factory=list)
    save: bool = Field(False, description="Persist the report for later retrieval")


class GenerateReportResponse(BaseModel):
    success: bool = True
    reportId: str
    analysis: dict[str, Any]
    reportContent: str
    cellsUsed: int
    message: str = "Report generated successfully"


# ---------------------------------------------------
# Saved Reports
# ---------------------------------------------------
class ReportSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    description: str | None = None
    cells_used: int
    created_at: datetime | None = None
    updated_at: datetime | None = None


class ReportDetail(ReportSummary):
    data: Any | None = None
    charts: Any | None = None
    settings: Any | None = None


# ---------------------------------------------------
# Export
# ---------------------------------------------------
class ExportStatistic(BaseModel):
    column: str = ""
    average: float = 0.0
    min: float = 0.0
    max: float = 0.0
    stdDev: float = 0.0


class ExportAnalysis(BaseModel):
    summary: str | None = None
    insights: list[str] | None = None
    trends: list[str] | None = None
    recommendations: list[str] | None = None
    patterns: list[str] | None = None
    qualityIssues: list[str] | None = None
    statistics: list[ExportStatistic] | None = None


class ExportReport(BaseModel):
    """
    The parts of an uploaded report that end up in the document; other
    upload fields are ignored.
    """
    name: str | None = None
    clientName: str | None = None
    analysis: ExportAnalysis | None = None


class ExportRequest(BaseModel):
    report: ExportReport | None = Field(None, description="Report as returned by the upload endpoint")
    rawData: list[list[Any]] | None = Field(None, description="Header row followed by data rows")
    format: str | None = Field("pdf", description="pdf, word/docx or powerpoint/ppt/pptx")


# ---------------------------------------------------
# Charts
# ---------------------------------------------------
class ChartTransformRequest(BaseModel):
    chartType: str | None = None
    data: list[dict[str, Any]] = Field(default_factory=list)


class ChartTransformResponse(BaseModel):
    chartType: str
    data: list[dict[str, Any]]
