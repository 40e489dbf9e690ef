"""Report building for one scan."""

from .builder import PARSE_ERROR_MESSAGE, HealthReportBuilder, ReportResult

__all__ = ["PARSE_ERROR_MESSAGE", "HealthReportBuilder", "ReportResult"]
