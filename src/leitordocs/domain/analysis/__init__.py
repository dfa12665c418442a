"""Document analysis orchestration."""

from leitordocs.domain.analysis.service import (
    AnalysisOutcome,
    DocumentAnalysisService,
    renamed_file_name,
)

__all__ = ["AnalysisOutcome", "DocumentAnalysisService", "renamed_file_name"]
