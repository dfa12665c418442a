"""Batch analysis client."""

from leitordocs.domain.batch.analyzer import (
    BatchAnalyzer,
    BatchFile,
    BatchItemResult,
    BatchPlan,
    BatchReport,
    chunked,
    new_batch_id,
    plan_batch,
)

__all__ = [
    "BatchAnalyzer",
    "BatchFile",
    "BatchItemResult",
    "BatchPlan",
    "BatchReport",
    "chunked",
    "new_batch_id",
    "plan_batch",
]
