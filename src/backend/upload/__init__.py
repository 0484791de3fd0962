"""
Upload batches: sequential fail-fast for small batches, a bounded worker pool
with aggregated failures for larger ones.
"""

from .models import UploadItem, UploadOutcome
from .pipeline import UploadPipeline, DEFAULT_MAX_WORKERS, DEFAULT_SEQUENTIAL_LIMIT

__all__ = [
    "UploadItem",
    "UploadOutcome",
    "UploadPipeline",
    "DEFAULT_MAX_WORKERS",
    "DEFAULT_SEQUENTIAL_LIMIT",
]
