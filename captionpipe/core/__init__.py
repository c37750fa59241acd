"""
Core export components: job state and configuration.
"""

from captionpipe.core.job import ExportJob, ExportResult, ExportState
from captionpipe.core.config import ExportConfig

__all__ = [
    "ExportJob",
    "ExportResult",
    "ExportState",
    "ExportConfig",
]
