from allocprep.metrics.logger import write_metrics, write_validation_log
from allocprep.metrics.metrics import collect_quality_metrics, compute_quality_score

__all__ = [
    "compute_quality_score",
    "collect_quality_metrics",
    "write_metrics",
    "write_validation_log",
]
