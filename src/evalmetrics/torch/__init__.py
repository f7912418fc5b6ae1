"""PyTorch implementations of the metric engines."""

from evalmetrics.torch.collectives import (
    Collective,
    LocalCollective,
    TorchCollective,
    create_collective,
)
from evalmetrics.torch.evaluation import (
    AUCMetric,
    AverageLossMetric,
    Metric,
    create_metric,
    roc_auc,
)

__all__ = [
    "AUCMetric",
    "AverageLossMetric",
    "Collective",
    "LocalCollective",
    "Metric",
    "TorchCollective",
    "create_collective",
    "create_metric",
    "roc_auc",
]
