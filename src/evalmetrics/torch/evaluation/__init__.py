"""PyTorch evaluation metrics."""

from evalmetrics.torch.evaluation.auc import AUCMetric, AUCState
from evalmetrics.torch.evaluation.average_loss import AverageLossMetric
from evalmetrics.torch.evaluation.base import Metric
from evalmetrics.torch.evaluation.factory import create_metric
from evalmetrics.torch.evaluation.kernels import roc_auc, roc_curve
from evalmetrics.torch.evaluation.precision import PredictionKind, to_full_precision
from evalmetrics.torch.evaluation.workspace import ScratchArena, ScratchSpec

__all__ = [
    "AUCMetric",
    "AUCState",
    "AverageLossMetric",
    "Metric",
    "PredictionKind",
    "ScratchArena",
    "ScratchSpec",
    "create_metric",
    "roc_auc",
    "roc_curve",
    "to_full_precision",
]
