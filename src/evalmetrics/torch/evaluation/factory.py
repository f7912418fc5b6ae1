"""Construct metric engines from configuration."""

from collections.abc import Sequence

import torch

from evalmetrics.core.configs.schema import MetricConfig
from evalmetrics.torch.collectives import Collective, create_collective
from evalmetrics.torch.evaluation.auc import AUCMetric
from evalmetrics.torch.evaluation.average_loss import AverageLossMetric
from evalmetrics.torch.evaluation.base import Metric


def create_metric(
    config: MetricConfig,
    collective: Collective | None = None,
    devices: Sequence[torch.device] | None = None,
) -> Metric:
    """Create the metric engine selected by ``config.kind``.

    Args:
        config: Metric configuration.
        collective: Process-group capability. Defaults to the initialized
            torch.distributed group, or a single process.
        devices: Local devices feeding the engine (AUC only).

    Returns:
        The metric engine.
    """
    if collective is None:
        collective = create_collective()

    if config.kind == "auc":
        return AUCMetric(config, collective, devices)
    if config.kind == "avg_loss":
        return AverageLossMetric(config, collective)

    msg = f"Unknown metric kind: {config.kind}"
    raise ValueError(msg)
