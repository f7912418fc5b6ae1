"""Average evaluation loss across devices, batches and processes."""

import torch
from loguru import logger

from evalmetrics.core.configs.schema import MetricConfig
from evalmetrics.core.data.types import RawMetric, RawMetricMap
from evalmetrics.torch.collectives import Collective
from evalmetrics.torch.evaluation.base import Metric


class AverageLossMetric(Metric):
    """Mean of per-batch losses, each averaged over replicas and processes."""

    def __init__(self, config: MetricConfig, collective: Collective | None = None) -> None:
        super().__init__(config.num_local_devices, collective)

        self._device_losses = torch.zeros(self.num_local_devices, dtype=torch.float32)
        # Communication buffers live where the backend can reach them
        self._batch_loss = torch.zeros(1, dtype=torch.float32, device=self.collective.device)
        self._result = torch.zeros(1, dtype=torch.float32, device=self.collective.device)
        self._total = 0.0
        self._num_batches = 0

    def accumulate(self, device_id: int, raw_metrics: RawMetricMap) -> None:
        self._check_device(device_id)
        loss = raw_metrics[RawMetric.LOSS]
        self._device_losses[device_id] = loss.detach().reshape(-1)[0]

    def reduce(self, num_replicas: int) -> None:
        batch_loss = self._device_losses.sum() / num_replicas / self.num_processes
        self._batch_loss.fill_(batch_loss.item())
        self.collective.reduce_sum(self._batch_loss)

        if self.collective.is_root:
            self._total += self._batch_loss.item()
        self._num_batches += 1

    def finalize(self) -> float:
        value = 0.0
        if self.collective.is_root and self._num_batches > 0:
            value = self._total / self._num_batches
        self._result.fill_(value)

        self.collective.barrier()
        self.collective.broadcast(self._result)
        result = self._result.item()

        logger.debug(f"Average loss over {self._num_batches} batches: {result:.6f}")
        self.reset()
        return result

    def reset(self) -> None:
        self._total = 0.0
        self._num_batches = 0
