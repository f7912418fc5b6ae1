"""Common interface of the distributed metric engines."""

from abc import ABC, abstractmethod
from typing import Any

from evalmetrics.core.data.types import RawMetricMap
from evalmetrics.torch.collectives import Collective, LocalCollective


class Metric(ABC):
    """A metric fed per device and per batch, finalized once per pass.

    The training loop drives every engine the same way::

        for batch in eval_batches:
            metric.set_batch_size(global_samples)  # only differs on a short batch
            for device_id, raw in enumerate(per_device_outputs):
                metric.accumulate(device_id, raw)
            metric.reduce(num_replicas)
        value = metric.finalize()  # identical on every process

    Every process must call ``reduce`` and ``finalize`` the same number of
    times, since both may issue collectives.
    """

    def __init__(self, num_local_devices: int, collective: Collective | None = None) -> None:
        self.collective = collective if collective is not None else LocalCollective()
        self.num_local_devices = num_local_devices
        self.num_processes = self.collective.world_size
        self.rank = self.collective.rank

    def set_batch_size(self, global_batch_size: int) -> None:
        """Declare the global sample count of the next batch.

        Engines whose result does not depend on it only check and record it.
        """
        if global_batch_size < 1:
            msg = f"Batch size must be positive, got {global_batch_size}"
            raise ValueError(msg)
        self._batch_size = global_batch_size

    @abstractmethod
    def accumulate(self, device_id: int, raw_metrics: RawMetricMap) -> None:
        """Ingest one device's outputs for the current batch."""

    @abstractmethod
    def reduce(self, num_replicas: int) -> None:
        """Close the current batch after every device has been accumulated."""

    @abstractmethod
    def finalize(self) -> float:
        """Compute the metric for the pass and reset for the next one."""

    @abstractmethod
    def reset(self) -> None:
        """Discard everything accumulated in the current pass."""

    def close(self) -> None:
        """Release buffers held by the engine."""

    def _check_device(self, device_id: int) -> None:
        if not 0 <= device_id < self.num_local_devices:
            msg = f"device_id {device_id} out of range for {self.num_local_devices} local devices"
            raise IndexError(msg)

    def __enter__(self) -> "Metric":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()
