"""Exact ROC AUC over every prediction of an evaluation pass.

Each process owns flat accumulation buffers sized for the worst case of a
whole pass on every process. Devices copy their slice of each batch into
disjoint ranges, so no locking is needed. After the pass the ranges of all
processes are gathered into the root's buffers, where the full sort,
tie compaction and integration run; the scalar is then broadcast back.

Buffer layout on one process, for batch ``b`` with ``bs`` samples per
device::

    | batch 0 dev 0 | batch 0 dev 1 | ... | batch b dev 0 | batch b dev 1 | ...
    ^ offset after b batches          ^ offset + device_id * bs
"""

from collections.abc import Sequence
from enum import Enum

import torch
from loguru import logger
from torch import Tensor

from evalmetrics.core.configs.schema import MetricConfig
from evalmetrics.core.data.types import RawMetric, RawMetricMap
from evalmetrics.core.utils.distributed import get_local_devices
from evalmetrics.torch.collectives import Collective
from evalmetrics.torch.evaluation.base import Metric
from evalmetrics.torch.evaluation.kernels import (
    compact_runs,
    flag_run_ends,
    roc_rates,
    sort_descending,
    trapezoid_auc,
)
from evalmetrics.torch.evaluation.precision import PredictionKind, to_full_precision
from evalmetrics.torch.evaluation.workspace import ScratchArena, ScratchSpec


class AUCState(Enum):
    """Lifecycle of one evaluation pass."""

    IDLE = "idle"
    INGESTING = "ingesting"
    GATHERING = "gathering"
    COMPUTING = "computing"
    BROADCASTING = "broadcasting"


class AUCMetric(Metric):
    """Distributed exact ROC AUC with pre-allocated, reused buffers.

    Args:
        config: Metric configuration; fixes every buffer size.
        collective: Process-group capability. Defaults to a single process.
        devices: Local devices feeding the engine, one per ``device_id``.
            Defaults to the devices assigned to this process.
    """

    def __init__(
        self,
        config: MetricConfig,
        collective: Collective | None = None,
        devices: Sequence[torch.device] | None = None,
    ) -> None:
        super().__init__(config.num_local_devices, collective)

        self.batch_size_per_device = config.batch_size_per_device
        self.num_batches = config.num_batches
        self.prediction_kind = PredictionKind.from_config(config)
        self.devices = list(devices) if devices is not None else get_local_devices(self.num_local_devices)
        if len(self.devices) != self.num_local_devices:
            msg = f"Got {len(self.devices)} devices for {self.num_local_devices} local devices"
            raise ValueError(msg)

        self.local_capacity = self.batch_size_per_device * self.num_batches * self.num_local_devices
        self.capacity = self.local_capacity * self.num_processes
        self._full_batch_size = self.batch_size_per_device * self.num_local_devices * self.num_processes

        if config.storage == "device":
            self.storage_device = self.devices[0]
            pin_memory = False
        else:
            self.storage_device = torch.device("cpu")
            pin_memory = torch.cuda.is_available()

        if self.num_processes > 1 and self.storage_device.type != self.collective.device.type:
            msg = (
                f"Buffers on {self.storage_device.type} cannot be gathered by a collective "
                f"operating on {self.collective.device.type}; use storage='device' with NCCL "
                "or the gloo backend with storage='host'"
            )
            raise ValueError(msg)

        self._pred = self._allocate(pin_memory)
        self._label = self._allocate(pin_memory)
        self._pred_sorted = self._allocate(pin_memory)
        self._label_sorted = self._allocate(pin_memory)
        self._workspace = ScratchArena(self._workspace_layouts(self.capacity), device=self.storage_device)
        self._result = torch.zeros(1, dtype=torch.float32, device=self.collective.device)

        self.offset = 0
        self.state = AUCState.IDLE
        self._batch_size = self._full_batch_size
        self._batches_seen = 0
        self._gathered = False
        self._closed = False

        logger.debug(
            f"AUC engine: {self.num_local_devices} devices x {self.num_processes} processes, "
            f"capacity {self.capacity:,} pairs on {self.storage_device} "
            f"({self.prediction_kind.value} predictions)"
        )

    def _allocate(self, pin_memory: bool) -> Tensor:
        return torch.empty(
            self.capacity,
            dtype=torch.float32,
            device=self.storage_device,
            pin_memory=pin_memory,
        )

    @staticmethod
    def _workspace_layouts(n: int) -> dict[str, list[ScratchSpec]]:
        """Scratch each stage of finalize needs for ``n`` pairs."""
        return {
            "sort": [ScratchSpec("indices", torch.int64, n)],
            "statistics": [
                ScratchSpec("flags", torch.bool, n),
                ScratchSpec("diff", torch.float32, n),
                ScratchSpec("cumulative", torch.float32, n),
                ScratchSpec("slots", torch.int64, n),
                ScratchSpec("positions", torch.int64, n),
                ScratchSpec("true_positives", torch.float32, n),
                ScratchSpec("ranks", torch.int64, n),
                ScratchSpec("fpr", torch.float32, n),
            ],
        }

    @property
    def workspace_bytes(self) -> int:
        return self._workspace.nbytes

    @property
    def num_accumulated(self) -> int:
        """Pairs written by this process in the current pass."""
        return self.offset

    def set_batch_size(self, global_batch_size: int) -> None:
        """Declare the global sample count of the next batch.

        Only needed for a short batch; the count reverts to a full batch
        after every ``reduce``.
        """
        if not 0 < global_batch_size <= self._full_batch_size:
            msg = f"Batch size must be in (0, {self._full_batch_size}], got {global_batch_size}"
            raise ValueError(msg)
        self._batch_size = global_batch_size

    def _split_batch(self) -> tuple[int, int]:
        """Number of fully active devices and the remainder for the next one."""
        return divmod(self._batch_size, self.batch_size_per_device * self.num_processes)

    def _device_share(self, device_id: int) -> int:
        active_devices, remainder = self._split_batch()
        if device_id < active_devices:
            return self.batch_size_per_device
        if device_id == active_devices:
            return remainder
        return 0

    def accumulate(self, device_id: int, raw_metrics: RawMetricMap) -> None:
        self._check_open()
        self._check_device(device_id)

        count = self._device_share(device_id)
        if count == 0:
            return

        predictions = raw_metrics[RawMetric.PREDICTION]
        labels = raw_metrics[RawMetric.LABEL]
        self.prediction_kind.check(predictions)
        if predictions.numel() < count or labels.numel() < count:
            msg = (
                f"Device {device_id} must supply {count} predictions and labels, "
                f"got {predictions.numel()} and {labels.numel()}"
            )
            raise ValueError(msg)

        start = self.offset + device_id * self.batch_size_per_device
        end = start + count
        if end > self.local_capacity:
            msg = (
                f"Accumulating {end:,} pairs exceeds the per-process capacity of "
                f"{self.local_capacity:,}; more than {self.num_batches} batches in this pass?"
            )
            raise RuntimeError(msg)

        self._pred[start:end].copy_(to_full_precision(predictions.reshape(-1)[:count]), non_blocking=True)
        self._label[start:end].copy_(labels.reshape(-1)[:count], non_blocking=True)
        self.state = AUCState.INGESTING

    def reduce(self, num_replicas: int) -> None:
        """Advance past the batch; gather once the pass is complete.

        ``num_replicas`` is unused: every pair counts once regardless of
        how many devices produced the batch.
        """
        self._check_open()
        if self._batches_seen == self.num_batches:
            msg = f"Pass already holds {self.num_batches} batches; call finalize() first"
            raise RuntimeError(msg)

        active_devices, remainder = self._split_batch()
        self.offset += self.batch_size_per_device * active_devices + remainder
        self._batch_size = self._full_batch_size
        self._batches_seen += 1

        if self._batches_seen == self.num_batches:
            self._gather()

    def _gather(self) -> None:
        """Collect every process's ``[0, offset)`` range into root's buffers.

        Each process stages its range in the sorted buffers, so the root
        can receive rank ``r``'s range directly into
        ``[r * offset, (r + 1) * offset)`` of the accumulation buffers.
        """
        self._gathered = True
        n = self.offset
        if self.num_processes == 1 or n == 0:
            return

        self.state = AUCState.GATHERING
        self._synchronize()
        self._pred_sorted[:n].copy_(self._pred[:n])
        self._label_sorted[:n].copy_(self._label[:n])

        pred_chunks = label_chunks = None
        if self.collective.is_root:
            pred_chunks = self._pred[: n * self.num_processes].split(n)
            label_chunks = self._label[: n * self.num_processes].split(n)
        self.collective.gather(self._pred_sorted[:n], pred_chunks)
        self.collective.gather(self._label_sorted[:n], label_chunks)

        logger.debug(f"Gathered {n:,} pairs from each of {self.num_processes} processes")

    def _synchronize(self) -> None:
        """Wait for every pending copy into the accumulation buffers."""
        for device in {*self.devices, self.storage_device}:
            if device.type == "cuda":
                torch.cuda.synchronize(device)

    def finalize(self) -> float:
        self._check_open()
        if not self._gathered:
            self._gather()

        if self.collective.is_root:
            self._synchronize()
            self.state = AUCState.COMPUTING
            self._result.copy_(self._compute(self.offset * self.num_processes).reshape(1))
        else:
            self._result.zero_()

        self.offset = 0
        self._batch_size = self._full_batch_size
        self._batches_seen = 0
        self._gathered = False

        self.state = AUCState.BROADCASTING
        self.collective.barrier()
        self.collective.broadcast(self._result)
        value = self._result.item()

        self.state = AUCState.IDLE
        if self.collective.is_root:
            logger.info(f"AUC: {value:.6f}")
        return value

    def _compute(self, n: int) -> Tensor:
        """Run sort, compaction, rates and integration over ``n`` pairs."""
        if n == 0:
            logger.warning("AUC requested for an empty evaluation pass")
            return torch.tensor(float("nan"))

        sort_scratch = self._workspace.stage("sort")
        pred_sorted, label_sorted = sort_descending(
            self._pred[:n],
            self._label[:n],
            predictions_out=self._pred_sorted[:n],
            labels_out=self._label_sorted[:n],
            indices_out=sort_scratch["indices"][:n],
        )

        scratch = self._workspace.stage("statistics")
        flags = flag_run_ends(pred_sorted, out=scratch["flags"][:n], diff_out=scratch["diff"][: n - 1])
        true_positives, ranks = compact_runs(
            label_sorted,
            flags,
            cumulative_out=scratch["cumulative"][:n],
            slots_out=scratch["slots"][:n],
            positions_out=scratch["positions"][:n],
            true_positives_out=scratch["true_positives"][:n],
            ranks_out=scratch["ranks"][:n],
        )
        num_unique = true_positives.numel()
        tpr, fpr = roc_rates(
            true_positives,
            ranks,
            n,
            tpr_out=true_positives,
            fpr_out=scratch["fpr"][:num_unique],
        )

        logger.debug(f"AUC over {n:,} pairs with {num_unique:,} distinct predictions")
        return trapezoid_auc(fpr, tpr)

    def reset(self) -> None:
        self.offset = 0
        self._batch_size = self._full_batch_size
        self._batches_seen = 0
        self._gathered = False
        self.state = AUCState.IDLE

    def close(self) -> None:
        if self._closed:
            return
        self._workspace.release()
        del self._pred, self._label, self._pred_sorted, self._label_sorted
        self._closed = True

    def _check_open(self) -> None:
        if self._closed:
            msg = "AUC engine has been closed"
            raise RuntimeError(msg)
