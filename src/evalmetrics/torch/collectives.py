"""Collective-communication capability injected into metric engines.

Engines only ever need four primitive shapes: a sum-reduce to the root,
a fixed-size gather to the root, a barrier and a broadcast from the root.
``LocalCollective`` implements them as no-ops for a single process so
that engine code paths are identical with and without a process group.
"""

from abc import ABC, abstractmethod
from collections.abc import Sequence

import torch
import torch.distributed as dist
from torch import Tensor

ROOT_RANK = 0


class Collective(ABC):
    """Process-group operations used by metric engines.

    All operations are blocking for the calling process and must be
    called by every participating process in the same order.
    """

    rank: int
    world_size: int

    @property
    def is_root(self) -> bool:
        """Whether this process receives reductions and gathers."""
        return self.rank == ROOT_RANK

    @property
    def device(self) -> torch.device:
        """Device on which scalar communication buffers must live."""
        return torch.device("cpu")

    @abstractmethod
    def reduce_sum(self, tensor: Tensor) -> None:
        """Sum ``tensor`` across processes in place; valid on root only."""

    @abstractmethod
    def gather(self, tensor: Tensor, chunks: Sequence[Tensor] | None) -> None:
        """Gather equal-size ``tensor`` from every process into ``chunks`` on root.

        Args:
            tensor: This process's contribution.
            chunks: On root, one destination per process in rank order.
                Ignored on other processes.
        """

    @abstractmethod
    def barrier(self) -> None:
        """Block until every process arrives."""

    @abstractmethod
    def broadcast(self, tensor: Tensor) -> None:
        """Overwrite ``tensor`` in place with root's value."""


class LocalCollective(Collective):
    """Single-process passthrough."""

    def __init__(self) -> None:
        self.rank = ROOT_RANK
        self.world_size = 1

    def reduce_sum(self, tensor: Tensor) -> None:
        pass

    def gather(self, tensor: Tensor, chunks: Sequence[Tensor] | None) -> None:
        if chunks is None:
            return
        if len(chunks) != 1:
            msg = f"Expected 1 gather destination for a single process, got {len(chunks)}"
            raise ValueError(msg)
        if chunks[0].data_ptr() != tensor.data_ptr():
            chunks[0].copy_(tensor)

    def barrier(self) -> None:
        pass

    def broadcast(self, tensor: Tensor) -> None:
        pass


class TorchCollective(Collective):
    """Collectives over an initialized ``torch.distributed`` process group.

    With the NCCL backend every tensor passed in must live on a CUDA
    device; with gloo, on the CPU.
    """

    def __init__(self, group: dist.ProcessGroup | None = None) -> None:
        if not dist.is_initialized():
            msg = "torch.distributed must be initialized before creating a TorchCollective"
            raise RuntimeError(msg)

        self.group = group
        self.rank = dist.get_rank(group)
        self.world_size = dist.get_world_size(group)
        self.backend = dist.get_backend(group)
        # Collective calls address ranks globally
        self._root = ROOT_RANK if group is None else dist.get_global_rank(group, ROOT_RANK)

    @property
    def device(self) -> torch.device:
        if self.backend == "nccl":
            return torch.device("cuda", torch.cuda.current_device())
        return torch.device("cpu")

    def reduce_sum(self, tensor: Tensor) -> None:
        dist.reduce(tensor, dst=self._root, op=dist.ReduceOp.SUM, group=self.group)

    def gather(self, tensor: Tensor, chunks: Sequence[Tensor] | None) -> None:
        gather_list = list(chunks) if self.is_root and chunks is not None else None
        if self.is_root and (gather_list is None or len(gather_list) != self.world_size):
            msg = f"Root must supply {self.world_size} gather destinations"
            raise ValueError(msg)
        dist.gather(tensor, gather_list=gather_list, dst=self._root, group=self.group)

    def barrier(self) -> None:
        dist.barrier(group=self.group)

    def broadcast(self, tensor: Tensor) -> None:
        dist.broadcast(tensor, src=self._root, group=self.group)


def create_collective(group: dist.ProcessGroup | None = None) -> Collective:
    """Pick the collective implementation for the current process.

    Returns a TorchCollective when a process group with more than one
    member is initialized, otherwise a LocalCollective.
    """
    if dist.is_available() and dist.is_initialized() and dist.get_world_size(group) > 1:
        return TorchCollective(group)
    return LocalCollective()
