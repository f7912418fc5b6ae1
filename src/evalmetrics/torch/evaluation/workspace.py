"""Reusable scratch memory shared by the stages of a metric computation."""

from collections.abc import Mapping, Sequence
from dataclasses import dataclass

import torch
from loguru import logger
from torch import Tensor

# Byte alignment of every sub-view; large enough for any dtype view.
ALIGNMENT = 64


@dataclass(frozen=True)
class ScratchSpec:
    """One typed buffer a stage needs."""

    name: str
    dtype: torch.dtype
    numel: int

    @property
    def nbytes(self) -> int:
        return self.numel * self.dtype.itemsize


def _align(nbytes: int) -> int:
    return -(-nbytes // ALIGNMENT) * ALIGNMENT


def stage_bytes(specs: Sequence[ScratchSpec]) -> int:
    """Bytes a stage needs with all its buffers laid out back to back."""
    return sum(_align(spec.nbytes) for spec in specs)


class ScratchArena:
    """A single byte block sized to the largest stage and carved into views.

    Stages run one after another, so each stage's views start at the
    beginning of the block and may overwrite what an earlier stage left
    there. Buffers within one stage never overlap. The block is allocated
    once and never resized.
    """

    def __init__(
        self,
        layouts: Mapping[str, Sequence[ScratchSpec]],
        device: torch.device | str = "cpu",
    ) -> None:
        if not layouts:
            msg = "ScratchArena needs at least one stage layout"
            raise ValueError(msg)

        self._layouts = {stage: tuple(specs) for stage, specs in layouts.items()}
        self.nbytes = max(stage_bytes(specs) for specs in self._layouts.values())
        self._block: Tensor | None = torch.empty(self.nbytes, dtype=torch.uint8, device=device)

        logger.debug(
            f"Allocated {self.nbytes / 2**20:.1f} MiB scratch arena on {device} "
            f"for stages {sorted(self._layouts)}"
        )

    @property
    def stages(self) -> tuple[str, ...]:
        return tuple(self._layouts)

    def stage(self, name: str) -> dict[str, Tensor]:
        """Typed views for every buffer of stage ``name``."""
        if self._block is None:
            msg = "ScratchArena has been released"
            raise RuntimeError(msg)

        views = {}
        offset = 0
        for spec in self._layouts[name]:
            raw = self._block[offset : offset + spec.nbytes]
            views[spec.name] = raw.view(spec.dtype)
            offset += _align(spec.nbytes)
        return views

    def release(self) -> None:
        """Drop the backing block."""
        self._block = None
