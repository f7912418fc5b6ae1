"""Prediction element kinds accepted at the ingestion boundary."""

from enum import Enum
from typing import TYPE_CHECKING

import torch
from torch import Tensor

if TYPE_CHECKING:
    from evalmetrics.core.configs.schema import MetricConfig


class PredictionKind(Enum):
    """Element type of the prediction tensors a training loop produces."""

    FLOAT32 = "float32"
    FLOAT16 = "float16"
    BFLOAT16 = "bfloat16"

    @property
    def dtype(self) -> torch.dtype:
        """Torch dtype for this kind."""
        return getattr(torch, self.value)

    @property
    def is_reduced(self) -> bool:
        """Whether predictions need upconversion on ingestion."""
        return self is not PredictionKind.FLOAT32

    @classmethod
    def from_config(cls, config: "MetricConfig") -> "PredictionKind":
        """Resolve the kind selected by a metric config."""
        if config.precision == "full":
            return cls.FLOAT32
        return cls(config.reduced_dtype)

    def check(self, predictions: Tensor) -> None:
        """Raise TypeError if ``predictions`` is not of this kind."""
        if predictions.dtype != self.dtype:
            msg = f"Expected {self.value} predictions, got {predictions.dtype}"
            raise TypeError(msg)


def to_full_precision(values: Tensor) -> Tensor:
    """Normalize any supported prediction kind to float32."""
    if values.dtype == torch.float32:
        return values
    return values.to(torch.float32)
