"""Pytest configuration and shared fixtures."""

from collections.abc import Callable

import pytest
import torch

from evalmetrics.core.configs import MetricConfig
from evalmetrics.core.data.types import RawMetric
from evalmetrics.torch.evaluation import AUCMetric


@pytest.fixture
def device() -> torch.device:
    """Get the best available device for testing."""
    if torch.cuda.is_available():
        return torch.device("cuda")
    return torch.device("cpu")


@pytest.fixture
def make_auc() -> Callable[..., AUCMetric]:
    """Build a single-process AUC engine on CPU devices."""

    def _make(
        batch_size_per_device: int = 4,
        num_batches: int = 1,
        num_local_devices: int = 1,
        **overrides,
    ) -> AUCMetric:
        config = MetricConfig(
            kind="auc",
            batch_size_per_device=batch_size_per_device,
            num_batches=num_batches,
            num_local_devices=num_local_devices,
            **overrides,
        )
        return AUCMetric(config, devices=[torch.device("cpu")] * num_local_devices)

    return _make


@pytest.fixture
def feed_pass() -> Callable[[AUCMetric, torch.Tensor, torch.Tensor], None]:
    """Feed flat predictions/labels through an engine batch by batch, device by device."""

    def _feed(engine: AUCMetric, predictions: torch.Tensor, labels: torch.Tensor) -> None:
        bs = engine.batch_size_per_device
        global_batch = bs * engine.num_local_devices
        for start in range(0, predictions.numel(), global_batch):
            batch_pred = predictions[start : start + global_batch]
            batch_label = labels[start : start + global_batch]
            engine.set_batch_size(batch_pred.numel())
            for device_id in range(engine.num_local_devices):
                lo = device_id * bs
                engine.accumulate(
                    device_id,
                    {
                        RawMetric.PREDICTION: batch_pred[lo : lo + bs],
                        RawMetric.LABEL: batch_label[lo : lo + bs],
                    },
                )
            engine.reduce(engine.num_local_devices)

    return _feed


@pytest.fixture
def scored_sample() -> tuple[torch.Tensor, torch.Tensor]:
    """Random scores with many ties, positives shifted upward."""
    generator = torch.Generator().manual_seed(0)
    labels = (torch.rand(200, generator=generator) < 0.4).float()
    scores = torch.rand(200, generator=generator) + 0.3 * labels
    return torch.round(scores * 20) / 20, labels
