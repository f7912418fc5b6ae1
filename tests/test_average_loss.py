"""Tests for the average loss accumulator."""

import pytest
import torch

from evalmetrics.core.configs import MetricConfig
from evalmetrics.core.data.types import RawMetric
from evalmetrics.torch.evaluation import AverageLossMetric, create_metric


@pytest.fixture
def loss_metric() -> AverageLossMetric:
    return AverageLossMetric(MetricConfig(kind="avg_loss", num_local_devices=3))


def feed_batch(metric: AverageLossMetric, losses: list[float]) -> None:
    for device_id, loss in enumerate(losses):
        metric.accumulate(device_id, {RawMetric.LOSS: torch.tensor(loss)})
    metric.reduce(len(losses))


class TestAverageLoss:
    """Tests for AverageLossMetric."""

    def test_single_batch(self, loss_metric: AverageLossMetric) -> None:
        """Test per-device losses are averaged over replicas."""
        feed_batch(loss_metric, [1.0, 2.0, 3.0])
        assert loss_metric.finalize() == 2.0

    def test_finalize_resets(self, loss_metric: AverageLossMetric) -> None:
        """Test a second finalize without batches gives zero."""
        feed_batch(loss_metric, [1.0, 2.0, 3.0])
        loss_metric.finalize()
        assert loss_metric.finalize() == 0.0

    def test_averages_over_batches(self, loss_metric: AverageLossMetric) -> None:
        """Test the result is the mean of per-batch averages."""
        feed_batch(loss_metric, [1.0, 2.0, 3.0])
        feed_batch(loss_metric, [3.0, 4.0, 5.0])
        assert loss_metric.finalize() == pytest.approx(3.0)

    def test_reads_first_element_of_device_tensor(self, loss_metric: AverageLossMetric) -> None:
        """Test a one-element loss tensor of any shape is accepted."""
        for device_id in range(3):
            loss_metric.accumulate(device_id, {RawMetric.LOSS: torch.tensor([[6.0]])})
        loss_metric.reduce(3)
        assert loss_metric.finalize() == pytest.approx(6.0)

    def test_no_batches_is_zero(self, loss_metric: AverageLossMetric) -> None:
        """Test finalize before any reduce gives zero."""
        assert loss_metric.finalize() == 0.0

    def test_device_out_of_range(self, loss_metric: AverageLossMetric) -> None:
        """Test unknown device ids are rejected."""
        with pytest.raises(IndexError):
            loss_metric.accumulate(3, {RawMetric.LOSS: torch.tensor(1.0)})

    def test_factory(self) -> None:
        """Test kind 'avg_loss' selects the loss accumulator."""
        assert isinstance(create_metric(MetricConfig(kind="avg_loss")), AverageLossMetric)


class TestBatchSizeDeclaration:
    """Tests for set_batch_size through the common Metric interface."""

    def test_short_batch_does_not_change_loss(self, loss_metric: AverageLossMetric) -> None:
        """Test a declared short batch is accepted and ignored by the loss average."""
        loss_metric.set_batch_size(2)
        feed_batch(loss_metric, [1.0, 2.0, 3.0])
        assert loss_metric.finalize() == 2.0

    @pytest.mark.parametrize("kind", ["avg_loss", "auc"])
    def test_rejects_non_positive(self, kind: str) -> None:
        """Test every engine rejects an empty batch declaration."""
        metric = create_metric(MetricConfig(kind=kind), devices=[torch.device("cpu")])
        with pytest.raises(ValueError, match="Batch size"):
            metric.set_batch_size(0)
