"""Command-line interface for evalmetrics."""

import math
from pathlib import Path

import numpy as np
import torch
import typer
from loguru import logger
from rich.console import Console

from evalmetrics import __version__
from evalmetrics.core.configs import MetricConfig, load_evaluation_config
from evalmetrics.core.data.types import RawMetric
from evalmetrics.core.utils.distributed import get_local_devices
from evalmetrics.core.utils.logging import setup_logging_from_config
from evalmetrics.torch.collectives import LocalCollective
from evalmetrics.torch.evaluation import PredictionKind, create_metric

app = typer.Typer(
    name="evalmetrics",
    help="evalmetrics: distributed evaluation metrics",
    add_completion=False,
)
console = Console()


@app.command()
def version() -> None:
    """Print version information."""
    console.print(f"[bold blue]evalmetrics[/bold blue] v{__version__}")


@app.command()
def evaluate(
    data: Path = typer.Argument(..., help="Path to an .npz file with predictions/labels or loss"),
    config: Path | None = typer.Option(None, "--config", "-c", help="YAML config file"),
    metric: str | None = typer.Option(None, "--metric", "-m", help="Metric kind: auc or avg_loss"),
    overrides: list[str] | None = typer.Option(None, "--set", "-s", help="Config override key=value"),
    cpu: bool = typer.Option(False, "--cpu", help="Map every logical device onto the CPU"),
) -> None:
    """Stream a saved evaluation run through a metric engine.

    For ``auc`` the file holds flat ``predictions`` and ``labels`` arrays,
    fed batch by batch and device by device. For ``avg_loss`` it holds a
    ``loss`` array of shape (num_batches, num_local_devices).
    """
    overrides = list(overrides or [])
    if metric is not None:
        overrides.append(f"metric.kind={metric}")

    try:
        eval_config = load_evaluation_config(config, overrides)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]Invalid configuration:[/red] {e}")
        raise typer.Exit(1) from e

    setup_logging_from_config(eval_config.logging)

    if not data.exists():
        logger.error(f"Data file not found: {data}")
        raise typer.Exit(1)

    with np.load(data) as arrays:
        if eval_config.metric.kind == "auc":
            value = _evaluate_auc(eval_config.metric, arrays["predictions"], arrays["labels"], cpu=cpu)
        else:
            value = _evaluate_loss(eval_config.metric, arrays["loss"])

    console.print(f"[bold cyan]{eval_config.metric.kind}[/bold cyan]: {value:.6f}")


def _evaluate_auc(
    metric_config: MetricConfig,
    predictions: np.ndarray,
    labels: np.ndarray,
    *,
    cpu: bool = False,
) -> float:
    predictions = torch.from_numpy(np.asarray(predictions, dtype=np.float32).reshape(-1))
    labels = torch.from_numpy(np.asarray(labels, dtype=np.float32).reshape(-1))
    if predictions.numel() != labels.numel():
        msg = f"predictions ({predictions.numel()}) and labels ({labels.numel()}) differ in length"
        raise typer.BadParameter(msg)

    bs = metric_config.batch_size_per_device
    global_batch = bs * metric_config.num_local_devices
    num_batches = max(math.ceil(predictions.numel() / global_batch), 1)
    if num_batches != metric_config.num_batches:
        logger.info(f"Using {num_batches} batches per pass to cover {predictions.numel():,} samples")
        metric_config.num_batches = num_batches

    if cpu:
        devices = [torch.device("cpu")] * metric_config.num_local_devices
    else:
        devices = get_local_devices(metric_config.num_local_devices)
    dtype = PredictionKind.from_config(metric_config).dtype
    with create_metric(metric_config, LocalCollective(), devices) as engine:
        for start in range(0, predictions.numel(), global_batch):
            batch_pred = predictions[start : start + global_batch]
            batch_label = labels[start : start + global_batch]
            engine.set_batch_size(batch_pred.numel())
            for device_id, device in enumerate(devices):
                lo = device_id * bs
                raw = {
                    RawMetric.PREDICTION: batch_pred[lo : lo + bs].to(device, dtype),
                    RawMetric.LABEL: batch_label[lo : lo + bs].to(device),
                }
                engine.accumulate(device_id, raw)
            engine.reduce(len(devices))
        return engine.finalize()


def _evaluate_loss(metric_config: MetricConfig, losses: np.ndarray) -> float:
    losses = np.asarray(losses, dtype=np.float32)
    if losses.ndim == 1:
        losses = losses[:, None]
    metric_config.num_local_devices = losses.shape[1]

    with create_metric(metric_config, LocalCollective()) as engine:
        for batch in losses:
            for device_id, loss in enumerate(batch):
                engine.accumulate(device_id, {RawMetric.LOSS: torch.tensor([loss])})
            engine.reduce(len(batch))
        return engine.finalize()


if __name__ == "__main__":
    app()
