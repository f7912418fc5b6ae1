#!/usr/bin/env python3
"""Benchmark the distributed AUC engine on synthetic data.

Every process generates its own shard of scores and labels, feeds them
through the engine device by device, and times accumulation and finalize.

Usage:
    # Single process
    python scripts/benchmark_auc.py --batch-size 65536 --num-batches 100

    # 4 processes on CPU
    torchrun --nproc_per_node=4 scripts/benchmark_auc.py --backend gloo

    # 8 GPUs, buffers on device
    torchrun --nproc_per_node=8 scripts/benchmark_auc.py --backend nccl --storage device
"""

import time

import torch
import typer
from loguru import logger
from rich.console import Console
from tqdm import tqdm

from evalmetrics.core.configs import MetricConfig
from evalmetrics.core.data.types import RawMetric
from evalmetrics.core.utils.distributed import (
    cleanup_distributed,
    get_local_devices,
    get_rank,
    is_main_process,
    setup_distributed,
)
from evalmetrics.core.utils.logging import setup_logging
from evalmetrics.torch.collectives import create_collective
from evalmetrics.torch.evaluation import AUCMetric, roc_auc

app = typer.Typer()
console = Console()


@app.command()
def benchmark(
    batch_size: int = typer.Option(16384, "--batch-size", "-b", help="Samples per device per batch"),
    num_batches: int = typer.Option(32, "--num-batches", "-n", help="Batches per evaluation pass"),
    num_devices: int = typer.Option(1, "--num-devices", "-d", help="Local devices per process"),
    passes: int = typer.Option(2, "--passes", "-p", help="Evaluation passes to run"),
    backend: str = typer.Option("gloo", "--backend", help="Distributed backend"),
    storage: str = typer.Option("host", "--storage", help="Buffer placement: host or device"),
    reduced: bool = typer.Option(False, "--reduced", help="Feed float16 predictions"),
    check: bool = typer.Option(False, "--check", help="Verify single-process results against roc_auc"),
    seed: int = typer.Option(42, "--seed", help="Random seed"),
) -> None:
    """Run timed evaluation passes through AUCMetric."""
    setup_logging()
    setup_distributed(backend=backend)

    config = MetricConfig(
        kind="auc",
        precision="reduced" if reduced else "full",
        batch_size_per_device=batch_size,
        num_batches=num_batches,
        num_local_devices=num_devices,
        storage=storage,
    )
    collective = create_collective()
    devices = get_local_devices(num_devices)
    engine = AUCMetric(config, collective, devices)
    dtype = engine.prediction_kind.dtype

    if is_main_process():
        logger.info(
            f"Capacity {engine.capacity:,} pairs, workspace {engine.workspace_bytes / 2**20:.1f} MiB, "
            f"{collective.world_size} processes x {num_devices} devices"
        )

    generator = torch.Generator().manual_seed(seed + get_rank())
    for pass_idx in range(passes):
        shards = []
        start = time.perf_counter()
        for _ in tqdm(range(num_batches), desc=f"Pass {pass_idx}", disable=not is_main_process()):
            for device_id, device in enumerate(devices):
                labels = (torch.rand(batch_size, generator=generator) < 0.3).float()
                scores = torch.rand(batch_size, generator=generator) + 0.25 * labels
                if check:
                    shards.append((scores.clone(), labels.clone()))
                raw = {
                    RawMetric.PREDICTION: scores.to(device, dtype),
                    RawMetric.LABEL: labels.to(device),
                }
                engine.accumulate(device_id, raw)
            engine.reduce(num_devices)
        ingest_time = time.perf_counter() - start

        start = time.perf_counter()
        auc = engine.finalize()
        finalize_time = time.perf_counter() - start

        if is_main_process():
            console.print(
                f"[bold]pass {pass_idx}[/bold] auc={auc:.6f} "
                f"ingest={ingest_time:.3f}s finalize={finalize_time:.3f}s"
            )
            if check and collective.world_size == 1:
                scores = torch.cat([s for s, _ in shards]).to(dtype).float()
                labels = torch.cat([lbl for _, lbl in shards])
                console.print(f"  reference={roc_auc(scores, labels):.6f}")

    engine.close()
    cleanup_distributed()


if __name__ == "__main__":
    app()
