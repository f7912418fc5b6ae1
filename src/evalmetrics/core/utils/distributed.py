"""Utilities for locating this process within a multi-GPU, multi-process job."""

import os

import torch
import torch.distributed as dist


def get_rank() -> int:
    """Get the rank of the current process.

    Returns:
        Process rank (0 if not in distributed mode).
    """
    if dist.is_available() and dist.is_initialized():
        return dist.get_rank()

    # Check environment variables (set by torchrun/SLURM)
    for var in ("RANK", "SLURM_PROCID", "LOCAL_RANK"):
        if var in os.environ:
            return int(os.environ[var])

    return 0


def get_local_rank() -> int:
    """Get the local rank of the current process on this node.

    Returns:
        Local rank (0 if not in distributed mode).
    """
    if "LOCAL_RANK" in os.environ:
        return int(os.environ["LOCAL_RANK"])

    return get_rank()


def get_world_size() -> int:
    """Get the total number of processes.

    Returns:
        World size (1 if not in distributed mode).
    """
    if dist.is_available() and dist.is_initialized():
        return dist.get_world_size()

    # Check environment variables
    for var in ("WORLD_SIZE", "SLURM_NTASKS"):
        if var in os.environ:
            return int(os.environ[var])

    return 1


def is_main_process() -> bool:
    """Check if this is the main (rank 0) process.

    Returns:
        True if rank is 0.
    """
    return get_rank() == 0


def is_distributed() -> bool:
    """Check if running in distributed mode.

    Returns:
        True if world_size > 1.
    """
    return get_world_size() > 1


def setup_distributed(backend: str = "nccl") -> None:
    """Initialize the distributed process group.

    Metric engines never call this themselves; the process group is
    owned by the surrounding training loop or script.

    Args:
        backend: Communication backend ("nccl" for GPU, "gloo" for CPU).
    """
    if dist.is_initialized():
        return

    if not is_distributed():
        return

    dist.init_process_group(backend=backend)

    local_rank = get_local_rank()
    if backend == "nccl" and torch.cuda.is_available():
        torch.cuda.set_device(local_rank)


def cleanup_distributed() -> None:
    """Clean up the distributed process group."""
    if dist.is_available() and dist.is_initialized():
        dist.destroy_process_group()


def get_local_devices(num_devices: int) -> list[torch.device]:
    """Get the devices a single process drives for evaluation.

    Each process owns ``num_devices`` consecutive GPUs. Without CUDA, all
    logical devices map onto the CPU.

    Args:
        num_devices: Number of local devices per process.

    Returns:
        List of torch.device, one per logical device.
    """
    if not torch.cuda.is_available():
        return [torch.device("cpu")] * num_devices

    available = torch.cuda.device_count()
    first = (get_local_rank() * num_devices) if is_distributed() else 0
    if first + num_devices > available:
        msg = (
            f"Need {num_devices} CUDA devices starting at index {first}, "
            f"but only {available} are visible"
        )
        raise RuntimeError(msg)

    return [torch.device(f"cuda:{first + i}") for i in range(num_devices)]
