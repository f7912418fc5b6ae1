"""Shared utilities for evalmetrics."""

from evalmetrics.core.utils.distributed import (
    cleanup_distributed,
    get_local_devices,
    get_local_rank,
    get_rank,
    get_world_size,
    is_distributed,
    is_main_process,
    setup_distributed,
)
from evalmetrics.core.utils.logging import setup_logging, setup_logging_from_config

__all__ = [
    "cleanup_distributed",
    "get_local_devices",
    "get_local_rank",
    "get_rank",
    "get_world_size",
    "is_distributed",
    "is_main_process",
    "setup_distributed",
    "setup_logging",
    "setup_logging_from_config",
]
