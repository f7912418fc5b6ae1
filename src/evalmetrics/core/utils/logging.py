"""Logging configuration utilities."""

import sys
from pathlib import Path
from typing import TYPE_CHECKING

from loguru import logger

from evalmetrics.core.utils.distributed import get_rank

if TYPE_CHECKING:
    from evalmetrics.core.configs.schema import LoggingConfig


def setup_logging(
    level: str = "INFO",
    log_file: str | Path | None = None,
    rotation: str = "10 MB",
    retention: str = "1 week",
    *,
    all_ranks: bool = False,
) -> None:
    """Configure loguru for the application.

    Every record is tagged with the process rank. By default only rank 0
    writes to the console; other ranks still write to the log file if one
    is configured.

    Args:
        level: Minimum log level to display.
        log_file: Optional path to a log file.
        rotation: When to rotate the log file.
        retention: How long to keep old log files.
        all_ranks: Emit console output on every rank, not only rank 0.
    """
    rank = get_rank()

    # Remove default handler
    logger.remove()
    logger.configure(extra={"rank": rank})

    if all_ranks or rank == 0:
        logger.add(
            sys.stderr,
            level=level,
            format=(
                "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
                "<level>{level: <8}</level> | "
                "<magenta>rank {extra[rank]}</magenta> | "
                "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
                "<level>{message}</level>"
            ),
            colorize=True,
        )

    if log_file:
        log_path = Path(log_file)
        if rank != 0:
            log_path = log_path.with_name(f"{log_path.stem}.rank{rank}{log_path.suffix}")
        log_path.parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            log_path,
            level=level,
            format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | rank {extra[rank]} | {name}:{function}:{line} | {message}",
            rotation=rotation,
            retention=retention,
            compression="gz",
        )

    logger.info(f"Logging configured at level: {level}")


def setup_logging_from_config(config: "LoggingConfig") -> None:
    """Configure loguru from a LoggingConfig."""
    setup_logging(
        level=config.level,
        log_file=config.file,
        rotation=config.rotation,
        retention=config.retention,
    )
