"""Strongly-typed configuration schemas for distributed evaluation metrics.

These dataclasses provide validation, IDE support, and serve as the
single source of truth for all configuration options.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

METRIC_KINDS = ("avg_loss", "auc")
PRECISIONS = ("full", "reduced")
REDUCED_DTYPES = ("float16", "bfloat16")
STORAGE_MODES = ("host", "device")


@dataclass
class MetricConfig:
    """Configuration for one metric engine.

    Buffer sizing is derived entirely from these values (together with the
    process count of the collective the engine is built with), so they are
    fixed for the lifetime of the engine.
    """

    kind: str = "auc"  # "avg_loss" | "auc"
    precision: str = "full"  # "full" | "reduced"
    reduced_dtype: str = "float16"  # Used when precision == "reduced"
    batch_size_per_device: int = 1024
    num_batches: int = 1  # Batches per evaluation pass
    num_local_devices: int = 1
    storage: str = "host"  # "host" (pinned when CUDA is present) | "device"

    def __post_init__(self) -> None:
        """Validate choices and sizes."""
        if self.kind not in METRIC_KINDS:
            msg = f"Unknown metric kind {self.kind!r}, expected one of {METRIC_KINDS}"
            raise ValueError(msg)
        if self.precision not in PRECISIONS:
            msg = f"Unknown precision {self.precision!r}, expected one of {PRECISIONS}"
            raise ValueError(msg)
        if self.reduced_dtype not in REDUCED_DTYPES:
            msg = f"Unknown reduced_dtype {self.reduced_dtype!r}, expected one of {REDUCED_DTYPES}"
            raise ValueError(msg)
        if self.storage not in STORAGE_MODES:
            msg = f"Unknown storage mode {self.storage!r}, expected one of {STORAGE_MODES}"
            raise ValueError(msg)

        for name in ("batch_size_per_device", "num_batches", "num_local_devices"):
            value = getattr(self, name)
            if value < 1:
                msg = f"{name} must be positive, got {value}"
                raise ValueError(msg)


@dataclass
class LoggingConfig:
    """Configuration for loguru sinks."""

    level: str = "INFO"
    file: Path | None = None
    rotation: str = "10 MB"
    retention: str = "1 week"

    def __post_init__(self) -> None:
        """Convert string to Path if needed."""
        if isinstance(self.file, str):
            self.file = Path(self.file)


@dataclass
class EvaluationConfig:
    """Top-level configuration combining all sub-configs."""

    metric: MetricConfig = field(default_factory=MetricConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def config_from_dict(data: dict[str, Any]) -> EvaluationConfig:
    """Create EvaluationConfig from a dictionary (e.g., from OmegaConf).

    Args:
        data: Dictionary with configuration values.

    Returns:
        EvaluationConfig instance.
    """
    return EvaluationConfig(
        metric=MetricConfig(**data.get("metric", {})),
        logging=LoggingConfig(**data.get("logging", {})),
    )


def config_to_dict(config: EvaluationConfig) -> dict[str, Any]:
    """Convert EvaluationConfig to a dictionary for serialization.

    Args:
        config: EvaluationConfig instance.

    Returns:
        Dictionary representation.
    """
    from dataclasses import asdict

    result = asdict(config)
    # Convert Path objects to strings for YAML serialization
    if result["logging"]["file"] is not None:
        result["logging"]["file"] = str(result["logging"]["file"])
    return result
