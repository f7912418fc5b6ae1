"""Configuration management utilities."""

from evalmetrics.core.configs.loader import load_config, load_evaluation_config, save_config
from evalmetrics.core.configs.schema import (
    EvaluationConfig,
    LoggingConfig,
    MetricConfig,
    config_from_dict,
    config_to_dict,
)

__all__ = [
    "EvaluationConfig",
    "LoggingConfig",
    "MetricConfig",
    "config_from_dict",
    "config_to_dict",
    "load_config",
    "load_evaluation_config",
    "save_config",
]
