"""Core utilities shared by every metric engine."""

from evalmetrics.core.configs import load_config, load_evaluation_config, save_config
from evalmetrics.core.utils.logging import setup_logging

__all__ = ["load_config", "load_evaluation_config", "save_config", "setup_logging"]
