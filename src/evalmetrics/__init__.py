"""evalmetrics: distributed evaluation metrics for multi-GPU training loops.

Engines live in `evalmetrics.torch`:
- `from evalmetrics.torch import AUCMetric, AverageLossMetric, create_metric`

Shared utilities are in `evalmetrics.core`:
- `from evalmetrics.core import setup_logging, load_config`
"""

__version__ = "0.1.0"

# Re-export common utilities for convenience
from evalmetrics.core import load_config, load_evaluation_config, save_config, setup_logging

__all__ = [
    "__version__",
    "load_config",
    "load_evaluation_config",
    "save_config",
    "setup_logging",
]
