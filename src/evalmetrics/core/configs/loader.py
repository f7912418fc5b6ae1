"""Configuration loading utilities."""

from pathlib import Path
from typing import Any

from omegaconf import DictConfig, OmegaConf

from evalmetrics.core.configs.schema import EvaluationConfig, config_from_dict, config_to_dict


def load_config(config_path: str | Path, overrides: list[str] | None = None) -> DictConfig:
    """Load a configuration file with optional overrides.

    Args:
        config_path: Path to the YAML configuration file.
        overrides: Optional list of CLI-style overrides (e.g., ["metric.num_batches=8"]).

    Returns:
        Merged configuration as a DictConfig.
    """
    config_path = Path(config_path)
    if not config_path.exists():
        msg = f"Config file not found: {config_path}"
        raise FileNotFoundError(msg)

    config = OmegaConf.load(config_path)

    if overrides:
        override_conf = OmegaConf.from_dotlist(overrides)
        config = OmegaConf.merge(config, override_conf)

    return config


def load_evaluation_config(
    config_path: str | Path | None = None,
    overrides: list[str] | None = None,
) -> EvaluationConfig:
    """Load a typed EvaluationConfig.

    Without a path, the dataclass defaults are used as the base and only
    the overrides are applied.

    Args:
        config_path: Optional path to a YAML configuration file.
        overrides: Optional list of CLI-style overrides.

    Returns:
        Validated EvaluationConfig.
    """
    if config_path is not None:
        config = load_config(config_path, overrides)
    else:
        config = OmegaConf.create(config_to_dict(EvaluationConfig()))
        if overrides:
            config = OmegaConf.merge(config, OmegaConf.from_dotlist(overrides))

    return config_from_dict(OmegaConf.to_container(config, resolve=True))  # type: ignore[arg-type]


def save_config(config: DictConfig | EvaluationConfig | dict[str, Any], path: str | Path) -> None:
    """Save a configuration to a YAML file.

    Args:
        config: Configuration to save.
        path: Path to save the configuration to.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    if isinstance(config, EvaluationConfig):
        config = config_to_dict(config)
    if isinstance(config, dict):
        config = OmegaConf.create(config)

    OmegaConf.save(config, path)
