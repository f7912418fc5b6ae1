"""Tests for configuration utilities."""

from pathlib import Path

import pytest

from evalmetrics.core.configs import (
    EvaluationConfig,
    MetricConfig,
    config_from_dict,
    config_to_dict,
    load_config,
    load_evaluation_config,
    save_config,
)


class TestConfigFiles:
    """Tests for loading and saving YAML configs."""

    def test_load_config_from_file(self, tmp_path: Path) -> None:
        """Test loading a config file."""
        config_file = tmp_path / "test.yaml"
        config_file.write_text("metric:\n  kind: auc\n  num_batches: 4\n")

        config = load_config(config_file)

        assert config.metric.kind == "auc"
        assert config.metric.num_batches == 4

    def test_load_config_with_overrides(self, tmp_path: Path) -> None:
        """Test loading config with CLI overrides."""
        config_file = tmp_path / "test.yaml"
        config_file.write_text("metric:\n  num_batches: 4\n")

        config = load_config(config_file, overrides=["metric.num_batches=8"])

        assert config.metric.num_batches == 8

    def test_missing_file(self, tmp_path: Path) -> None:
        """Test a missing config file raises."""
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "missing.yaml")

    def test_save_typed_config(self, tmp_path: Path) -> None:
        """Test a typed config survives a save and load."""
        config = EvaluationConfig(metric=MetricConfig(kind="avg_loss", num_local_devices=4))
        config_file = tmp_path / "output.yaml"

        save_config(config, config_file)

        assert config_file.exists()
        loaded = load_evaluation_config(config_file)
        assert loaded.metric.kind == "avg_loss"
        assert loaded.metric.num_local_devices == 4


class TestEvaluationConfig:
    """Tests for typed configuration."""

    def test_defaults_without_file(self) -> None:
        """Test defaults apply when no file is given."""
        config = load_evaluation_config(overrides=["metric.precision=reduced"])

        assert config.metric.kind == "auc"
        assert config.metric.precision == "reduced"

    def test_from_dict(self) -> None:
        """Test nested dictionaries become dataclasses."""
        config = config_from_dict({"metric": {"batch_size_per_device": 64}, "logging": {"file": "eval.log"}})

        assert config.metric.batch_size_per_device == 64
        assert config.logging.file == Path("eval.log")

    def test_to_dict_stringifies_paths(self) -> None:
        """Test paths are serializable."""
        data = config_to_dict(config_from_dict({"logging": {"file": "logs/eval.log"}}))
        assert data["logging"]["file"] == str(Path("logs/eval.log"))

    @pytest.mark.parametrize(
        "field, value",
        [
            ("kind", "f1"),
            ("precision", "half"),
            ("reduced_dtype", "int8"),
            ("storage", "disk"),
            ("batch_size_per_device", 0),
            ("num_batches", -1),
            ("num_local_devices", 0),
        ],
    )
    def test_invalid_metric_config(self, field: str, value: object) -> None:
        """Test invalid values are rejected at construction."""
        with pytest.raises(ValueError, match=field):
            MetricConfig(**{field: value})
