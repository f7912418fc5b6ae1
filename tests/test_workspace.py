"""Tests for the scratch arena and prediction kinds."""

import pytest
import torch

from evalmetrics.core.configs import MetricConfig
from evalmetrics.torch.evaluation import PredictionKind, ScratchArena, ScratchSpec, to_full_precision
from evalmetrics.torch.evaluation.workspace import ALIGNMENT, stage_bytes


def byte_range(tensor: torch.Tensor) -> tuple[int, int]:
    start = tensor.data_ptr()
    return start, start + tensor.numel() * tensor.element_size()


class TestScratchArena:
    """Tests for ScratchArena."""

    @pytest.fixture
    def arena(self) -> ScratchArena:
        return ScratchArena(
            {
                "small": [ScratchSpec("indices", torch.int64, 10)],
                "large": [
                    ScratchSpec("flags", torch.bool, 10),
                    ScratchSpec("values", torch.float32, 10),
                    ScratchSpec("ranks", torch.int64, 10),
                ],
            }
        )

    def test_sized_to_largest_stage(self, arena: ScratchArena) -> None:
        """Test the block holds the largest stage and nothing more."""
        assert arena.nbytes == 4 * ALIGNMENT
        assert arena.nbytes == stage_bytes(
            [
                ScratchSpec("flags", torch.bool, 10),
                ScratchSpec("values", torch.float32, 10),
                ScratchSpec("ranks", torch.int64, 10),
            ]
        )

    def test_typed_views(self, arena: ScratchArena) -> None:
        """Test views carry the requested dtype and size."""
        views = arena.stage("large")
        assert views["flags"].dtype == torch.bool
        assert views["values"].dtype == torch.float32
        assert views["ranks"].shape == (10,)

    def test_views_within_stage_are_disjoint(self, arena: ScratchArena) -> None:
        """Test buffers of one stage never overlap."""
        ranges = sorted(byte_range(view) for view in arena.stage("large").values())
        for (_, end), (start, _) in zip(ranges, ranges[1:]):
            assert end <= start

    def test_stages_share_memory(self, arena: ScratchArena) -> None:
        """Test every stage starts at the beginning of the block."""
        assert arena.stage("small")["indices"].data_ptr() == arena.stage("large")["flags"].data_ptr()

    def test_views_are_stable(self, arena: ScratchArena) -> None:
        """Test repeated requests return the same memory."""
        first = arena.stage("large")["values"]
        first.fill_(3.0)
        assert torch.all(arena.stage("large")["values"] == 3.0)

    def test_released(self, arena: ScratchArena) -> None:
        """Test a released arena hands out no views."""
        arena.release()
        with pytest.raises(RuntimeError, match="released"):
            arena.stage("small")

    def test_requires_layout(self) -> None:
        """Test an arena needs at least one stage."""
        with pytest.raises(ValueError):
            ScratchArena({})


class TestPredictionKind:
    """Tests for prediction element kinds."""

    def test_from_config(self) -> None:
        """Test precision settings map onto kinds."""
        assert PredictionKind.from_config(MetricConfig(precision="full")) is PredictionKind.FLOAT32
        assert PredictionKind.from_config(MetricConfig(precision="reduced")) is PredictionKind.FLOAT16
        reduced_bf16 = MetricConfig(precision="reduced", reduced_dtype="bfloat16")
        assert PredictionKind.from_config(reduced_bf16) is PredictionKind.BFLOAT16

    def test_dtype(self) -> None:
        """Test kinds resolve to torch dtypes."""
        assert PredictionKind.BFLOAT16.dtype == torch.bfloat16
        assert PredictionKind.FLOAT16.is_reduced
        assert not PredictionKind.FLOAT32.is_reduced

    def test_check(self) -> None:
        """Test mismatched tensors are rejected."""
        PredictionKind.FLOAT16.check(torch.zeros(2, dtype=torch.float16))
        with pytest.raises(TypeError):
            PredictionKind.FLOAT16.check(torch.zeros(2, dtype=torch.bfloat16))

    def test_to_full_precision(self) -> None:
        """Test float32 passes through and reduced kinds are upconverted."""
        values = torch.rand(4)
        assert to_full_precision(values) is values

        converted = to_full_precision(torch.tensor([0.5, 0.25], dtype=torch.bfloat16))
        assert converted.dtype == torch.float32
        assert converted.tolist() == [0.5, 0.25]
