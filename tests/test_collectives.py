"""Tests for the single-process collective."""

import pytest
import torch

from evalmetrics.torch.collectives import LocalCollective, create_collective


class TestLocalCollective:
    """Tests for LocalCollective."""

    def test_topology(self) -> None:
        """Test a local collective is a lone root."""
        collective = LocalCollective()
        assert collective.rank == 0
        assert collective.world_size == 1
        assert collective.is_root
        assert collective.device == torch.device("cpu")

    def test_reduce_and_broadcast_are_identity(self) -> None:
        """Test scalar collectives leave values untouched."""
        collective = LocalCollective()
        value = torch.tensor([2.5])

        collective.reduce_sum(value)
        collective.broadcast(value)
        collective.barrier()

        assert value.item() == 2.5

    def test_gather_copies_into_destination(self) -> None:
        """Test gather writes the local range into the single destination."""
        collective = LocalCollective()
        destination = torch.zeros(3)

        collective.gather(torch.tensor([1.0, 2.0, 3.0]), [destination])

        assert destination.tolist() == [1.0, 2.0, 3.0]

    def test_gather_rejects_extra_destinations(self) -> None:
        """Test a single process cannot fill several destinations."""
        with pytest.raises(ValueError):
            LocalCollective().gather(torch.zeros(2), [torch.zeros(2), torch.zeros(2)])

    def test_create_without_process_group(self) -> None:
        """Test the factory falls back to a local collective."""
        assert isinstance(create_collective(), LocalCollective)
