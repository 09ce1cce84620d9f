"""Unit tests for the admission gate.

Covers the ceiling, immediate rejection beyond it, and slot release on
every exit path of ``occupied()``.
"""

import pytest

from mascotgen.services.dispatch.admission_gate import AdmissionGate


class TestAdmissionGate:
    """Test suite for AdmissionGate."""

    def test_admits_up_to_ceiling(self):
        """Test that exactly ``ceiling`` slots can be reserved."""
        # Arrange
        gate = AdmissionGate(3)

        # Act
        results = [gate.try_admit() for _ in range(3)]

        # Assert
        assert results == [True, True, True]
        assert gate.in_flight == 3

    def test_rejects_beyond_ceiling_without_queueing(self):
        """Test that a saturated gate rejects and leaves the count unchanged."""
        # Arrange
        gate = AdmissionGate(20)
        for _ in range(20):
            assert gate.try_admit()

        # Act
        admitted = gate.try_admit()

        # Assert
        assert admitted is False
        assert gate.in_flight == 20

    def test_release_frees_slot_for_next_job(self):
        """Test that a released slot can be reserved again."""
        # Arrange
        gate = AdmissionGate(1)
        assert gate.try_admit()
        assert not gate.try_admit()

        # Act
        gate.release()

        # Assert
        assert gate.in_flight == 0
        assert gate.try_admit() is True

    def test_release_without_admit_raises(self):
        """Test that an unmatched release is a programming error."""
        gate = AdmissionGate(2)

        with pytest.raises(RuntimeError, match="without a matching try_admit"):
            gate.release()

    def test_occupied_releases_on_exception(self):
        """Test that the slot is freed when the job body raises."""
        # Arrange
        gate = AdmissionGate(2)
        assert gate.try_admit()

        # Act
        with pytest.raises(ValueError):
            with gate.occupied():
                assert gate.in_flight == 1
                raise ValueError("provider exploded")

        # Assert
        assert gate.in_flight == 0

    def test_occupied_releases_on_success(self):
        """Test that the slot is freed after a normal exit."""
        gate = AdmissionGate(2)
        assert gate.try_admit()

        with gate.occupied():
            pass

        assert gate.in_flight == 0

    @pytest.mark.parametrize("ceiling", [0, -1])
    def test_invalid_ceiling_rejected(self, ceiling: int):
        """Test that a gate needs at least one slot."""
        with pytest.raises(ValueError, match="ceiling must be >= 1"):
            AdmissionGate(ceiling)
