"""Tests for computation contracts.

These tests verify that contracts are enforced at stage boundaries.
They call the contract functions directly on hand-built inputs.
"""

import numpy as np
import pytest
import xarray as xr

pytestmark = pytest.mark.unit

from signalgraph.contracts import (
    ContractViolation,
    FailurePolicy,
    assert_feature_matrix,
    assert_signal_arrays,
    assert_signal_result,
    require,
)
from signalgraph.contracts.invariants import COMPUTATION_INVARIANTS, STAGE_REQUIREMENTS
from signalgraph.schemas.analysis import make_feature_matrix
from signalgraph.schemas.result import SignalResult


class TestRequire:

    def test_require_passes_silently(self):
        require(True, "never raised")

    def test_require_raises_with_message(self):
        with pytest.raises(ContractViolation, match="axis lengths differ"):
            require(False, "axis lengths differ")

    def test_contract_violation_is_runtime_error(self):
        assert issubclass(ContractViolation, RuntimeError)

    def test_failure_policy_values(self):
        assert FailurePolicy("fail_signal") is FailurePolicy.FAIL_SIGNAL
        assert FailurePolicy("raise") is FailurePolicy.RAISE


class TestFeatureMatrixContract:
    """Test 2D source contract."""

    def test_passes_with_valid_matrix(self):
        """Matrix contract passes for (time, feature) with ascending times."""
        data = make_feature_matrix(np.arange(4) / 100.0, np.ones((4, 3)))
        # Should not raise
        assert_feature_matrix(data)

    def test_fails_with_wrong_dims(self):
        data = xr.DataArray(np.ones((3, 4)), dims=("feature", "time"),
                            coords={"time": np.arange(4) / 100.0})
        with pytest.raises(ContractViolation, match="dims"):
            assert_feature_matrix(data)

    def test_fails_without_time_coordinate(self):
        data = xr.DataArray(np.ones((4, 3)), dims=("time", "feature"))
        with pytest.raises(ContractViolation, match="missing 'time'"):
            assert_feature_matrix(data)

    def test_fails_with_descending_times(self):
        data = make_feature_matrix(np.array([0.3, 0.2, 0.1]), np.ones((3, 2)))
        with pytest.raises(ContractViolation, match="not ascending"):
            assert_feature_matrix(data)

    def test_fails_with_numpy_array(self):
        with pytest.raises(ContractViolation, match="expected xarray.DataArray"):
            assert_feature_matrix(np.ones((4, 3)))


class TestSignalContract:
    """Test result contract."""

    def test_arrays_with_different_lengths_fail(self):
        with pytest.raises(ContractViolation, match="3 times vs 2 values"):
            assert_signal_arrays(np.arange(3.0), np.arange(2.0), "Source")

    def test_two_dimensional_values_fail(self):
        with pytest.raises(ContractViolation, match="expected 1D"):
            assert_signal_arrays(np.arange(3.0), np.ones((3, 1)), "Source")

    def test_non_finite_values_fail(self):
        result = SignalResult(definition_id="a", status="computed",
                              times=np.arange(3.0), values=np.array([0.0, np.nan, 1.0]))
        with pytest.raises(ContractViolation, match="non-finite"):
            assert_signal_result(result)

    def test_raw_values_length_must_match(self):
        result = SignalResult(definition_id="a", status="computed",
                              times=np.arange(3.0), values=np.zeros(3), raw_values=np.zeros(2))
        with pytest.raises(ContractViolation, match="raw_values"):
            assert_signal_result(result)

    def test_error_results_are_not_checked(self):
        assert_signal_result(SignalResult.error("a", "failed"))


def test_every_documented_stage_has_a_requirement():
    assert set(COMPUTATION_INVARIANTS) == set(STAGE_REQUIREMENTS)
    assert all(rules for rules in COMPUTATION_INVARIANTS.values())
    assert set(STAGE_REQUIREMENTS.values()) == {"REQUIRED"}
