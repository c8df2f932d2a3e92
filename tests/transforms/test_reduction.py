"""Tests for 2D range resolution and reducers."""

import numpy as np
import pytest

from signalgraph.core.errors import ComputationFailure
from signalgraph.schemas.analysis import MelFeatureConfig
from signalgraph.schemas.definition import (
    BandReferenceRange,
    CoefficientRange,
    FrequencyRange,
    FullSpectrumRange,
)
from signalgraph.transforms.reduction import (
    hz_to_feature_index,
    reduce_matrix,
    resolve_feature_range,
)

pytestmark = [pytest.mark.unit, pytest.mark.transforms]

TIMES = np.arange(3) / 100.0


def params(**overrides):
    base = {"smooth_ms": 0.0, "use_log": False, "diff_method": "rectified", "normalized": True}
    base.update(overrides)
    return base


class TestRangeResolution:

    def test_full_spectrum_is_unbounded(self):
        assert resolve_feature_range(FullSpectrumRange(), 16, "melSpectrogram", None, "full_spectrum") is None

    def test_coefficient_range_is_clamped(self):
        bounds = resolve_feature_range(CoefficientRange(low_coef=2, high_coef=100), 13, "mfcc", None,
                                       "full_spectrum")
        assert bounds == (2, 13)

    def test_frequency_range_maps_through_mel_scale(self):
        mel = MelFeatureConfig(n_mels=128, f_min=20.0, f_max=8000.0)
        bounds = resolve_feature_range(FrequencyRange(low_hz=20.0, high_hz=8000.0), 128,
                                       "melSpectrogram", mel, "full_spectrum")
        assert bounds == (0, 127)

    def test_frequency_index_is_monotonic(self):
        mel = MelFeatureConfig(n_mels=64)
        indices = [hz_to_feature_index(hz, mel) for hz in (100.0, 500.0, 2000.0, 6000.0)]
        assert indices == sorted(indices)

    def test_frequency_range_on_non_mel_function_uses_full_axis(self):
        mel = MelFeatureConfig(n_mels=13)
        bounds = resolve_feature_range(FrequencyRange(low_hz=100.0, high_hz=200.0), 13, "mfcc", mel,
                                       "full_spectrum")
        assert bounds is None

    def test_band_reference_falls_back_to_full_spectrum(self, caplog):
        bounds = resolve_feature_range(BandReferenceRange(band_id="kick"), 16, "melSpectrogram", None,
                                       "full_spectrum", "s1")
        assert bounds is None
        assert "kick" in caplog.text

    def test_band_reference_error_policy(self):
        with pytest.raises(ComputationFailure, match="bandReference"):
            resolve_feature_range(BandReferenceRange(band_id="kick"), 16, "melSpectrogram", None,
                                  "error", "s1")


class TestSimpleReducers:

    matrix = np.array([[1.0, 2.0, 3.0], [4.0, 5.0, 6.0], [0.0, 0.0, 0.0]])

    @pytest.mark.parametrize("reducer,expected", [
        ("mean", [2.0, 5.0, 0.0]),
        ("max", [3.0, 6.0, 0.0]),
        ("sum", [6.0, 15.0, 0.0]),
        ("amplitude", [6.0, 15.0, 0.0]),
    ])
    def test_reducers(self, reducer, expected):
        np.testing.assert_allclose(reduce_matrix(self.matrix, TIMES, reducer, params()), expected)

    def test_bounds_select_features(self):
        values = reduce_matrix(self.matrix, TIMES, "mean", params(), (1, 3))
        np.testing.assert_allclose(values, [2.5, 5.5, 0.0])

    def test_empty_interval_yields_zeros(self):
        values = reduce_matrix(self.matrix, TIMES, "max", params(), (2, 2))
        np.testing.assert_array_equal(values, np.zeros(3))

    def test_variance_of_single_feature_is_zero(self):
        values = reduce_matrix(self.matrix, TIMES, "variance", params(), (0, 1))
        np.testing.assert_array_equal(values, np.zeros(3))

    def test_nan_treated_as_zero(self):
        matrix = np.array([[np.nan, 2.0], [1.0, 1.0]])
        values = reduce_matrix(matrix, TIMES[:2], "sum", params())
        np.testing.assert_allclose(values, [2.0, 2.0])

    def test_unknown_reducer(self):
        with pytest.raises(ValueError, match="Unknown reducer"):
            reduce_matrix(self.matrix, TIMES, "median", params())


class TestSpectralReducers:

    def test_centroid_reports_absolute_bin(self):
        matrix = np.array([[0.0, 0.0, 1.0], [0.0, 0.0, 0.0]])
        values = reduce_matrix(matrix, TIMES[:2], "spectralCentroid", params(), (1, 3))
        np.testing.assert_allclose(values, [2.0, 0.0])

    def test_normalized_flux(self):
        matrix = np.array([[1.0, 1.0], [2.0, 0.0]])
        values = reduce_matrix(matrix, TIMES[:2], "spectralFlux", params())
        np.testing.assert_allclose(values, [0.0, 1.0])

    def test_flux_skips_silent_frames(self):
        matrix = np.array([[1.0, 1.0], [0.0, 0.0], [1.0, 1.0]])
        values = reduce_matrix(matrix, TIMES, "spectralFlux", params())
        np.testing.assert_array_equal(values, np.zeros(3))

    def test_raw_flux(self):
        matrix = np.array([[1.0, 1.0], [0.0, 0.0]])
        values = reduce_matrix(matrix, TIMES[:2], "spectralFlux", params(normalized=False))
        np.testing.assert_allclose(values, [0.0, 2.0])

    def test_onset_strength_averages_active_bins(self):
        matrix = np.array([[0.0, 0.0], [1.0, 0.0], [1.0, 2.0]])
        values = reduce_matrix(matrix, TIMES, "onsetStrength", params())
        np.testing.assert_allclose(values, [0.0, 1.0, 1.0])

    def test_onset_strength_abs_difference(self):
        matrix = np.array([[2.0], [0.0]])
        rectified = reduce_matrix(matrix, TIMES[:2], "onsetStrength", params())
        absolute = reduce_matrix(matrix, TIMES[:2], "onsetStrength", params(diff_method="abs"))
        np.testing.assert_allclose(rectified, [0.0, 0.0])
        np.testing.assert_allclose(absolute, [0.0, 2.0])

    def test_onset_strength_log_compression(self):
        matrix = np.array([[0.0], [np.e - 1.0]])
        values = reduce_matrix(matrix, TIMES[:2], "onsetStrength", params(use_log=True))
        np.testing.assert_allclose(values, [0.0, 1.0])

    def test_onset_strength_keeps_frame_count_when_smoothed(self):
        matrix = np.random.default_rng(1).random((20, 4))
        values = reduce_matrix(matrix, np.arange(20) / 100.0, "onsetStrength", params(smooth_ms=50.0))
        assert values.shape == (20,)
        assert np.all(values >= 0)
