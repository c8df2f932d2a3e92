"""Tests for stabilization, percentiles and local statistics."""

import numpy as np
import pytest

from signalgraph.schemas.definition import StabilizationSettings
from signalgraph.transforms.stabilization import (
    attack_release,
    compute_local_stats,
    compute_percentiles,
    preset_window_ms,
    stabilize_signal,
)

pytestmark = [pytest.mark.unit, pytest.mark.transforms]

TIMES = np.arange(100) / 100.0


@pytest.fixture
def impulse():
    values = np.zeros(100)
    values[0] = 1.0
    return values


class TestAttackRelease:

    def test_release_decays_to_one_time_constant(self, impulse):
        out = attack_release(impulse, TIMES, attack_sec=0.005, release_sec=0.2)

        assert out[0] == 1.0
        assert out[20] == pytest.approx(np.exp(-1.0), abs=1e-6)
        assert np.all(np.diff(out) < 0)

    def test_attack_rises_within_a_few_time_constants(self):
        step = np.ones(100)
        step[0] = 0.0
        out = attack_release(step, TIMES, attack_sec=0.01, release_sec=0.5)

        assert out[1] == pytest.approx(1.0 - np.exp(-1.0))
        assert out[6] > 0.99

    def test_zero_time_constants_follow_input(self):
        values = np.array([0.0, 1.0, 0.0, 2.0])
        np.testing.assert_allclose(attack_release(values, TIMES[:4], 0.0, 0.0), values)

    def test_non_increasing_time_step_passes_sample_through(self):
        times = np.array([0.0, 0.01, 0.01])
        values = np.array([0.0, 0.0, 5.0])
        assert attack_release(values, times, 1.0, 1.0)[2] == 5.0

    def test_empty_input(self):
        assert attack_release(np.zeros(0), np.zeros(0), 0.01, 0.1).shape == (0,)


class TestStabilizeSignal:

    def test_inactive_settings_pass_through(self, impulse, internal_config):
        out = stabilize_signal(impulse, TIMES, StabilizationSettings(), internal_config.stabilization)
        assert out is impulse

    def test_peak_mode_matches_follower(self, impulse, internal_config):
        settings = StabilizationSettings(mode="peak", attack_time_sec=0.005, release_time_sec=0.2)
        out = stabilize_signal(impulse, TIMES, settings, internal_config.stabilization)

        np.testing.assert_allclose(out, attack_release(impulse, TIMES, 0.005, 0.2))

    def test_preset_smooths_before_follower(self, impulse, internal_config):
        settings = StabilizationSettings(mode="medium")
        out = stabilize_signal(impulse, TIMES, settings, internal_config.stabilization)

        # 30 ms at 100 Hz is a 3-sample window, shrinking at the edge
        assert out[0] == pytest.approx(0.5)
        assert out[1] == pytest.approx(1.0 / 3.0)
        assert out[2] == 0.0

    def test_unset_times_use_config_defaults(self, impulse, internal_config):
        settings = StabilizationSettings(envelope_mode="attackRelease")
        out = stabilize_signal(impulse, TIMES, settings, internal_config.stabilization)

        cfg = internal_config.stabilization
        expected = attack_release(impulse, TIMES, cfg.default_attack_sec, cfg.default_release_sec)
        np.testing.assert_allclose(out, expected)

    def test_preset_windows(self, internal_config):
        cfg = internal_config.stabilization
        assert preset_window_ms("light", cfg) == cfg.light_ms
        assert preset_window_ms("heavy", cfg) == cfg.heavy_ms
        assert preset_window_ms("peak", cfg) == 0.0


class TestStatistics:

    def test_percentiles_interpolate(self):
        pct = compute_percentiles(np.arange(101, dtype=np.float64), (5, 95))
        assert pct == {5: pytest.approx(5.0), 95: pytest.approx(95.0)}

    def test_percentiles_of_empty_signal(self):
        assert compute_percentiles(np.zeros(0), (5, 95)) == {5: 0.0, 95: 0.0}

    def test_local_stats_window_is_inclusive(self):
        values = np.arange(100, dtype=np.float64)
        stats = compute_local_stats(values, TIMES, 0.1, 0.2)

        assert stats["min"] == 10.0
        assert stats["max"] == 20.0
        assert stats["p5"] == pytest.approx(10.5)
        assert stats["p95"] == pytest.approx(19.5)

    def test_local_stats_empty_window(self):
        stats = compute_local_stats(np.ones(100), TIMES, 5.0, 6.0)
        assert stats == {"min": 0.0, "max": 0.0, "p5": 0.0, "p95": 0.0}
