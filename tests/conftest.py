"""Root-level pytest fixtures for the signalgraph test suite.

Provides shared configuration fixtures following the Pydantic-based
architecture, plus in-memory collaborators for the engine. All tests must
use these fixtures instead of creating raw dict configs.
"""

import shutil
import tempfile
from pathlib import Path

import numpy as np
import pytest

from signalgraph.pipeline import SignalGraphService
from signalgraph.schemas import DiscreteEvent, MelFeatureConfig, ParamConfig, UserConfig, resolve_config
from tests.helpers.fake_providers import (
    FakeAnalysisProvider,
    FakeEventStreams,
    make_curve,
    make_matrix,
)


# =============================================================================
# Configuration Fixtures (Pydantic-based)
# =============================================================================

@pytest.fixture
def param_config():
    """Expert configuration with all defaults.

    Use this as the base for all test configs. Override specific values
    using user_config or by creating custom UserConfig instances.
    """
    return ParamConfig()


@pytest.fixture
def internal_config(param_config):
    """Fully validated runtime configuration (no overrides)."""
    return resolve_config(param_config, None, None)


@pytest.fixture
def make_config(param_config):
    """Factory fixture for creating custom test configs.

    Returns a callable that accepts UserConfig-compatible kwargs.

    Examples
    --------
    >>> def test_error_policy(make_config):
    ...     config = make_config(BAND_REFERENCE_POLICY="error")
    ...     assert config.compute.band_reference_policy == "error"
    """
    def _make(**user_overrides):
        """Create InternalConfig with user overrides."""
        if user_overrides:
            user = UserConfig(**user_overrides)
            return resolve_config(param_config, user, None)
        else:
            return resolve_config(param_config, None, None)

    return _make


# =============================================================================
# Collaborator Fixtures
# =============================================================================

@pytest.fixture
def envelope_values():
    """100 samples (1 s at 100 Hz) of a rising ramp."""
    return np.linspace(0.0, 1.0, 100)


@pytest.fixture
def analysis_provider(envelope_values):
    """Mixdown with a 1 s amplitude envelope and a 16-bin mel spectrogram."""
    provider = FakeAnalysisProvider(durations={"mixdown": 1.0})
    provider.set_result("mixdown", "amplitudeEnvelope", make_curve(envelope_values))

    rng = np.random.default_rng(0)
    provider.set_result("mixdown", "melSpectrogram", make_matrix(rng.random((100, 16)) + 0.1))
    provider.feature_configs[("mixdown", "melSpectrogram")] = MelFeatureConfig(n_mels=16)
    return provider


@pytest.fixture
def event_streams():
    return FakeEventStreams({
        "hits": [DiscreteEvent(time=0.0)],
        "empty": [],
    })


@pytest.fixture
def make_service(internal_config, analysis_provider, event_streams):
    """Factory for services sharing the default collaborators."""
    created = []

    def _make(config=None, **kwargs):
        kwargs.setdefault("analysis_provider", analysis_provider)
        kwargs.setdefault("event_provider", event_streams)
        service = SignalGraphService(config or internal_config, **kwargs)
        created.append(service)
        return service

    yield _make
    for service in created:
        service.close()


@pytest.fixture
def service(make_service):
    return make_service()


# =============================================================================
# Directory Fixtures
# =============================================================================

@pytest.fixture
def temp_dir():
    """Temporary directory that is cleaned up after test."""
    d = tempfile.mkdtemp()
    yield Path(d)
    shutil.rmtree(d, ignore_errors=True)
