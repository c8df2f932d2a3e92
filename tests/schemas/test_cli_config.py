"""Tests for CLIConfig schema and conversion to internal overrides."""

import pytest
from pydantic import ValidationError

from signalgraph.schemas.cli import CLIConfig


def test_cli_to_internal_overrides_with_definitions_path():
    """Definitions path lands in the persistence section."""
    cli = CLIConfig(definitions_path="project/signals.json")
    overrides = cli.to_internal_overrides()
    assert overrides["persistence"]["definitions_path"] == "project/signals.json"


def test_cli_to_internal_overrides_with_log_level():
    """Test CLI config conversion with log_level override."""
    cli = CLIConfig(log_level="DEBUG")
    overrides = cli.to_internal_overrides()
    assert overrides["logging"]["level"] == "DEBUG"


def test_cli_to_internal_overrides_with_multiple_fields():
    """Test CLI config conversion with multiple overrides."""
    cli = CLIConfig(log_level="INFO", log_file="/tmp/sg.log")
    overrides = cli.to_internal_overrides()
    assert overrides["logging"] == {"level": "INFO", "log_file": "/tmp/sg.log"}
    assert "persistence" not in overrides


def test_cli_to_internal_overrides_empty():
    """Test CLI config conversion with no overrides."""
    cli = CLIConfig()
    overrides = cli.to_internal_overrides()
    assert overrides == {}


def test_cli_config_all_log_levels():
    """Test all valid log levels."""
    for level in ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]:
        cli = CLIConfig(log_level=level)
        assert cli.to_internal_overrides()["logging"]["level"] == level


def test_cli_config_rejects_unknown_field():
    with pytest.raises(ValidationError):
        CLIConfig(signal_id="kick")


def test_cli_config_rejects_invalid_log_level():
    with pytest.raises(ValidationError):
        CLIConfig(log_level="LOUD")
