"""Tests for JSON definition persistence."""

import json

import pytest

from signalgraph.pipeline.persistence import JsonDefinitionFile
from signalgraph.schemas.definition import DefinitionStructure

pytestmark = [pytest.mark.unit, pytest.mark.pipeline]


@pytest.fixture
def structure():
    return DefinitionStructure.model_validate({
        "signals": [
            {"id": "env", "name": "Envelope",
             "source": {"kind": "1d", "signalRef": {"type": "mir", "functionId": "spectralFlux"}},
             "transforms": [{"kind": "smooth", "windowMs": 40}, {"kind": "clamp", "min": 0, "max": 1}]},
            {"id": "follow", "sortOrder": 1,
             "source": {"kind": "1d", "signalRef": {"type": "derived", "signalId": "env"}}},
        ],
    })


@pytest.fixture
def definition_file(temp_dir):
    return JsonDefinitionFile(temp_dir / "nested" / "signals.json")


class TestJsonDefinitionFile:

    def test_missing_file_gives_none(self, definition_file):
        assert definition_file.get_structure_for_project() is None

    def test_round_trip(self, definition_file, structure):
        definition_file.sync_definitions(structure)
        loaded = definition_file.get_structure_for_project()

        assert loaded.model_dump() == structure.model_dump()

    def test_written_with_camel_case_keys(self, definition_file, structure):
        definition_file.sync_definitions(structure)
        payload = json.loads(definition_file.path.read_text())

        assert payload["version"] == 1
        assert {"createdAt", "modifiedAt"} <= set(payload)
        first = payload["signals"][0]
        assert first["source"]["signalRef"]["functionId"] == "spectralFlux"
        assert first["transforms"][0]["windowMs"] == 40
        assert first["transforms"][1] == {"kind": "clamp", "min": 0.0, "max": 1.0}
        assert payload["signals"][1]["sortOrder"] == 1

    def test_no_temporary_files_left(self, definition_file, structure):
        definition_file.sync_definitions(structure)
        definition_file.sync_definitions(structure)

        assert [p.name for p in definition_file.path.parent.iterdir()] == ["signals.json"]

    def test_newer_version_rejected(self, definition_file):
        definition_file.path.parent.mkdir(parents=True)
        definition_file.path.write_text(json.dumps({"version": 2, "signals": []}))

        with pytest.raises(ValueError, match="newer"):
            definition_file.get_structure_for_project()

    def test_missing_version_treated_as_current(self, definition_file):
        definition_file.path.parent.mkdir(parents=True)
        definition_file.path.write_text(json.dumps({"signals": [{"id": "a"}]}))

        loaded = definition_file.get_structure_for_project()
        assert [s.id for s in loaded.signals] == ["a"]
