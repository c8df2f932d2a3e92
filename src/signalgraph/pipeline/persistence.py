"""JSON file persistence for signal definitions.

Writes ``{version, signals, createdAt, modifiedAt}`` with camelCase keys.
Only definitions are stored; computed results never reach this module.
"""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Optional

from signalgraph.schemas.definition import DEFINITION_SCHEMA_VERSION, DefinitionStructure
from signalgraph.pipeline.providers import PersistenceCollaborator

logger = logging.getLogger(__name__)


class JsonDefinitionFile(PersistenceCollaborator):
    """Definition structure stored as one JSON file.

    Writes go to a temporary file in the same directory and are moved into
    place, so a reader never sees a half-written file.

    Parameters
    ----------
    path : Path or str
        Target file. Parent directories are created on first write.
    """

    def __init__(self, path):
        self.path = Path(path)

    def sync_definitions(self, structure: DefinitionStructure) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = structure.model_dump(mode="json", by_alias=True)

        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{self.path.name}.", suffix=".tmp", dir=str(self.path.parent)
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(payload, f, indent=2)
            os.replace(tmp_name, self.path)
        except BaseException:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise

        logger.debug(f"Wrote {len(structure.signals)} definition(s) to {self.path}")

    def get_structure_for_project(self) -> Optional[DefinitionStructure]:
        """Load the stored structure, or None if the file does not exist.

        Raises
        ------
        ValueError
            If the file declares a newer schema version.
        pydantic.ValidationError
            If the file content is not a valid structure.
        """
        if not self.path.exists():
            return None

        with open(self.path, "r", encoding="utf-8") as f:
            payload = json.load(f)

        version = payload.get("version", DEFINITION_SCHEMA_VERSION)
        if version > DEFINITION_SCHEMA_VERSION:
            raise ValueError(
                f"{self.path}: definition schema version {version} is newer than "
                f"supported version {DEFINITION_SCHEMA_VERSION}"
            )

        structure = DefinitionStructure.model_validate(payload)
        logger.info(f"Loaded {len(structure.signals)} definition(s) from {self.path}")
        return structure
