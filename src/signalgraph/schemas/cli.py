"""CLIConfig: Command-line operational overrides.

Minimal configuration for settings that commonly change between runs:
definition file location and verbosity.
"""

from typing import Literal, Optional
from signalgraph.schemas.base import SignalGraphBaseModel


class CLIConfig(SignalGraphBaseModel):
    """Command-line configuration overrides.

    Highest priority in config resolution.
    """

    definitions_path: Optional[str] = None
    log_level: Optional[Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]] = None
    log_file: Optional[str] = None

    def to_internal_overrides(self) -> dict:
        """Convert CLI config to internal config structure.

        Returns
        -------
        dict
            Nested dictionary matching InternalConfig structure
        """
        overrides = {}

        if self.definitions_path is not None:
            overrides["persistence"] = {"definitions_path": str(self.definitions_path)}

        logging_cfg = {}
        if self.log_level is not None:
            logging_cfg["level"] = self.log_level
        if self.log_file is not None:
            logging_cfg["log_file"] = str(self.log_file)
        if logging_cfg:
            overrides["logging"] = logging_cfg

        return overrides
