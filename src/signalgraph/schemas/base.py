"""Base Pydantic models with strict defaults for signalgraph schemas.

Config schemas inherit ``SignalGraphBaseModel``. Persisted definition
schemas inherit ``DefinitionBaseModel``, which adds camelCase aliases so
the stored JSON keeps the keys used by existing project files.
"""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class SignalGraphBaseModel(BaseModel):
    """Base model for all signalgraph configuration schemas.

    Enforces strict validation:
    - No extra fields allowed
    - Validates assignments after initialization
    - Uses Python mode (not JSON mode)
    """

    model_config = ConfigDict(
        extra='forbid',           # Reject unknown fields
        validate_assignment=True, # Validate on field mutation
        use_enum_values=True,     # Convert enums to values
        str_strip_whitespace=True,# Strip whitespace from strings
    )


class DefinitionBaseModel(SignalGraphBaseModel):
    """Base model for persisted definition schemas (camelCase on the wire)."""

    model_config = SignalGraphBaseModel.model_config.copy()
    model_config.update({
        "alias_generator": to_camel,
        "populate_by_name": True,
    })
