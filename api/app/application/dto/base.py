"""
Base comun de los DTOs: el editor y el panel de monitoreo usan camelCase.
"""
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Acepta snake_case o camelCase y serializa en camelCase."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )
