"""
Shared base for boundary models

Boundary models accept snake_case or camelCase keys and serialize
to camelCase for callers that transport results.
"""

from typing import Any, Type, TypeVar

from pydantic import BaseModel, ConfigDict
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from signalgrid.exceptions import ValidationError

M = TypeVar("M", bound="EngineModel")


class EngineModel(BaseModel):
    """Base model for values crossing the engine boundary"""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=False,
    )

    def to_dict(self) -> dict:
        """Convert to camelCase dictionary for callers"""
        return self.model_dump(by_alias=True, mode="json")


def parse_model(model_cls: Type[M], data: Any, field: str = "input") -> M:
    """
    Validate raw caller input into a boundary model

    Raises:
        ValidationError: If the payload is not a mapping or fails validation
    """
    if isinstance(data, model_cls):
        return data
    if not isinstance(data, dict):
        raise ValidationError(f"{field} must be a mapping", field=field, value=data)
    try:
        return model_cls.model_validate(data)
    except PydanticValidationError as e:
        first = e.errors()[0] if e.errors() else {}
        location = ".".join(str(part) for part in first.get("loc", ())) or field
        raise ValidationError(
            f"Invalid {field}: {location}: {first.get('msg', str(e))}",
            field=location,
            value=data,
        ) from e
