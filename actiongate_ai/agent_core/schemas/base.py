"""Pydantic base schema utilities for agent core models."""

from __future__ import annotations

from pydantic import AliasGenerator, BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class BaseSchema(BaseModel):
    """
    Base Pydantic model for all domain schemas.

    Configures common Pydantic behaviors:
    - ``populate_by_name=True``: Allow initialization by alias or field name.
    - ``extra="forbid"``: Prevent unknown fields from slipping into the model, ensuring strict validation.
    """
    model_config = ConfigDict(
        populate_by_name=True,
        extra="forbid",
    )


class WireSchema(BaseSchema):
    """
    Base model for domain objects that are sent to clients as-is.

    Fields keep their snake_case names in Python and are serialized in
    camelCase (``model_dump(by_alias=True)``), which is the casing used by the
    chat event stream and the decision endpoints.
    """
    model_config = ConfigDict(
        populate_by_name=True,
        extra="forbid",
        alias_generator=AliasGenerator(serialization_alias=to_camel),
    )
