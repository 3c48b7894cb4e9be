"""Base classes shared by API schemas."""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Model exchanged with clients using camelCase field names."""

    model_config = ConfigDict(
        from_attributes=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )


class ActionResult(BaseModel):
    """Plain acknowledgement returned by mutating endpoints."""

    message: str
