"""Shared base model for backend wire shapes."""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class WireModel(BaseModel):
    """
    Base for every model that crosses the backend boundary.

    The backend speaks camelCase; Python code uses snake_case attribute
    names. Either form is accepted on input, and `to_wire()` produces the
    camelCase JSON form used for request bodies and session storage.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )

    def to_wire(self) -> dict:
        """Dump to JSON-safe camelCase dict."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
