"""
Shared Pydantic base for wire schemas.

Responses use camelCase field names on the wire; requests accept either
camelCase or the Python field name.
"""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )
