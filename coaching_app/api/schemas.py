"""
Shared request/response model base.

Client records travel as camelCase documents (``firstName``,
``membershipType``), so API models use camelCase aliases on the wire
while keeping snake_case attributes in Python.
"""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """BaseModel that reads and writes camelCase field names."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )
