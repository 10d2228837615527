"""
Shared pydantic configuration: JSON is camelCase, Python stays snake_case.
"""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class InvalidParamResponse(BaseModel):
    name: str
    reason: str


class ProblemResponse(BaseModel):
    """RFC 7807 problem detail."""

    status: int
    type: str
    title: str
    invalid_params: list[InvalidParamResponse] | None = None

    model_config = ConfigDict(
        alias_generator=lambda name: name.replace("_", "-"),
        populate_by_name=True,
    )
