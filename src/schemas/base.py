"""Shared base for API schemas.

Wire format is camelCase (joinCode, requestLimit, ...); Python attributes stay
snake_case.
"""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)
