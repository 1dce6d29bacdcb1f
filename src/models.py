"""Response models shared across the dashboard, health, insights and sessions views.

Fields are snake_case in Python and serialized camelCase for the frontend.
"""

from typing import ClassVar

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model that reads and writes camelCase keys."""

    model_config: ClassVar[ConfigDict] = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ModelTokens(CamelModel):
    model: str
    tokens: int


class TimeSeriesPoint(CamelModel):
    timestamp: float
    value: float
