"""
Base Pydantic models for Link Enricher.

Provides common model configurations used across the application.
"""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelCaseModel(BaseModel):
    """Base model with camelCase JSON serialization for API payloads."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )


class FrozenCamelCaseModel(CamelCaseModel):
    """Immutable camelCase model; use model_copy(update=...) to derive new values."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )
