"""
Pydantic schemas — request bodies.

Wire names are camelCase; Python attributes stay snake_case.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class BatchDecisionRequest(CamelModel):
    # Items are validated by the batch processor so every bad item is
    # reported by index in a single 400.
    actions: list[Any] | None = None


class BiometricDuplicateRequest(CamelModel):
    biometric_hash: str
    user_id: str
    document_id: str | None = None
