"""Normalized result of a provider call.

Every adapter returns either ``ProviderOk`` or ``ProviderErr``; nothing else
leaves ``ProviderAdapter.call()``. Results are built per call and never
persisted.
"""
from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field


class Usage(BaseModel):
    """Token counters reported by the provider (0 when omitted)."""

    input_tokens: int = 0
    output_tokens: int = 0
    cost_estimate: str = "0"


class ProviderOk(BaseModel):
    status: Literal["ok"] = "ok"
    content: str
    usage: Usage = Field(default_factory=Usage)

    @property
    def ok(self) -> bool:
        return True


class ProviderErr(BaseModel):
    status: Literal["error"] = "error"
    message: str

    @property
    def ok(self) -> bool:
        return False


ProviderResult = Annotated[Union[ProviderOk, ProviderErr], Field(discriminator="status")]
