"""Generation schema definitions."""

from typing import Any, List, Optional

from pydantic import Field

from schemas.base import CamelModel


class GenerateRequest(CamelModel):
    """Body of a generation request.

    Fields accept any JSON value so that validate_payload decides: a
    non-string target falls back to the default target, non-string code is
    ignored and a missing request is reported as a validation error.
    """

    target: Optional[Any] = Field(
        default=None, description="One of microbit, arcade, maker."
    )
    request: Optional[Any] = Field(
        default=None, description="What the student wants the program to do."
    )
    current_code: Optional[Any] = Field(
        default=None, description="Code currently in the editor."
    )


class GenerateResponse(CamelModel):
    code: str
    feedback: List[str] = Field(default_factory=list)


class HealthResponse(CamelModel):
    ok: bool = True
    provider: str
    model: str
    token_required: bool
