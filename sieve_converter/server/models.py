"""Pydantic request/response models for the HTTP API.

WHY: The FastAPI endpoints need typed schemas for request validation,
response serialization, and automatic OpenAPI documentation.

HOW: Script text travels in small request/response models defined here.
The rule model document itself is NOT mirrored as pydantic classes: it
is validated by the bundled JSON schema (core/serialization.py), which
stays the single definition of its shape.

RULES:
- All models use Field(description=...) for OpenAPI documentation
- Error kinds use SyntaxErrorKind values exactly
- Python 3.9+ compatible (no PEP 604 unions, use Optional from typing)
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field

from sieve_converter.core.errors import SyntaxErrorKind

# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class ScriptTextRequest(BaseModel):
    """SIEVE script text sent for parsing, checking or formatting."""

    text: str = Field(description="SIEVE script source text.")
    name: str = Field(
        default="",
        description="Script name to record in the returned model (parse only).",
    )

    model_config = {"json_schema_extra": {
        "examples": [
            {
                "text": 'require "fileinto";\n\n# Filter: Lists\n'
                        'if header :contains "List-Id" "dev" {\n    fileinto "Lists";\n}\n',
                "name": "work",
            }
        ]
    }}


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class ScriptTextResponse(BaseModel):
    """Canonical SIEVE text produced by the emitter."""

    text: str = Field(description="Emitted SIEVE script text.")


class SyntaxErrorInfo(BaseModel):
    """Location and category of a syntax error."""

    kind: SyntaxErrorKind = Field(description="Category of the failure.")
    message: str = Field(description="Human-readable error message.")
    offset: Optional[int] = Field(
        default=None,
        description="Code-point offset into the text, or null at end of input.",
    )


class CheckResponse(BaseModel):
    """Result of a strict parse.

    RULES:
    - valid is True exactly when error is null
    """

    valid: bool = Field(description="Whether the script parsed without errors.")
    error: Optional[SyntaxErrorInfo] = Field(
        default=None,
        description="The first syntax error, only present when valid is false.",
    )


class FormatInfo(BaseModel):
    """Description of an available output format."""

    key: str = Field(description="Format identifier used by the CLI --formats flag.")
    name: str = Field(description="Human-readable format name.")
    suffix: str = Field(description="File suffix produced (e.g. '.rules.json').")
    media_type: str = Field(description="MIME type of the produced content.")


class ErrorResponse(BaseModel):
    """Standard error response body."""

    detail: str = Field(description="Human-readable error description.")


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = Field(description="Service health status.", json_schema_extra={"example": "ok"})
    version: str = Field(description="API version string.", json_schema_extra={"example": "0.1.0"})
