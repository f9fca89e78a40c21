"""FastAPI application exposing the converter over HTTP.

WHY: The rule editor (a browser front end) and automation tools need the
converter without shipping a Python runtime. A small stateless HTTP API
lets them parse a script into the rule model, turn an edited model back
into SIEVE text, and validate or reformat text before upload.

HOW: A single FastAPI app with endpoints grouped by tags. Every endpoint
calls one pure function from sieve_converter.core per request; nothing
is stored between requests.

RULES:
- All endpoints have OpenAPI descriptions on every parameter and response
- Error responses use a consistent ErrorResponse schema
- Script text longer than config.MAX_SCRIPT_BYTES (UTF-8) is rejected with 413
- Model documents failing the JSON schema are rejected with 422
- /scripts/format rejects unparseable text with 400; /scripts/parse never
  does (unparseable text becomes a single "(parse error)" rule)
- Python 3.9+ compatible (no match/case, no PEP 604 unions)
"""

from __future__ import annotations

import logging
from typing import Annotated, Any, Dict, List

import jsonschema
from fastapi import Body, FastAPI, HTTPException

from sieve_converter import __version__, config
from sieve_converter.core.converter import script_to_text, text_to_script
from sieve_converter.core.emitter import emit
from sieve_converter.core.errors import SieveSyntaxError
from sieve_converter.core.model import SieveScript
from sieve_converter.core.parser import parse
from sieve_converter.core.serialization import script_from_dict, script_to_dict
from sieve_converter.formatters import FORMATTERS
from sieve_converter.server.models import (
    CheckResponse,
    ErrorResponse,
    FormatInfo,
    HealthResponse,
    ScriptTextRequest,
    ScriptTextResponse,
    SyntaxErrorInfo,
)

logger = logging.getLogger(__name__)

app = FastAPI(
    title="SIEVE Converter API",
    description=(
        "REST API for parsing SIEVE (RFC 5228) mail filter scripts into an "
        "editable rule model, emitting edited models back to SIEVE text, and "
        "checking or reformatting scripts."
    ),
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
)

_TOO_LARGE = {"model": ErrorResponse, "description": "Script text exceeds the size limit"}


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _check_size(text: str) -> None:
    """Raise HTTPException 413 if ``text`` is over the configured limit."""
    size = len(text.encode("utf-8"))
    if size > config.MAX_SCRIPT_BYTES:
        logger.info("Rejected script of %d bytes (limit %d)", size, config.MAX_SCRIPT_BYTES)
        raise HTTPException(
            status_code=413,
            detail="Script is {} bytes; the limit is {} bytes".format(
                size, config.MAX_SCRIPT_BYTES
            ),
        )


# ---------------------------------------------------------------------------
# Endpoints: Scripts
# ---------------------------------------------------------------------------


@app.post(
    "/scripts/parse",
    tags=["scripts"],
    summary="Parse SIEVE text into the rule model",
    description=(
        "Returns the rule model document (see the sieve_script JSON schema). "
        "Blocks the model cannot represent are returned as raw_block text; "
        "unparseable scripts become a single '(parse error)' rule."
    ),
    responses={413: _TOO_LARGE},
)
async def parse_script(request: ScriptTextRequest) -> Dict[str, Any]:
    _check_size(request.text)
    script = text_to_script(request.text, name=request.name)
    logger.info(
        "Parsed script %r: %d rule(s), %d raw",
        request.name, len(script.rules), sum(1 for rule in script.rules if rule.is_raw),
    )
    return script_to_dict(script)


@app.post(
    "/scripts/emit",
    response_model=ScriptTextResponse,
    tags=["scripts"],
    summary="Emit SIEVE text from a rule model document",
    description=(
        "Validates the document against the sieve_script JSON schema and "
        "returns canonical SIEVE text with a single merged require line."
    ),
    responses={422: {"model": ErrorResponse, "description": "Document does not match the schema"}},
)
async def emit_script(
    document: Annotated[
        Dict[str, Any],
        Body(description="Rule model document, as returned by /scripts/parse."),
    ],
) -> ScriptTextResponse:
    try:
        script: SieveScript = script_from_dict(document)
    except jsonschema.ValidationError as exc:
        logger.info("Rejected model document: %s", exc.message)
        raise HTTPException(status_code=422, detail=exc.message) from exc
    text = script_to_text(script)
    logger.info("Emitted script %r: %d rule(s)", script.name, len(script.rules))
    return ScriptTextResponse(text=text)


@app.post(
    "/scripts/check",
    response_model=CheckResponse,
    tags=["scripts"],
    summary="Check SIEVE text for syntax errors",
    description="Parses strictly and reports the first syntax error, if any.",
    responses={413: _TOO_LARGE},
)
async def check_script(request: ScriptTextRequest) -> CheckResponse:
    _check_size(request.text)
    try:
        parse(request.text)
    except SieveSyntaxError as exc:
        logger.info("Check failed: %s", exc)
        return CheckResponse(
            valid=False,
            error=SyntaxErrorInfo(kind=exc.kind, message=exc.message, offset=exc.offset),
        )
    return CheckResponse(valid=True)


@app.post(
    "/scripts/format",
    response_model=ScriptTextResponse,
    tags=["scripts"],
    summary="Reformat SIEVE text",
    description="Parses strictly and re-emits the script in canonical layout.",
    responses={
        400: {"model": ErrorResponse, "description": "Script has a syntax error"},
        413: _TOO_LARGE,
    },
)
async def format_script(request: ScriptTextRequest) -> ScriptTextResponse:
    _check_size(request.text)
    try:
        text = emit(parse(request.text))
    except SieveSyntaxError as exc:
        logger.info("Format failed: %s", exc)
        raise HTTPException(
            status_code=400,
            detail="{}: {}".format(exc.kind.value, exc.message),
        ) from exc
    return ScriptTextResponse(text=text)


# ---------------------------------------------------------------------------
# Endpoints: Formats
# ---------------------------------------------------------------------------


@app.get(
    "/formats",
    response_model=List[FormatInfo],
    tags=["formats"],
    summary="List available output formats",
    description=(
        "Returns all supported output formats with their identifiers, "
        "human-readable names, file suffixes and media types."
    ),
)
async def list_formats() -> List[FormatInfo]:
    result = []
    for key, formatter_cls in sorted(FORMATTERS.items()):
        formatter = formatter_cls()
        # An empty script is enough to learn the suffix and media type
        output = formatter.format(SieveScript())[0]
        result.append(FormatInfo(
            key=key,
            name=formatter.name,
            suffix=output.suffix,
            media_type=output.media_type,
        ))
    return result


# ---------------------------------------------------------------------------
# Endpoints: Health
# ---------------------------------------------------------------------------


@app.get(
    "/health",
    response_model=HealthResponse,
    tags=["health"],
    summary="Health check",
    description="Liveness check for load balancers and orchestrators.",
)
async def health_check() -> HealthResponse:
    return HealthResponse(status="ok", version=__version__)


def run_api():
    """Entry point for the sieve-converter-api console script."""
    import uvicorn
    logging.basicConfig(level=logging.INFO)
    uvicorn.run(app, host=config.API_HOST, port=config.API_PORT)
