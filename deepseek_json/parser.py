"""Parse raw assistant text into TaskFinisher payloads.

The ``type`` discriminator is read from a generic JSON document first; only
then is the document validated against the matching pydantic model. Every
declared field must be present and correctly typed, unknown fields are
ignored, and nothing is repaired: one structural violation fails the parse.
"""

import json

from pydantic import ValidationError

from deepseek_json.errors import DeepSeekError
from deepseek_json.models import (
    Artifact,
    ArtifactReply,
    Clarifying,
    ClarifyingPayload,
    NegotiationResult,
    StructuredResponse,
)

CLARIFYING_TYPE = "clarifying_questions"
ARTIFACT_TYPE = "artifact"


def _location(loc: tuple) -> str:
    path = ""
    for part in loc:
        if isinstance(part, int):
            path += f"[{part}]"
        else:
            path += f".{part}" if path else str(part)
    return path


def describe_validation_error(exc: ValidationError) -> str:
    """One line per violation, e.g. "missing field `questions[0].required`"."""
    problems = []
    for error in exc.errors(include_url=False):
        path = _location(error["loc"])
        if error["type"] == "missing":
            problems.append(f"missing field `{path}`")
        elif path:
            problems.append(f"field `{path}`: {error['msg']}")
        else:
            problems.append(error["msg"])
    return "; ".join(problems)


def _load_object(raw: str, what: str) -> dict:
    try:
        doc = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise DeepSeekError.parse(f"Failed to parse {what} JSON: {exc}") from exc
    if not isinstance(doc, dict):
        raise DeepSeekError.parse(f"Expected a JSON object in {what} response")
    return doc


def parse_response(raw: str) -> NegotiationResult:
    """Parse one TaskFinisher reply into Clarifying or ArtifactReply.

    Raises:
        DeepSeekError: kind PARSE_ERROR on invalid JSON, a missing or
            unsupported ``type``, or a structural violation of the shape.
    """
    doc = _load_object(raw, "TaskFinisher")

    typ = doc.get("type")
    if not isinstance(typ, str):
        raise DeepSeekError.parse("Missing 'type' in TaskFinisher response")

    if typ == CLARIFYING_TYPE:
        try:
            return Clarifying(payload=ClarifyingPayload.model_validate(doc), raw_text=raw)
        except ValidationError as exc:
            raise DeepSeekError.parse(f"Invalid clarifying_questions shape: {describe_validation_error(exc)}") from exc
    if typ == ARTIFACT_TYPE:
        try:
            return ArtifactReply(artifact=Artifact.model_validate(doc), raw_text=raw)
        except ValidationError as exc:
            raise DeepSeekError.parse(f"Invalid artifact shape: {describe_validation_error(exc)}") from exc
    raise DeepSeekError.parse(f"Unsupported 'type': {typ}")


def parse_structured_response(raw: str) -> StructuredResponse:
    """Parse the single-shot query reply (title/description/content...)."""
    doc = _load_object(raw, "DeepSeek")
    try:
        return StructuredResponse.model_validate(doc)
    except ValidationError as exc:
        raise DeepSeekError.parse(
            f"Failed to parse JSON response from DeepSeek: {describe_validation_error(exc)}"
        ) from exc
