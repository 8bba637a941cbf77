"""Decoding of loosely-typed JSON list fields (questions, answers) from form posts."""

import json
import logging
from typing import Any, Dict, List

from pydantic import ValidationError

from coursework.config import settings
from coursework.core.exceptions import InvalidRequestError

logger = logging.getLogger(__name__)


def decode_json_list(raw: Any, field: str) -> List[Dict[str, Any]]:
    """
    Decode a JSON list of objects sent as text (multipart forms) or already parsed.

    Malformed input (undecodable JSON, not a list, or a list holding
    non-objects) becomes an empty list with a warning, unless
    STRICT_PAYLOAD_PARSING is enabled, in which case it is rejected.
    """
    if raw is None:
        return []

    payload = raw
    if isinstance(raw, (str, bytes)):
        if not raw.strip():
            return []
        try:
            payload = json.loads(raw)
        except json.JSONDecodeError as e:
            return _malformed(field, f"invalid JSON ({e.msg})")

    if not isinstance(payload, list):
        return _malformed(field, "expected a JSON list")
    if not all(isinstance(item, dict) for item in payload):
        return _malformed(field, "every item must be a JSON object")
    return payload


def _malformed(field: str, reason: str) -> List[Dict[str, Any]]:
    if settings.STRICT_PAYLOAD_PARSING:
        raise InvalidRequestError(f"Malformed '{field}': {reason}")
    logger.warning(
        f"Malformed '{field}' payload treated as an empty list: {reason}",
        extra={"field": field},
    )
    return []


def describe_validation_error(field: str, index: int, exc: ValidationError) -> str:
    """Human-readable ``field[index].attr: message`` for the first pydantic error."""
    first = exc.errors()[0]
    location = ".".join(str(part) for part in first.get("loc", ()))
    path = f"{field}[{index}].{location}" if location else f"{field}[{index}]"
    return f"{path}: {first.get('msg', 'invalid value')}"
