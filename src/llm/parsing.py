# src/llm/parsing.py - v2
"""Coerce raw model output into the shape the caller asked for.

Every parser returns None when the text does not match; None is the
"ask again" signal for the retry loop, never an error. Model output is
prose-wrapped, so extraction is two-tier: strict JSON first, then lenient
regex field extraction.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from gendispatch.core.models import ActionResponse, ExpectedShape

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)

AFFIRMATIVE = frozenset({"YES", "Y", "TRUE", "T", "1", "ON", "ENABLE"})
NEGATIVE = frozenset({"NO", "N", "FALSE", "F", "0", "OFF", "DISABLE"})

ACTION_VOCABULARY = ("LIKE", "RETWEET", "QUOTE", "REPLY")
SHOULD_RESPOND_VOCABULARY = ("RESPOND", "IGNORE", "STOP")

_FENCE_RE = re.compile(r"```(?:json|JSON)?\s*\n?(.*?)\n?\s*```", re.DOTALL)
_TEXT_FIELD_RE = re.compile(r"[\"']text[\"']\s*:\s*\"((?:[^\"\\]|\\.)*)\"", re.DOTALL)
_ACTION_FIELD_RE = re.compile(r"[\"']action[\"']\s*:\s*[\"']([A-Za-z_]+)[\"']")
_USER_FIELD_RE = re.compile(r"[\"']user[\"']\s*:\s*\"((?:[^\"\\]|\\.)*)\"")
_QUOTED_RE = re.compile(r"\"((?:[^\"\\]|\\.)*)\"")
_SHOULD_RESPOND_RE = re.compile(
    r"^\s*\[?\s*(RESPOND|IGNORE|STOP)\b", re.IGNORECASE,
)
_BRACKET_TOKEN_RE = re.compile(r"\[([A-Za-z_]+)\]")
_LIST_SPLIT_RE = re.compile(r"[,\n|;]+")
_PREAMBLE_RES = (
    re.compile(r"^Here is the (response|tweet)[^:]*:\s*", re.IGNORECASE),
    re.compile(r"^Here('s| is) a tweet[^:]*:\s*", re.IGNORECASE),
    re.compile(r"^Tweet from @?[a-zA-Z0-9_]+:\s*", re.IGNORECASE),
    re.compile(r"^\s*```json\s*"),
    re.compile(r"\s*```\s*$"),
)
_SHORT_TEXT_LIMIT = 280


# === JSON EXTRACTION ===


_DECODER = json.JSONDecoder()


def _embedded_values(text: str, opener: str):
    """Yield each JSON value that starts at an `opener` character in text.

    Decoding stops at the first syntax error, so prose around (and after)
    the value is ignored.
    """
    idx = text.find(opener)
    while idx != -1:
        try:
            value, _ = _DECODER.raw_decode(text, idx)
        except (ValueError, RecursionError):
            pass
        else:
            yield value
        idx = text.find(opener, idx + 1)


def extract_json(text: str, expected: type) -> Any | None:
    """Return the first JSON value of type `expected` (dict or list) in text.

    Fenced code blocks are tried first, then the whole text, then every
    embedded value in order of appearance. An empty container is only
    returned when no non-empty one follows it.
    """
    if not text:
        return None
    opener = "{" if expected is dict else "["

    candidates: list[str] = [m.group(1) for m in _FENCE_RE.finditer(text)]
    candidates.append(text.strip())
    for candidate in candidates:
        try:
            value = json.loads(candidate)
        except (ValueError, RecursionError):
            continue
        if isinstance(value, expected):
            return value

    empty = None
    for block in (*candidates[:-1], text):
        for value in _embedded_values(block, opener):
            if not isinstance(value, expected):
                continue
            if value:
                return value
            if empty is None:
                empty = value
    return empty


def _unescape(value: str) -> str:
    try:
        return json.loads(f'"{value}"')
    except (json.JSONDecodeError, ValueError):
        return value


# === SHAPE PARSERS ===


def parse_boolean(text: str | None) -> bool | None:
    """Match affirmative/negative tokens case-insensitively."""
    if not text:
        return None
    token = text.strip().upper()
    if token in AFFIRMATIVE:
        return True
    if token in NEGATIVE:
        return False
    return None


def parse_json_array(text: str | None) -> list[Any] | None:
    """First JSON array in text, falling back to quoted items in brackets."""
    if not text:
        return None
    value = extract_json(text, list)
    if value is not None:
        return value

    start = text.find("[")
    end = text.find("]", start + 1)
    if start == -1 or end == -1:
        return None
    items = [_unescape(m) for m in _QUOTED_RE.findall(text[start + 1:end])]
    return items or None


def parse_string_array(text: str | None) -> list[str] | None:
    """A JSON array with every item as a string."""
    items = parse_json_array(text)
    if items is None:
        return None
    return [
        item if isinstance(item, str) else json.dumps(item)
        for item in items
    ]


def parse_json_object(text: str | None) -> dict[str, Any] | None:
    """First JSON object in text, falling back to regex field extraction."""
    if not text:
        return None
    value = extract_json(text, dict)
    if value is not None:
        return value
    return extract_fields(text)


def extract_fields(text: str) -> dict[str, Any] | None:
    """Pull quoted text/action/user fields out of malformed JSON-ish prose.

    A result is only returned when a "text" field is found.
    """
    text_match = _TEXT_FIELD_RE.search(text)
    if not text_match:
        return None
    fields: dict[str, Any] = {"text": _unescape(text_match.group(1))}
    action_match = _ACTION_FIELD_RE.search(text)
    if action_match:
        fields["action"] = action_match.group(1).upper()
    user_match = _USER_FIELD_RE.search(text)
    if user_match:
        fields["user"] = _unescape(user_match.group(1))
    logger.debug("Recovered fields from malformed JSON: %s", sorted(fields))
    return fields


def extract_text_field(text: str | None) -> str | None:
    """Extract post content from a reply, trying increasingly lenient strategies.

    1. a JSON object with a "text" field
    2. any brace block containing a quoted "text" field
    3. for short replies, the reply itself with preambles and fences removed
    """
    if not text:
        return None
    obj = extract_json(text, dict)
    if obj is not None and isinstance(obj.get("text"), str) and obj["text"].strip():
        return obj["text"].strip()

    fields = extract_fields(text)
    if fields is not None and fields["text"].strip():
        return fields["text"].strip()

    if len(text) < _SHORT_TEXT_LIMIT:
        cleaned = text
        for pattern in _PREAMBLE_RES:
            cleaned = pattern.sub("", cleaned)
        if cleaned != text and cleaned.strip():
            return cleaned.strip()
    return None


def parse_action_response(text: str | None) -> ActionResponse | None:
    """Parse [LIKE], [RETWEET], [QUOTE], [REPLY] tokens or a delimited list."""
    if not text:
        return None
    tokens = {t.upper() for t in _BRACKET_TOKEN_RE.findall(text)}
    if not tokens & set(ACTION_VOCABULARY):
        tokens = {
            part.strip().strip("[]").upper()
            for part in _LIST_SPLIT_RE.split(text)
        }
    found = tokens & set(ACTION_VOCABULARY)
    if not found:
        return None
    return ActionResponse(
        like="LIKE" in found,
        retweet="RETWEET" in found,
        quote="QUOTE" in found,
        reply="REPLY" in found,
    )


def parse_should_respond(text: str | None) -> str | None:
    """Return RESPOND, IGNORE or STOP, or None."""
    if not text:
        return None
    match = _SHOULD_RESPOND_RE.match(text)
    if match:
        return match.group(1).upper()
    return None


def parse_structured(text: str | None, schema: type[T]) -> T | None:
    """Validate the first JSON object in text against a pydantic schema."""
    obj = parse_json_object(text)
    if obj is None:
        return None
    try:
        return schema.model_validate(obj)
    except ValidationError as e:
        logger.debug("Response does not match %s: %s", schema.__name__, e)
        return None


def parse(text: str | None, expected_shape: ExpectedShape | str) -> Any | None:
    """Dispatch to the parser for `expected_shape`."""
    shape = ExpectedShape(expected_shape)
    if shape is ExpectedShape.TEXT:
        stripped = (text or "").strip()
        return stripped or None
    if shape is ExpectedShape.BOOL:
        return parse_boolean(text)
    if shape is ExpectedShape.STRING_ARRAY:
        return parse_string_array(text)
    if shape is ExpectedShape.OBJECT:
        return parse_json_object(text)
    if shape is ExpectedShape.ACTION_LIST:
        return parse_action_response(text)
    return parse_should_respond(text)
