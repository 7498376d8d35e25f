# src/llm/token_budget.py - v3
"""Context budgeting: trim a prompt context to a token budget.

Truncation is tail-biased (the most recent tokens survive) and best-effort:
a tokenizer failure degrades to a character heuristic instead of failing
the request.
"""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import TYPE_CHECKING, Protocol

from gendispatch.core.errors import InvalidArgumentError

if TYPE_CHECKING:
    from gendispatch.config.settings import Settings

logger = logging.getLogger(__name__)

DEFAULT_TOKENIZER_MODEL = "gpt-4o"
CHARS_PER_TOKEN = 4

_SUPPORTED_TOKENIZER_TYPES = {"tiktoken"}


class Tokenizer(Protocol):
    """Anything that can encode text to token ids and back."""

    def encode(self, text: str) -> list[int]: ...

    def decode(self, tokens: list[int]) -> str: ...


@lru_cache(maxsize=8)
def _tiktoken_encoding(model: str) -> Tokenizer:
    import tiktoken

    return tiktoken.encoding_for_model(model)


def get_tokenizer(settings: Settings | None = None) -> Tokenizer | None:
    """Resolve the tokenizer from TOKENIZER_MODEL / TOKENIZER_TYPE.

    Missing settings select the default tiktoken encoding for gpt-4o. A
    model that cannot be loaded falls back to the default encoding; None
    means no encoding is available and callers trim by characters.
    """
    model = settings.tokenizer_model if settings is not None else ""
    tokenizer_type = settings.tokenizer_type if settings is not None else ""

    if not model or not tokenizer_type:
        model = DEFAULT_TOKENIZER_MODEL
    elif tokenizer_type.lower() not in _SUPPORTED_TOKENIZER_TYPES:
        logger.warning("Unsupported tokenizer type: %s", tokenizer_type)
        model = DEFAULT_TOKENIZER_MODEL

    candidates = [model] if model == DEFAULT_TOKENIZER_MODEL else [model, DEFAULT_TOKENIZER_MODEL]
    for name in candidates:
        try:
            return _tiktoken_encoding(name)
        except (KeyError, ValueError, OSError) as e:
            logger.warning("Cannot load tokenizer for %s: %s", name, e)
    return None


def count_tokens(text: str, tokenizer: Tokenizer | None = None) -> int:
    """Count tokens, falling back to the 4-chars-per-token estimate."""
    if not text:
        return 0
    try:
        tok = tokenizer or _tiktoken_encoding(DEFAULT_TOKENIZER_MODEL)
        return len(tok.encode(text))
    except Exception:
        return -(-len(text) // CHARS_PER_TOKEN)


def trim_tokens(
    context: str,
    max_tokens: int,
    tokenizer: Tokenizer | None = None,
) -> str:
    """Trim context to at most max_tokens, keeping the most recent tokens.

    Args:
        context: Prompt context to trim.
        max_tokens: Token budget, must be positive.
        tokenizer: Tokenizer to use (default: tiktoken for gpt-4o).

    Returns:
        The context unchanged when it fits, otherwise its tail.

    Raises:
        InvalidArgumentError: If max_tokens is not positive.
    """
    if not context:
        return ""
    if max_tokens <= 0:
        raise InvalidArgumentError("max_tokens must be positive")

    try:
        tok = tokenizer or _tiktoken_encoding(DEFAULT_TOKENIZER_MODEL)
        tokens = tok.encode(context)
        if len(tokens) <= max_tokens:
            return context
        logger.debug(
            "Trimming context from %d to %d tokens", len(tokens), max_tokens,
        )
        return _decode_tail(tok, tokens[-max_tokens:])
    except Exception as e:
        logger.error("Tokenizer failed, using character estimate: %s", e)
        return trim_chars(context, max_tokens)


def trim_chars(context: str, max_tokens: int) -> str:
    """Keep the last max_tokens * 4 characters (no tokenizer available)."""
    if max_tokens <= 0:
        raise InvalidArgumentError("max_tokens must be positive")
    return context[-max_tokens * CHARS_PER_TOKEN:]


def _decode_tail(tok: Tokenizer, tokens: list[int]) -> str:
    """Decode a token tail that may start inside a multi-byte character.

    Byte-level encodings expose decode_bytes; leading UTF-8 continuation
    bytes are dropped so the result stays a suffix of the original text.
    """
    decode_bytes = getattr(tok, "decode_bytes", None)
    if decode_bytes is None:
        return tok.decode(tokens)
    raw = decode_bytes(tokens)
    start = 0
    while start < len(raw) and raw[start] & 0xC0 == 0x80:
        start += 1
    return raw[start:].decode("utf-8")


def split_text(content: str, chunk_size: int = 1500, bleed: int = 100) -> list[str]:
    """Split content into fixed-width chunks overlapping by `bleed` characters.

    Raises:
        InvalidArgumentError: If chunk_size <= 0 or bleed is not in [0, chunk_size).
    """
    if chunk_size <= 0:
        raise InvalidArgumentError("chunk_size must be positive")
    if bleed < 0 or bleed >= chunk_size:
        raise InvalidArgumentError("bleed must be >= 0 and < chunk_size")

    chunks: list[str] = []
    start = 0
    while start < len(content):
        end = min(start + chunk_size, len(content))
        chunks.append(content[start:end])
        if end == len(content):
            break
        start = end - bleed
    return chunks
