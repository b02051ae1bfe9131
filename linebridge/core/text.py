"""Input cleaning and lexical tokenization for chat messages."""

import re
import unicodedata
from typing import Set

import config

# Zero-width space/non-joiner/joiner and the byte-order mark
ZERO_WIDTH_PATTERN = re.compile("[\u200b-\u200d\ufeff]")


def normalize(raw: str, max_chars: int = config.TextLimits.MAX_INPUT_CHARS) -> str:
    """
    Clean raw message text before routing.

    Strips zero-width characters, caps the length and trims surrounding
    whitespace. Never raises; ``None`` or empty input yields ``""``.

    Args:
        raw: Text as received from the messaging platform
        max_chars: Maximum number of characters kept (default: 2000)

    Returns:
        Cleaned text, at most ``max_chars`` long
    """
    text = ZERO_WIDTH_PATTERN.sub("", raw or "")
    return text[:max_chars].strip()


def truncate_reply(text: str, max_chars: int = config.TextLimits.MAX_REPLY_CHARS) -> str:
    """Cap outbound reply text below the platform's 5000 character limit."""
    return (text or "")[:max_chars]


# Letter/digit runs in any script form words. Scripts written without spaces
# (Thai, Lao, Khmer, kana, CJK ideographs) yield one token per character.
WORD_PATTERN = re.compile(r"[^\W_]+")
PER_CHARACTER_PATTERN = re.compile(
    "[\\u0e00-\\u0eff\\u1780-\\u17ff\\u3040-\\u30ff\\u3400-\\u4dbf"
    "\\u4e00-\\u9fff\\uf900-\\ufaff\\U00020000-\\U0002fa1f]"
)


def tokenize(text: str) -> Set[str]:
    """
    Split text into a set of lexical tokens.

    Text is NFKC-normalized and case-folded first, so full-width Latin and
    composed/decomposed accents tokenize alike.

    Example:
        >>> sorted(tokenize("macOS 支援"))
        ['macos', '援', '支']
    """
    folded = unicodedata.normalize("NFKC", text or "").casefold()
    tokens = set(PER_CHARACTER_PATTERN.findall(folded))
    tokens.update(WORD_PATTERN.findall(PER_CHARACTER_PATTERN.sub(" ", folded)))
    return tokens
