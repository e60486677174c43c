"""Helpers for pulling JSON out of model replies."""

from __future__ import annotations

import json
import re

_JSON_FENCE = re.compile(r"```json\s*\n(.*?)\n\s*```", re.DOTALL)
_BARE_FENCE = re.compile(r"```\s*\n(.*?)\n\s*```", re.DOTALL)
_ANY_FENCE = re.compile(r"```.*?```", re.DOTALL)


def extract_json(text: str) -> dict | list:
    """Extract JSON from a model reply.

    Tries in order:
    1. Direct json.loads on the full text
    2. The body of a fenced code block (```json first, then bare ```)
    3. First opener to last closer, for whichever of "{" and "[" appears
       first in the text, then the other

    Raises ValueError if nothing parses.
    """
    text = (text or "").strip()

    try:
        return json.loads(text)
    except (json.JSONDecodeError, TypeError):
        pass

    block = find_fenced_block(text)
    if block is not None:
        try:
            return json.loads(block)
        except json.JSONDecodeError:
            pass

    pairs = [("{", "}"), ("[", "]")]
    # whichever container opens first is the outermost one
    pairs.sort(key=lambda pair: _first_index(text, pair[0]))
    for opener, closer in pairs:
        result = _extract_between(text, opener, closer)
        if result is not None:
            return result

    raise ValueError(f"Could not extract JSON from text: {text[:200]}...")


def find_fenced_block(text: str) -> str | None:
    """Return the body of the first ```json block, else the first bare ``` block."""
    match = _JSON_FENCE.search(text) or _BARE_FENCE.search(text)
    if match is None:
        return None
    return match.group(1)


def strip_fenced_blocks(text: str) -> str:
    """Remove every fenced code block and trim the remainder."""
    return _ANY_FENCE.sub("", text).strip()


def _first_index(text: str, char: str) -> int:
    index = text.find(char)
    return len(text) if index == -1 else index


def _extract_between(text: str, opener: str, closer: str) -> dict | list | None:
    start = text.find(opener)
    end = text.rfind(closer)
    if start != -1 and end > start:
        try:
            return json.loads(text[start : end + 1])
        except json.JSONDecodeError:
            pass
    return None
