"""
Sentinel marker handling for backend replies.

The assistant is instructed to wrap its structured findings in literal tag
pairs:

    [WISH_DETECTED]
    ...
    [/WISH_DETECTED]

Blocks are located with a plain two-phase scan: find the open tag, then the
first close tag after it. There is no nesting support. extract() reports the
first block only; strip() removes every complete block. An open tag with no
matching close tag is left in place.
"""

from __future__ import annotations

WISH = "WISH_DETECTED"
SUPERWISH = "SUPERWISH_DETECTED"

# Highest priority first
KNOWN_TAGS = (SUPERWISH, WISH)


def open_tag(tag: str) -> str:
    return f"[{tag}]"


def close_tag(tag: str) -> str:
    return f"[/{tag}]"


def _find_block(text: str, tag: str, start: int = 0) -> tuple[int, int, int, int] | None:
    """Locate the next complete block at or after start.

    Returns (block_start, inner_start, inner_end, block_end), or None.
    """
    opener = open_tag(tag)
    closer = close_tag(tag)

    begin = text.find(opener, start)
    if begin < 0:
        return None
    inner_start = begin + len(opener)

    end = text.find(closer, inner_start)
    if end < 0:
        return None
    return begin, inner_start, end, end + len(closer)


def extract(text: str, tag: str) -> str | None:
    """Return the inner content of the first `tag` block, or None."""
    if not text:
        return None
    found = _find_block(text, tag)
    if found is None:
        return None
    _, inner_start, inner_end, _ = found
    return text[inner_start:inner_end]


def contains(text: str, tag: str) -> bool:
    return extract(text, tag) is not None


def strip(text: str, tags=KNOWN_TAGS) -> str:
    """Remove every complete block of the given tags, then trim whitespace.

    One newline directly after a close tag goes with the block.
    """
    if not text:
        return ""

    for tag in tags:
        pieces: list[str] = []
        cursor = 0
        while True:
            found = _find_block(text, tag, cursor)
            if found is None:
                break
            block_start, _, _, block_end = found
            pieces.append(text[cursor:block_start])
            if text.startswith("\n", block_end):
                block_end += 1
            cursor = block_end
        pieces.append(text[cursor:])
        text = "".join(pieces)

    return text.strip()
