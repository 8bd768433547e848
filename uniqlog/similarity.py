"""Token-positional line similarity.

Lines are compared token by token from the end, skipping the first token
which is assumed to be a timestamp. Short lines fall back to comparing a
single token with a few shape-based special cases and edit distance.
"""

import re

from rapidfuzz.distance import Levenshtein

# Tokens that differ but mean the same thing in a log line.
# TODO: treat IPv4/IPv6 addresses of the same family as the same shape.
_HEX_VALUE = re.compile(r"[0-9a-f]+")
_HTTP_METHOD = re.compile(r"GET|HEAD|PUT|POST")

SAME_SHAPE_SIMILARITY = 0.9


def tokenize(line: str) -> list[str]:
    """Split a line on runs of whitespace."""
    return line.split()


def _token_similarity(prev: str, cur: str) -> float:
    if prev == cur:
        return 1.0
    if (
        _HEX_VALUE.fullmatch(prev)
        and _HEX_VALUE.fullmatch(cur)
        and len(prev) == len(cur)
    ):
        return SAME_SHAPE_SIMILARITY
    if _HTTP_METHOD.fullmatch(prev) and _HTTP_METHOD.fullmatch(cur):
        return SAME_SHAPE_SIMILARITY
    # 1 - distance / max(len(prev), len(cur))
    return Levenshtein.normalized_similarity(prev, cur)


def similarity(prev_tokens: list[str], tokens: list[str]) -> float:
    """Score how alike two tokenized lines are, in [0, 1].

    With fewer than three tokens only the last token of each line is
    compared. Otherwise the tokens after the first are aligned from the end
    and the fraction of equal positions is returned, so lines sharing a
    common tail of fields score high even when a leading message varies.
    """
    total = len(tokens)
    if total < 1:
        return 0.0

    if total < 3:
        if not prev_tokens:
            return 0.0
        return _token_similarity(prev_tokens[-1], tokens[-1])

    compared = total - 1
    same = 0
    for i in range(compared):
        if i >= len(prev_tokens):
            break
        if tokens[-1 - i] == prev_tokens[-1 - i]:
            same += 1
    return same / compared
