"""Answer text helpers.

Reference answers mark their points with circled numbers (①②③...).
The quiz uses the markers to decide how many input boxes a question
gets; the review view also breaks lines after semicolons.
"""

from __future__ import annotations

import re

CIRCLED_NUMBERS = "①②③④⑤⑥⑦⑧⑨⑩"

# Split before a circled number
POINT_SPLIT = re.compile(f"(?=[{CIRCLED_NUMBERS}])")

# Split before a circled number or after a full/half-width semicolon
LINE_SPLIT = re.compile(f"(?=[{CIRCLED_NUMBERS}])|(?<=[；;])")


def split_answer_points(answer: str) -> list[str]:
    """Split a reference answer into its numbered points.

    Text before the first marker counts as its own point. Parts are
    returned untrimmed. An answer without markers is a single point.

    Examples:
        >>> split_answer_points("①时间：1839年；②意义：禁烟")
        ['①时间：1839年；', '②意义：禁烟']
        >>> split_answer_points("扶清灭洋。")
        ['扶清灭洋。']
    """
    parts = [p for p in POINT_SPLIT.split(answer) if p]
    return parts or [answer]


def count_answer_points(answer: str) -> int:
    """Number of input boxes a question needs."""
    return len(split_answer_points(answer))


def format_answer_lines(answer: str) -> list[str]:
    """Break a reference answer into display lines for review."""
    return [p.strip() for p in LINE_SPLIT.split(answer) if p and p.strip()]


def is_blank(parts: list[str]) -> bool:
    """True if no part contains any text."""
    return all(not p.strip() for p in parts)


def combine_answers(parts: list[str]) -> str:
    """Join a student's per-point inputs into one answer for grading.

    Multi-point answers are numbered ("1. ...") one per line; a single
    input is passed through unchanged.
    """
    if len(parts) > 1:
        return "\n".join(f"{i}. {ans}" for i, ans in enumerate(parts, 1))
    return "\n".join(parts)
