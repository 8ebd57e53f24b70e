"""Text clean-up helpers for model replies and terminal output."""

import re

# Reasoning blocks some models emit ahead of the actual reply
_REASONING_BLOCK = re.compile(
    r"<(think|thinking|analysis|reasoning)>.*?</\1>", re.DOTALL | re.IGNORECASE
)


def strip_think(text: str) -> str:
    """Remove <think>-style reasoning blocks and surrounding whitespace."""
    return _REASONING_BLOCK.sub("", text).strip()


def strip_speaker_prefix(text: str, label: str) -> str:
    """Drop a leading "纲哥:"-style label the model copied from the transcript."""
    return re.sub(rf"^\s*{re.escape(label)}\s*[:：]\s*", "", text, count=1)


def truncate(text: str, max_len: int = 120) -> str:
    """Collapse whitespace and cut to max_len characters, ending in "…"."""
    text = " ".join(text.split())
    if len(text) <= max_len:
        return text
    return text[: max_len - 1] + "…"
