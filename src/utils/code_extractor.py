"""Normalization of raw model output into code plus feedback.

Models answer with a free-form blob: optional "FEEDBACK:" lines, then code
that may be fenced, escaped, or full of typographic characters. The steps
below are pure functions applied in a fixed order; none of them raise, and
normalize_response always returns non-empty code by falling back to a known
valid stub for the target.
"""

import re
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Tuple

from utils.prompts import DEFAULT_TARGET, Target, resolve_target

FALLBACK_FEEDBACK = "Model returned no code; provided fallback stub."

FALLBACK_STUBS: Dict[Target, str] = {
    Target.MICROBIT: "\n".join(
        [
            "basic.onStart(function () {",
            '    basic.showString("Hi")',
            "})",
        ]
    ),
    Target.ARCADE: "\n".join(
        [
            "controller.A.onEvent(ControllerButtonEvent.Pressed, function () {",
            '    game.splash("Start!")',
            "})",
            "game.onUpdate(function () {",
            "})",
        ]
    ),
    Target.MAKER: "\n".join(["loops.forever(function () {", "})"]),
}

_FEEDBACK_PREFIX = re.compile(r"^FEEDBACK:\s*", re.IGNORECASE)
_FENCED_BLOCK = re.compile(r"```[\w+-]*\n([\s\S]*?)```", re.IGNORECASE)
_LEADING_FENCE_LINE = re.compile(r"^```[\s\S]*?\n")
_TRAILING_FENCE = re.compile(r"```\s*$")
_ZERO_WIDTH = re.compile("[\u200b-\u200d\ufeff]")
_EDGE_BACKTICKS = re.compile(r"^`+|`+$")


@dataclass
class GenerationResult:
    """Final payload of a generation request."""

    code: str
    feedback: List[str] = field(default_factory=list)


def normalize_newlines(text: str) -> str:
    """Turn CRLF and lone CR into LF."""
    return text.replace("\r\n", "\n").replace("\r", "\n")


def separate_feedback(raw: Optional[str]) -> Tuple[List[str], str]:
    """Split FEEDBACK lines from the rest of the output.

    Args:
        raw: Raw model output.

    Returns:
        Tuple of (feedback entries in encounter order, trimmed body).
    """
    feedback: List[str] = []
    if not raw:
        return feedback, ""
    body_lines = []
    for line in normalize_newlines(str(raw)).split("\n"):
        trimmed = line.strip()
        if _FEEDBACK_PREFIX.match(trimmed):
            feedback.append(_FEEDBACK_PREFIX.sub("", trimmed, count=1).strip())
        else:
            body_lines.append(line)
    return feedback, "\n".join(body_lines).strip()


# --- sanitizers, applied in order by sanitize_code ---


def strip_leading_fence(text: str) -> str:
    """Drop an opening ``` line (with any language tag) and a closing fence."""
    if not text.startswith("```"):
        return text
    text = _LEADING_FENCE_LINE.sub("", text, count=1)
    return _TRAILING_FENCE.sub("", text, count=1)


def unescape_literal_sequences(text: str) -> str:
    """Replace literal backslash escapes (two characters) with the real ones."""
    return text.replace("\\r\\n", "\n").replace("\\n", "\n").replace("\\t", "\t")


def straighten_quotes(text: str) -> str:
    return (
        text.replace("\u2018", "'")
        .replace("\u2019", "'")
        .replace("\u201c", '"')
        .replace("\u201d", '"')
    )


def strip_invisible_characters(text: str) -> str:
    """Remove zero-width characters and BOMs; NBSP becomes a plain space."""
    return _ZERO_WIDTH.sub("", text).replace("\u00a0", " ")


def strip_edge_backticks(text: str) -> str:
    return _EDGE_BACKTICKS.sub("", text)


SANITIZERS: Tuple[Callable[[str], str], ...] = (
    strip_leading_fence,
    unescape_literal_sequences,
    normalize_newlines,
    straighten_quotes,
    strip_invisible_characters,
    strip_edge_backticks,
    str.strip,
)


def sanitize_code(text: Optional[str]) -> str:
    if not text:
        return ""
    text = str(text)
    for step in SANITIZERS:
        text = step(text)
    return text


def extract_code(body: Optional[str]) -> str:
    """Pull code out of the feedback-free body.

    Uses the interior of the first fenced block when there is one, otherwise
    the whole body, then runs the sanitizers.
    """
    if not body:
        return ""
    match = _FENCED_BLOCK.search(str(body))
    code = match.group(1) if match else body
    return sanitize_code(code)


def stub_for_target(target: Optional[str]) -> str:
    return FALLBACK_STUBS.get(resolve_target(target), FALLBACK_STUBS[DEFAULT_TARGET])


def normalize_response(raw: Optional[str], target: Optional[str]) -> GenerationResult:
    """Convert raw provider text into the final result.

    Args:
        raw: Raw provider output; may be empty.
        target: Target identifier used to pick the fallback stub.

    Returns:
        GenerationResult whose code is never empty.
    """
    feedback, body = separate_feedback(raw)
    code = extract_code(body)
    if not code:
        return GenerationResult(
            code=stub_for_target(target),
            feedback=feedback + [FALLBACK_FEEDBACK],
        )
    return GenerationResult(code=code, feedback=feedback)
