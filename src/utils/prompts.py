"""Prompt construction for MakeCode generation.

The system prompt pins the model to one MakeCode target and to the subset of
Static TypeScript the block decompiler accepts. The user prompt carries the
student's request and, optionally, the code currently in the editor between
sentinel markers.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional


class Target(str, Enum):
    """MakeCode editors a program can be generated for."""

    MICROBIT = "microbit"
    ARCADE = "arcade"
    MAKER = "maker"


DEFAULT_TARGET = Target.MICROBIT


@dataclass(frozen=True)
class TargetProfile:
    display_name: str
    namespaces: str


TARGET_PROFILES: Dict[Target, TargetProfile] = {
    Target.MICROBIT: TargetProfile(
        display_name="micro:bit",
        namespaces=(
            "basic,input,music,led,radio,pins,loops,logic,variables,math,"
            "functions,arrays,text,game,images,serial,control"
        ),
    ),
    Target.ARCADE: TargetProfile(
        display_name="Arcade",
        namespaces="controller,game,scene,sprites,info,music,effects",
    ),
    Target.MAKER: TargetProfile(
        display_name="Maker",
        namespaces="pins,input,loops,music",
    ),
}

CURRENT_CODE_START = "<<<CURRENT_CODE>>>"
CURRENT_CODE_END = "<<<END_CURRENT_CODE>>>"

SYSTEM_PROMPT_TEMPLATE = """ROLE: You are a Microsoft MakeCode assistant.
HARD REQUIREMENT: Return ONLY Microsoft MakeCode Static JavaScript that the MakeCode decompiler can convert to BLOCKS for {target_name} with ZERO errors.
OPTIONAL FEEDBACK: You may send brief notes before the code. Prefix each note with FEEDBACK: .
RESPONSE FORMAT: After any feedback lines, output ONLY Microsoft MakeCode Static TypeScript with no markdown fences or extra prose.
NO COMMENTS inside the code.
ALLOWED APIS: {namespaces}. Prefer event handlers and forever/update loops.
FORBIDDEN IN OUTPUT: arrow functions (=>), classes, new constructors, async/await/Promise, import/export, template strings (`), higher-order array methods (map/filter/reduce/forEach/find/some/every), namespaces/modules, enums, interfaces, type aliases, generics, timers (setTimeout/setInterval), console calls, markdown, escaped newlines, onstart functions.
TARGET-SCOPE: Use ONLY APIs valid for {target_name}. Never mix Arcade APIs into micro:bit/Maker or vice versa.
STYLE: Straight quotes, ASCII only, real newlines, use function () {{ }} handlers.
IF UNSURE: Return a minimal program that is guaranteed to decompile to BLOCKS for {target_name}. Code only."""


def resolve_target(value: Optional[str]) -> Target:
    """Map a client-supplied target string to a Target.

    Unknown or missing values fall back to DEFAULT_TARGET instead of failing.
    """
    if isinstance(value, Target):
        return value
    candidate = (value or "").strip()
    try:
        return Target(candidate)
    except ValueError:
        return DEFAULT_TARGET


def build_system_prompt(target: Target) -> str:
    profile = TARGET_PROFILES[target]
    return SYSTEM_PROMPT_TEMPLATE.format(
        target_name=profile.display_name,
        namespaces=profile.namespaces,
    )


def build_user_prompt(request: str, current_code: Optional[str] = None) -> str:
    """Build the user message.

    Args:
        request: Free-text request from the student.
        current_code: Code currently in the editor. Included verbatim when it
            is not blank.

    Returns:
        Prompt text.
    """
    header = "USER_REQUEST:\n" + request.strip()
    if current_code and current_code.strip():
        return (
            f"{header}\n\n{CURRENT_CODE_START}\n{current_code}\n{CURRENT_CODE_END}"
        )
    return header
