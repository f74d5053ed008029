"""Parsers that turn model text into structured results.

The extraction phase is asked for strict JSON, so ``parse_problem_info`` fails loudly
on anything else. The solving and debug phases return free text whose layout is not
guaranteed; their parsers never raise and fall back to whole-text content and
placeholder fields instead.
"""

from __future__ import annotations

import json
import re

from sightline.errors import ParseError
from sightline.models import (
    Complexity,
    DebugResult,
    ProblemInfo,
    ProblemType,
    SolutionResult,
)

COMPLEXITY_PLACEHOLDER = "Not specified"
DEBUG_CODE_PLACEHOLDER = "# Debug mode - see analysis below"
DEBUG_FALLBACK_THOUGHT = "Debug analysis based on your screenshots"

MAX_THOUGHTS = 4
MAX_DEBUG_THOUGHTS = 5

FALLBACK_THOUGHTS: dict[ProblemType, str] = {
    ProblemType.CODING: "Optimal algorithm design with comprehensive edge case handling",
    ProblemType.QUANTITATIVE: "Systematic quantitative analysis with step-by-step verification",
    ProblemType.LOGICAL: "Deductive elimination of options against every stated condition",
    ProblemType.DATA_INTERPRETATION: "Values read directly from the data and cross-checked before comparing options",
    ProblemType.GENERAL: "Each option checked against the question before choosing the best fit",
    ProblemType.INTERVIEW: "Structured answer built around a concrete example and its outcome",
}

_FENCE_RE = re.compile(r"```[\w+#.\-]*[ \t]*\n(.*?)```", re.DOTALL)
_INLINE_FENCE_RE = re.compile(r"```([^\n]+?)```")
_LEADING_FENCE_RE = re.compile(r"^```[\w+#.\-]*[ \t]*\n?")
_TRAILING_FENCE_RE = re.compile(r"\s*```\s*$")
_INSIGHTS_RE = re.compile(
    r"(?:critical insights?|key insights?|insights?|thoughts?|approach)[:\s]*\n?"
    r"(.*?)(?:$|(?=\n\s*(?:answer|final|solution|code|```|\*\*)))",
    re.IGNORECASE | re.DOTALL,
)
_BULLET_RE = re.compile(r"^\s*(?:[•\-]|\*(?!\*))\s*(.+)$", re.MULTILINE)
_DEBUG_BULLET_RE = re.compile(r"^[ \t]*(?:[-*•]|\d+\.)[ \t]+(.+)$", re.MULTILINE)
# O(...) with one level of nested parentheses, e.g. O(n log(n))
_BIG_O = r"O\((?:[^()\n]|\([^()\n]*\))*\)"
_TIME_RE = re.compile(rf"time\s+complexity[^\n]*?\n?[^\n]*?({_BIG_O})", re.IGNORECASE)
_SPACE_RE = re.compile(rf"space\s+complexity[^\n]*?\n?[^\n]*?({_BIG_O})", re.IGNORECASE)


def strip_code_fence(text: str) -> str:
    """Remove one leading fence (```, ```json) and one trailing ``` if present.

    The fence may share a line with its content, as in ```json{"a": 1}```.
    """
    cleaned = _LEADING_FENCE_RE.sub("", text.strip(), count=1)
    cleaned = _TRAILING_FENCE_RE.sub("", cleaned, count=1)
    return cleaned.strip()


def extract_code_block(text: str) -> str | None:
    """Return the trimmed body of the first fenced block, or None if there is none."""
    match = _FENCE_RE.search(text) or _INLINE_FENCE_RE.search(text)
    if match is None:
        return None
    return match.group(1).strip()


def parse_problem_info(raw_text: str) -> ProblemInfo:
    """Parse the extraction-phase JSON into a ProblemInfo, raising ParseError."""
    try:
        data = json.loads(strip_code_fence(raw_text))
    except (json.JSONDecodeError, TypeError) as exc:
        raise ParseError() from exc
    if not isinstance(data, dict):
        raise ParseError()

    statement = data.get("problem_statement")
    if not isinstance(statement, str) or not statement.strip():
        raise ParseError()

    signature = _text_field(data, "function_signature")
    problem_type = ProblemType.from_label(data.get("problem_type"))
    if problem_type is None:
        problem_type = ProblemType.CODING if signature else ProblemType.GENERAL

    options: tuple[str, ...] = ()
    if problem_type.is_multiple_choice:
        options = _options_field(data.get("options"))

    complexity_label = data.get("complexity")
    complexity = (
        Complexity.HIGH
        if isinstance(complexity_label, str) and complexity_label.strip().lower() == "high"
        else Complexity.NORMAL
    )

    return ProblemInfo(
        problem_statement=statement,
        problem_type=problem_type,
        constraints=_text_field(data, "constraints"),
        function_signature=signature,
        example_input=_text_field(data, "example_input"),
        example_output=_text_field(data, "example_output"),
        options=options,
        complexity=complexity,
    )


def _text_field(data: dict, key: str) -> str:
    value = data.get(key)
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, list):
        return "\n".join(str(v) for v in value)
    return str(value)


def _options_field(value: object) -> tuple[str, ...]:
    if isinstance(value, list):
        return tuple(str(v).strip() for v in value if str(v).strip())
    if isinstance(value, str):
        return tuple(line.strip() for line in value.splitlines() if line.strip())
    if isinstance(value, dict):
        return tuple(f"{k}) {v}" for k, v in value.items())
    return ()


def parse_solution_text(raw_text: str, problem_type: ProblemType) -> SolutionResult:
    """Parse a solving-phase response. Never raises."""
    text = raw_text if isinstance(raw_text, str) else ""
    content = text.strip()
    if not problem_type.is_prose:
        code = extract_code_block(text)
        if code:
            content = code

    thoughts = extract_thoughts(text)
    if not thoughts:
        thoughts = [FALLBACK_THOUGHTS.get(problem_type, FALLBACK_THOUGHTS[ProblemType.GENERAL])]

    return SolutionResult(
        code=content,
        thoughts=thoughts,
        time_complexity=_complexity(_TIME_RE, text),
        space_complexity=_complexity(_SPACE_RE, text),
        problem_type=problem_type,
        raw_response=text,
    )


def extract_thoughts(text: str, limit: int = MAX_THOUGHTS) -> list[str]:
    """Pull insight bullets out of an insights/approach section."""
    match = _INSIGHTS_RE.search(text)
    if not match or not match.group(1).strip():
        return []
    section = match.group(1)
    bullets = [b.strip() for b in _BULLET_RE.findall(section)]
    if bullets:
        return [b for b in bullets if len(b) > 10][:limit]
    lines = [line.strip() for line in section.splitlines()]
    return [line for line in lines if len(line) > 10 and "```" not in line][:limit]


def _complexity(pattern: re.Pattern[str], text: str) -> str:
    match = pattern.search(text)
    return match.group(1) if match else COMPLEXITY_PLACEHOLDER


def parse_debug_text(raw_text: str) -> DebugResult:
    """Parse a debug-phase response. Never raises."""
    text = raw_text if isinstance(raw_text, str) else ""
    code = extract_code_block(text) or DEBUG_CODE_PLACEHOLDER
    prose = _INLINE_FENCE_RE.sub("", _FENCE_RE.sub("", text))
    thoughts = [t.strip() for t in _DEBUG_BULLET_RE.findall(prose)][:MAX_DEBUG_THOUGHTS]
    return DebugResult(
        code=code,
        debug_analysis=text,
        thoughts=thoughts or [DEBUG_FALLBACK_THOUGHT],
    )
