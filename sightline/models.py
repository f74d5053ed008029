"""Data models for Sightline."""

from __future__ import annotations

import enum
import re
from dataclasses import dataclass, field


class ProblemType(enum.Enum):
    CODING = "coding"
    QUANTITATIVE = "quantitative"
    LOGICAL = "logical"
    DATA_INTERPRETATION = "data_interpretation"
    GENERAL = "general"  # general multiple-choice
    INTERVIEW = "interview"  # personal interview

    @classmethod
    def from_label(cls, label: object) -> ProblemType | None:
        """Map a loose label from model output ("MCQ", "Data-Interpretation") to a member."""
        if not isinstance(label, str):
            return None
        key = re.sub(r"[\s\-]+", "_", label.strip().lower())
        if not key:
            return None
        return _LABEL_ALIASES.get(key)

    @property
    def is_multiple_choice(self) -> bool:
        return self in _MULTIPLE_CHOICE

    @property
    def is_prose(self) -> bool:
        return self is not ProblemType.CODING


_MULTIPLE_CHOICE = frozenset({
    ProblemType.QUANTITATIVE,
    ProblemType.LOGICAL,
    ProblemType.DATA_INTERPRETATION,
    ProblemType.GENERAL,
})

_LABEL_ALIASES: dict[str, ProblemType] = {
    **{t.value: t for t in ProblemType},
    "code": ProblemType.CODING,
    "programming": ProblemType.CODING,
    "quant": ProblemType.QUANTITATIVE,
    "quantitative_aptitude": ProblemType.QUANTITATIVE,
    "math": ProblemType.QUANTITATIVE,
    "logical_reasoning": ProblemType.LOGICAL,
    "logic": ProblemType.LOGICAL,
    "reasoning": ProblemType.LOGICAL,
    "di": ProblemType.DATA_INTERPRETATION,
    "data": ProblemType.DATA_INTERPRETATION,
    "mcq": ProblemType.GENERAL,
    "multiple_choice": ProblemType.GENERAL,
    "general_mcq": ProblemType.GENERAL,
    "general_multiple_choice": ProblemType.GENERAL,
    "personal_interview": ProblemType.INTERVIEW,
    "behavioral": ProblemType.INTERVIEW,
    "hr": ProblemType.INTERVIEW,
}


class Complexity(enum.Enum):
    NORMAL = "normal"
    HIGH = "high"


class FinishReason(enum.Enum):
    NORMAL = "normal"
    TRUNCATED = "truncated"
    BLOCKED = "blocked"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class ProblemInfo:
    problem_statement: str
    problem_type: ProblemType = ProblemType.GENERAL
    constraints: str = ""
    function_signature: str = ""
    example_input: str = ""
    example_output: str = ""
    options: tuple[str, ...] = ()  # only kept for multiple-choice types
    complexity: Complexity = Complexity.NORMAL

    def to_dict(self) -> dict:
        """Serialize using the same field names the extraction phase returns."""
        data: dict = {
            "problem_statement": self.problem_statement,
            "problem_type": self.problem_type.value,
            "constraints": self.constraints,
            "function_signature": self.function_signature,
            "example_input": self.example_input,
            "example_output": self.example_output,
            "complexity": self.complexity.value,
        }
        if self.options:
            data["options"] = list(self.options)
        return data


@dataclass
class SolutionResult:
    code: str  # code for coding problems, the full prose answer otherwise
    thoughts: list[str] = field(default_factory=list)
    time_complexity: str = ""
    space_complexity: str = ""
    problem_type: ProblemType = ProblemType.CODING
    raw_response: str = ""

    def to_dict(self) -> dict:
        return {
            "code": self.code,
            "thoughts": list(self.thoughts),
            "time_complexity": self.time_complexity,
            "space_complexity": self.space_complexity,
            "problem_type": self.problem_type.value,
        }


@dataclass
class DebugResult:
    code: str
    debug_analysis: str
    thoughts: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "code": self.code,
            "debug_analysis": self.debug_analysis,
            "thoughts": list(self.thoughts),
        }


@dataclass(frozen=True)
class EncodedImage:
    path: str
    mime_type: str
    data: str  # base64, ascii


@dataclass(frozen=True)
class GenerationSettings:
    temperature: float = 0.1
    max_output_tokens: int = 8192
    top_p: float = 0.8
    top_k: int = 40
    safety_threshold: str = "BLOCK_ONLY_HIGH"


@dataclass
class ModelRequest:
    model: str
    prompt: str
    images: list[EncodedImage] = field(default_factory=list)
    settings: GenerationSettings = field(default_factory=GenerationSettings)


@dataclass
class ModelReply:
    text: str
    finish_reason: FinishReason = FinishReason.NORMAL
    block_reason: str | None = None
    raw_finish_reason: str = ""


@dataclass(frozen=True)
class ModelTiers:
    fast: str
    deep: str
