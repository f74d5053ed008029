"""Tests for data models and the event types built on them."""

from sightline.events import Error, ProblemExtracted, Progress, Reset, SolutionReady
from sightline.models import (
    Complexity,
    DebugResult,
    ProblemInfo,
    ProblemType,
    SolutionResult,
)


def test_problem_type_from_label():
    assert ProblemType.from_label("coding") is ProblemType.CODING
    assert ProblemType.from_label("MCQ") is ProblemType.GENERAL
    assert ProblemType.from_label("Data-Interpretation") is ProblemType.DATA_INTERPRETATION
    assert ProblemType.from_label("data interpretation") is ProblemType.DATA_INTERPRETATION
    assert ProblemType.from_label("Personal Interview") is ProblemType.INTERVIEW
    assert ProblemType.from_label("general multiple-choice") is ProblemType.GENERAL
    assert ProblemType.from_label("riddle") is None
    assert ProblemType.from_label("") is None
    assert ProblemType.from_label(None) is None


def test_problem_type_groups():
    assert not ProblemType.CODING.is_prose
    assert not ProblemType.CODING.is_multiple_choice
    assert ProblemType.INTERVIEW.is_prose
    assert not ProblemType.INTERVIEW.is_multiple_choice
    for t in (ProblemType.QUANTITATIVE, ProblemType.LOGICAL, ProblemType.DATA_INTERPRETATION, ProblemType.GENERAL):
        assert t.is_multiple_choice and t.is_prose


def test_problem_info_defaults_and_dict():
    info = ProblemInfo(problem_statement="Add two numbers", problem_type=ProblemType.CODING)
    data = info.to_dict()
    assert data["problem_statement"] == "Add two numbers"
    assert data["problem_type"] == "coding"
    assert data["complexity"] == Complexity.NORMAL.value
    assert "options" not in data


def test_problem_info_is_frozen():
    info = ProblemInfo(problem_statement="x")
    try:
        info.problem_statement = "y"  # type: ignore[misc]
        assert False, "ProblemInfo should be immutable"
    except AttributeError:
        pass


def test_result_dicts():
    solution = SolutionResult(code="print(1)", thoughts=["a"], time_complexity="O(1)")
    assert solution.to_dict()["code"] == "print(1)"
    assert "raw_response" not in solution.to_dict()
    debug = DebugResult(code="x", debug_analysis="full", thoughts=["t"])
    assert debug.to_dict() == {"code": "x", "debug_analysis": "full", "thoughts": ["t"]}


def test_event_dicts():
    assert Progress("analyzing", "Analyzing...", 20).to_dict() == {
        "type": "progress", "stage": "analyzing", "message": "Analyzing...", "progress": 20,
    }
    info = ProblemInfo(problem_statement="x")
    assert ProblemExtracted(info).to_dict()["problem"]["problem_statement"] == "x"
    assert SolutionReady(SolutionResult(code="c")).to_dict()["type"] == "solution_ready"
    assert Error(kind="parse", message="bad").to_dict()["phase"] == "solve"
    assert Reset(reason="cancelled").to_dict() == {"type": "reset", "reason": "cancelled"}
