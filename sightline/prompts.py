"""Centralized prompt templates and the solving-plan selection policy."""

from __future__ import annotations

from dataclasses import dataclass

from sightline.models import Complexity, ModelTiers, ProblemInfo, ProblemType

# ---------------------------------------------------------------------------
# Extraction
# ---------------------------------------------------------------------------

EXTRACTION_PROMPT = """\
You are a challenge interpreter. Analyze the screenshots and extract all relevant \
information about the problem shown.

Return ONLY a JSON object with these keys:
- "problem_statement": string: the full problem text, transcribed exactly
- "constraints": string: constraints or limits, or ""
- "function_signature": string: the function/method signature for coding problems, or ""
- "example_input": string: sample input, or ""
- "example_output": string: sample output, or ""
- "problem_type": one of "coding", "quantitative", "logical", "data_interpretation", \
"general", "interview"
  - "quantitative": arithmetic, algebra, probability, statistics questions
  - "logical": puzzles, series, syllogisms, seating/arrangement questions
  - "data_interpretation": questions about a table, chart or graph
  - "general": any other multiple-choice question
  - "interview": an open personal or behavioral interview question
- "options": array of strings with the answer choices, only for multiple-choice problems
- "complexity": "high" if the problem needs long multi-step reasoning or advanced \
algorithms, otherwise "normal"

Rules:
- Return ONLY valid JSON. No markdown fences, no extra text.
- Preferred programming language: {language}."""


def extraction_prompt(language: str) -> str:
    return EXTRACTION_PROMPT.format(language=language)


# ---------------------------------------------------------------------------
# Solving templates
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PromptTemplate:
    name: str
    full: str
    terse: str

    def render(self, problem: ProblemInfo, language: str, terse: bool = False) -> str:
        template = self.terse if terse else self.full
        return template.format(**_template_fields(problem, language))


def _template_fields(problem: ProblemInfo, language: str) -> dict[str, str]:
    options = "\n".join(problem.options) if problem.options else "(none given)"
    return {
        "statement": problem.problem_statement,
        "constraints": problem.constraints or "Standard competitive programming constraints",
        "example_input": problem.example_input or "See problem description",
        "example_output": problem.example_output or "See problem description",
        "signature": problem.function_signature or f"def solution(): # {language}",
        "options": options,
        "language": language,
    }


CODING = PromptTemplate(
    name="coding",
    full="""\
You are an expert competitive programmer. Solve this coding challenge with maximum \
correctness and efficiency.

PROBLEM: {statement}
CONSTRAINTS: {constraints}
INPUT: {example_input}
OUTPUT: {example_output}
SIGNATURE: {signature}

APPROACH:
1. Identify the core algorithm or data structure and the input/output format.
2. Check the constraints and pick an algorithm that fits them.
3. Handle every edge case and boundary condition explicitly.
4. Trace the examples through your solution before answering.

Provide your solution as:
```{language}
[Your complete, runnable code here]
```

CRITICAL INSIGHTS:
• [3-4 key algorithmic insights that make this solution work]

Time complexity: O(...)
Space complexity: O(...)""",
    terse="""\
Code solution in {language}:

PROBLEM: {statement}
CONSTRAINTS: {constraints}

```{language}
[Complete solution]
```

Key insights (3-4 short bullets).
Time complexity: O(...)
Space complexity: O(...)""",
)

QUANTITATIVE = PromptTemplate(
    name="quantitative",
    full="""\
You are an expert quantitative analyst. Solve this problem with maximum accuracy \
using systematic reasoning.

PROBLEM: {statement}
OPTIONS:
{options}

STEP 1 - ANALYSIS: identify the problem type, extract every given value and unit, \
and note common traps.
STEP 2 - STRATEGY: choose the formula or method and check its assumptions.
STEP 3 - CALCULATION: show every step with intermediate results.
STEP 4 - VERIFICATION: check the result makes sense and matches one option exactly.

KEY INSIGHTS:
• [2-4 short points that decide the answer]

State your final answer as: **ANSWER: [OPTION LETTER]**""",
    terse="""\
Solve quantitatively:

PROBLEM: {statement}
OPTIONS:
{options}

Extract the values, apply the formula step by step and check the result matches an option.
Key insights (2-3 bullets).
**ANSWER: [OPTION]**""",
)

LOGICAL = PromptTemplate(
    name="logical",
    full="""\
You are an expert in logical reasoning. Solve this puzzle by deduction.

PROBLEM: {statement}
OPTIONS:
{options}

STEP 1 - List every condition stated in the problem.
STEP 2 - Derive what must be true, building the arrangement or sequence step by step.
STEP 3 - Eliminate each option that violates a condition.
STEP 4 - Confirm the remaining option satisfies all conditions.

KEY INSIGHTS:
• [2-4 short deductions that decide the answer]

State your final answer as: **ANSWER: [OPTION LETTER]**""",
    terse="""\
Solve by deduction:

PROBLEM: {statement}
OPTIONS:
{options}

List the conditions, eliminate options, confirm the survivor.
Key insights (2-3 bullets).
**ANSWER: [OPTION]**""",
)

DATA_INTERPRETATION = PromptTemplate(
    name="data_interpretation",
    full="""\
You are an expert at reading tables, charts and graphs. Answer the question from the \
data shown.

PROBLEM: {statement}
OPTIONS:
{options}

STEP 1 - Read off exactly the values the question needs, with units.
STEP 2 - Compute the required ratio, percentage, difference or total step by step.
STEP 3 - Round only at the end and compare with every option.

KEY INSIGHTS:
• [2-4 short points about the values that decide the answer]

State your final answer as: **ANSWER: [OPTION LETTER]**""",
    terse="""\
Answer from the data:

PROBLEM: {statement}
OPTIONS:
{options}

Read the needed values, compute, compare with the options.
Key insights (2-3 bullets).
**ANSWER: [OPTION]**""",
)

INTERVIEW = PromptTemplate(
    name="interview",
    full="""\
You are an experienced interview coach. Draft a strong spoken answer to this \
interview question.

QUESTION: {statement}

Use the STAR structure (Situation, Task, Action, Result) when the question asks \
about past experience. Keep the answer under 200 words, first person, natural and \
specific.

KEY INSIGHTS:
• [2-4 short tips on delivering this answer]""",
    terse="""\
Short interview answer (under 120 words, first person):

QUESTION: {statement}

Key insights (2 bullets).""",
)

GENERAL = PromptTemplate(
    name="general",
    full="""\
You are a careful problem solver. Answer this question by general deductive reasoning.

PROBLEM: {statement}
OPTIONS:
{options}

STEP 1 - Restate precisely what is being asked.
STEP 2 - Evaluate each option against the question and known facts.
STEP 3 - Eliminate the options that cannot be right and justify the remaining one.

KEY INSIGHTS:
• [2-4 short points that decide the answer]

State your final answer as: **ANSWER: [OPTION LETTER]**""",
    terse="""\
Answer concisely:

PROBLEM: {statement}
OPTIONS:
{options}

Eliminate wrong options and justify the answer in a few lines.
Key insights (2 bullets).
**ANSWER: [OPTION]**""",
)

TEMPLATES: dict[ProblemType, PromptTemplate] = {
    ProblemType.CODING: CODING,
    ProblemType.QUANTITATIVE: QUANTITATIVE,
    ProblemType.LOGICAL: LOGICAL,
    ProblemType.DATA_INTERPRETATION: DATA_INTERPRETATION,
    ProblemType.GENERAL: GENERAL,
    ProblemType.INTERVIEW: INTERVIEW,
}

# Non-coding types that need multi-step reasoning go to the deeper model.
_REASONING_TYPES = frozenset({
    ProblemType.QUANTITATIVE,
    ProblemType.LOGICAL,
    ProblemType.DATA_INTERPRETATION,
    ProblemType.GENERAL,
})


@dataclass(frozen=True)
class SolvingPlan:
    template: PromptTemplate
    model: str


def select_solving_plan(
    problem_type: ProblemType | None,
    complexity: Complexity,
    tiers: ModelTiers,
) -> SolvingPlan:
    """Map (problem type, complexity hint) to a prompt template and model.

    Total and deterministic: unknown types fall back to the general deductive
    template, and the same inputs always yield the same plan.
    """
    template = TEMPLATES.get(problem_type, GENERAL) if problem_type is not None else GENERAL
    if complexity is Complexity.HIGH or problem_type in _REASONING_TYPES:
        model = tiers.deep
    else:
        model = tiers.fast
    return SolvingPlan(template=template, model=model)


# ---------------------------------------------------------------------------
# Debug
# ---------------------------------------------------------------------------

DEBUG_PROMPT = """\
Debug help for: "{statement}" in {language}

Analyze these screenshots (errors, outputs, failing tests, the current code) and provide:

### Issues Identified
- List the specific problems found

### Specific Improvements
- List the exact code changes needed

### Key Points
- The most important takeaways

Be concise and specific. Put the corrected code in a single ```{language} code block."""


def debug_prompt(problem: ProblemInfo, language: str) -> str:
    return DEBUG_PROMPT.format(statement=problem.problem_statement, language=language)
