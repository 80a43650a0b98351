"""Prompt templates for clarification and plan generation."""

from planwise.domain.entities.project_context import ProjectContext
from planwise.domain.ports.llm import LLMMessage
from planwise.infrastructure.analyzer import render_context_summary

SYSTEM_PROMPT = (
    "You are a senior engineer planning changes to an existing codebase. "
    "Follow the requested output format exactly."
)

CLARIFICATION_TEMPLATE = """{context}

A developer in this project wants: "{request}"

Based on the existing codebase and project structure, generate 2-3 specific clarification questions that would help implement this request properly. Consider:
- The current technology stack and frameworks being used
- Existing patterns and architecture in the codebase
- Integration points with current code
- Specific technical decisions needed for this project

Keep questions focused on what's needed to implement this feature in THIS specific codebase.

Return only the questions, one per line:"""

PLAN_TEMPLATE = """{context}

Create an implementation plan for: "{request}"{clarifications}

Based on the existing codebase structure and patterns, generate a JSON array of file changes needed. Follow these guidelines:

1. Use the EXISTING file structure and naming conventions shown above
2. Integrate with the current technology stack ({frameworks})
3. Follow the existing patterns in the codebase
4. Only include files directly needed for the requested feature
5. Use realistic file paths that match the current project structure

Each item should have:
- "file": file path from project root (matching existing structure)
- "action": "new", "modify", or "remove"
- "description": specific implementation details for this codebase

Return only valid JSON array:"""


def _context_block(context: ProjectContext | None) -> str:
    return render_context_summary(context) if context else ""


def build_clarification_messages(request: str, context: ProjectContext | None) -> list[LLMMessage]:
    prompt = CLARIFICATION_TEMPLATE.format(context=_context_block(context), request=request)
    return [
        LLMMessage(role="system", content=SYSTEM_PROMPT),
        LLMMessage(role="user", content=prompt),
    ]


def build_plan_messages(
    request: str,
    answers: list[str],
    context: ProjectContext | None,
) -> list[LLMMessage]:
    clarifications = ""
    if answers:
        numbered = "\n".join(f"{i}. {answer}" for i, answer in enumerate(answers, 1))
        clarifications = f"\n\nClarification Details:\n{numbered}"
    frameworks = ", ".join(context.frameworks) if context and context.frameworks else "detected frameworks"
    prompt = PLAN_TEMPLATE.format(
        context=_context_block(context),
        request=request,
        clarifications=clarifications,
        frameworks=frameworks,
    )
    return [
        LLMMessage(role="system", content=SYSTEM_PROMPT),
        LLMMessage(role="user", content=prompt),
    ]
