"""Parse-then-validate pipeline for raw backend text.

Each parser returns a tagged result: ``Ok(value)`` or ``Err(error)``. Nothing is
raised; callers branch on the tag and take the fallback path on ``Err``.
"""

import json
import re
from dataclasses import dataclass
from typing import Generic, TypeVar

from pydantic import ValidationError

from planwise.domain.entities.plan import PlanItem
from planwise.domain.errors import ResponseValidationError

T = TypeVar("T")

_CODE_FENCE = re.compile(r"```[A-Za-z0-9_-]*\n?")


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T


@dataclass(frozen=True)
class Err:
    error: ResponseValidationError

    @property
    def reason(self) -> str:
        return str(self.error)


ParseResult = Ok[T] | Err


def parse_questions(text: str, limit: int = 3) -> "ParseResult[list[str]]":
    """Non-empty lines containing a question mark, trimmed, at most limit."""
    questions = [line.strip() for line in text.splitlines()]
    questions = [q for q in questions if q and "?" in q][:limit]
    if not questions:
        return Err(ResponseValidationError("no question lines in response"))
    return Ok(questions)


def strip_code_fences(text: str) -> str:
    return _CODE_FENCE.sub("", text).strip()


def extract_json_array(text: str) -> "ParseResult[list]":
    """Decode the first top-level JSON array in text.

    Only the first "[" is decoded. A truncated array is an error, never a
    reason to fall through to the arrays nested inside it.
    """
    start = text.find("[")
    if start == -1:
        return Err(ResponseValidationError("no JSON array found in response"))
    try:
        value, _ = json.JSONDecoder().raw_decode(text, start)
    except json.JSONDecodeError as e:
        return Err(ResponseValidationError(f"response does not contain a valid JSON array: {e.msg}"))
    return Ok(value)


def validate_plan_items(raw_items: list) -> "ParseResult[list[PlanItem]]":
    """Keep elements that validate as PlanItem; invalid ones are dropped, never repaired."""
    plan: list[PlanItem] = []
    for raw in raw_items:
        if not isinstance(raw, dict):
            continue
        try:
            plan.append(PlanItem.model_validate(raw))
        except ValidationError:
            continue
    if not plan:
        return Err(ResponseValidationError("no valid plan items found"))
    return Ok(plan)


def parse_plan(text: str) -> "ParseResult[list[PlanItem]]":
    """Strip fences, extract the array, validate its elements."""
    extracted = extract_json_array(strip_code_fences(text))
    if isinstance(extracted, Err):
        return extracted
    return validate_plan_items(extracted.value)
