"""Plan entities - a change plan is an ordered list of per-file actions."""

from enum import Enum

from pydantic import BaseModel, ConfigDict, field_validator


class PlanAction(str, Enum):
    """What a plan item does to its file. Closed set, shared by validation and rendering."""

    NEW = "new"
    MODIFY = "modify"
    REMOVE = "remove"

    @property
    def label(self) -> str:
        """Tag shown in front ends, e.g. [NEW]."""
        return f"[{self.name}]"


class PlanItem(BaseModel):
    """One atomic proposed change to a single file."""

    file: str
    action: PlanAction
    description: str

    model_config = ConfigDict(extra="ignore", frozen=True)

    @field_validator("file", "description", mode="before")
    @classmethod
    def _non_empty_text(cls, value: object) -> str:
        if not isinstance(value, str):
            raise ValueError("must be a string")
        value = value.strip()
        if not value:
            raise ValueError("must not be empty")
        return value


def count_by_action(plan: list[PlanItem]) -> dict[str, int]:
    """Count plan items per action, all actions present (zero when absent)."""
    counts = {action.value: 0 for action in PlanAction}
    for item in plan:
        counts[item.action.value] += 1
    return counts
