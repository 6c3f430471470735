"""
Picks submission gate.

Every payload is checked before it reaches the picks or prophecy answer
tables. Failures are reported as (field, reason) pairs so the caller can
show exactly which rule broke. Nothing is coerced: "3" is not a castaway id
and 1 is not a boolean.
"""

from typing import Annotated, Any

from pydantic import (
    BaseModel, ConfigDict, Field, StrictBool, ValidationError, ValidationInfo,
    field_validator,
)
from pydantic_core import PydanticCustomError

from outwit.services.point_tables import PROPHECY_QUESTION_IDS

CastawayId = Annotated[int, Field(strict=True, gt=0)]

TRIO_FIELDS = ("trio_castaway_1", "trio_castaway_2", "trio_castaway_3")
CASTAWAY_FIELDS = TRIO_FIELDS + ("icky_castaway",)

POSITIVE_ID_REASON = "Castaway id must be a positive integer"


class Violation(BaseModel):
    field: str
    reason: str


class PicksValidationError(ValueError):
    def __init__(self, violations: list[Violation]):
        self.violations = violations
        super().__init__("; ".join(f"{v.field}: {v.reason}" for v in violations))


def _reject(reason: str) -> PydanticCustomError:
    return PydanticCustomError("picks_rule", reason)


class PicksSubmission(BaseModel):
    """A validated submission. Build it through validate_picks_submission()."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    # Field order matters: later validators read earlier values from info.data
    trio_castaway_1: CastawayId
    trio_castaway_2: CastawayId
    trio_castaway_3: CastawayId
    icky_castaway: CastawayId
    prophecy_answers: dict[int, StrictBool]

    @field_validator("trio_castaway_2", "trio_castaway_3")
    @classmethod
    def trio_must_be_distinct(cls, value: int, info: ValidationInfo) -> int:
        earlier = [info.data.get(f) for f in TRIO_FIELDS[:TRIO_FIELDS.index(info.field_name)]]
        if value in earlier:
            raise _reject("Trusted Trio must be 3 different castaways")
        return value

    @field_validator("icky_castaway")
    @classmethod
    def icky_not_in_trio(cls, value: int, info: ValidationInfo) -> int:
        if value in [info.data.get(f) for f in TRIO_FIELDS]:
            raise _reject("Icky Pick cannot be the same as any Trusted Trio castaway")
        return value

    @field_validator("prophecy_answers", mode="before")
    @classmethod
    def normalize_question_ids(cls, answers: Any) -> Any:
        # JSON object keys arrive as "1".."16"
        if not isinstance(answers, dict):
            raise _reject("Prophecy answers must be an object keyed by question id 1-16")
        normalized = {}
        for key, answer in answers.items():
            if isinstance(key, bool):
                question_id = None
            elif isinstance(key, int):
                question_id = key
            elif isinstance(key, str) and key.isascii() and key.isdigit():
                question_id = int(key)
            else:
                question_id = None
            if question_id is None or question_id not in PROPHECY_QUESTION_IDS:
                raise _reject(f"Unknown prophecy question {key!r} (ids run 1-16)")
            if question_id in normalized:
                raise _reject(f"Prophecy question {question_id} answered more than once")
            normalized[question_id] = answer
        return normalized

    @field_validator("prophecy_answers")
    @classmethod
    def all_questions_answered(cls, answers: dict[int, bool]) -> dict[int, bool]:
        missing = sorted(PROPHECY_QUESTION_IDS - set(answers))
        if missing:
            raise _reject(
                "All 16 prophecy questions must be answered "
                f"(missing: {', '.join(str(q) for q in missing)})"
            )
        return answers

    @property
    def trio(self) -> tuple[int, int, int]:
        return (self.trio_castaway_1, self.trio_castaway_2, self.trio_castaway_3)


def _to_violation(error: dict) -> Violation:
    loc = [str(part) for part in error["loc"]]
    field = ".".join(loc) or "__root__"
    reason = error["msg"]
    if loc and loc[0] in CASTAWAY_FIELDS and error["type"] in (
        "int_type", "int_parsing", "greater_than", "int_from_float",
    ):
        reason = POSITIVE_ID_REASON
    elif error["type"] == "bool_type":
        reason = "Prophecy answer must be true or false"
    elif error["type"] == "missing":
        reason = "Field is required"
    elif error["type"] == "extra_forbidden":
        reason = "Unexpected field"
    return Violation(field=field, reason=reason)


def validate_picks_submission(payload: Any) -> PicksSubmission:
    """Return a PicksSubmission or raise PicksValidationError naming every broken rule."""
    if isinstance(payload, PicksSubmission):
        return payload
    if not isinstance(payload, dict):
        raise PicksValidationError([Violation(field="__root__", reason="Submission must be an object")])
    try:
        return PicksSubmission.model_validate(payload)
    except ValidationError as e:
        raise PicksValidationError([_to_violation(err) for err in e.errors()]) from e
