"""Pydantic schema for the attendance points policy."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from points_engine.core.enums import DisciplineStatus, OccurrenceType


class PolicyConfiguration(BaseModel):
    """Closed, validated policy struct.

    Accepts and emits the camelCase option names used by the policy store
    (``pointsPerTardy``, ``warningThreshold`` ...); snake_case field names
    are accepted too. Unknown options are rejected rather than ignored.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
        frozen=True,
    )

    points_per_tardy: float = Field(ge=0)
    points_per_absent: float = Field(ge=0)
    points_per_early_out: float = Field(ge=0)
    points_per_no_call_no_show: float = Field(ge=0)
    points_per_unexcused_absence: float = Field(ge=0)

    warning_threshold: float = Field(gt=0)
    probation_threshold: float = Field(gt=0)
    final_warning_threshold: float = Field(gt=0)
    termination_threshold: float = Field(gt=0)

    expiration_window_days: int = Field(default=365, gt=0)
    pending_review_grace_days: int = Field(default=3, gt=0)
    expiration_warning_days: int = Field(default=7, gt=0)

    @model_validator(mode="after")
    def _thresholds_strictly_increasing(self) -> "PolicyConfiguration":
        ladder = [
            self.warning_threshold,
            self.probation_threshold,
            self.final_warning_threshold,
            self.termination_threshold,
        ]
        if any(lower >= upper for lower, upper in zip(ladder, ladder[1:])):
            raise ValueError(
                "thresholds must be strictly increasing: "
                "warning < probation < finalWarning < termination"
            )
        return self

    def points_for(self, occurrence_type: OccurrenceType | str) -> float:
        return {
            OccurrenceType.TARDY: self.points_per_tardy,
            OccurrenceType.ABSENT: self.points_per_absent,
            OccurrenceType.EARLY_OUT: self.points_per_early_out,
            OccurrenceType.NO_CALL_NO_SHOW: self.points_per_no_call_no_show,
            OccurrenceType.UNEXCUSED_ABSENCE: self.points_per_unexcused_absence,
        }[OccurrenceType(occurrence_type)]

    def thresholds(self) -> list[tuple[DisciplineStatus, float]]:
        """Tier lower bounds, highest first."""
        return [
            (DisciplineStatus.TERMINATION, self.termination_threshold),
            (DisciplineStatus.FINAL_WARNING, self.final_warning_threshold),
            (DisciplineStatus.PROBATION, self.probation_threshold),
            (DisciplineStatus.WARNING, self.warning_threshold),
        ]
