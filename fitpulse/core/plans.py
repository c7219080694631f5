import math
from enum import Enum
from typing import Any, Optional, Union

from pydantic import ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from fitpulse.core.schema import CamelModel

# Plan payloads come from an LLM, so numeric fields may arrive as free text
# ("12 each side", "30 seconds"). Only real numbers are ever scaled.
PlanNumber = Union[int, float, str]


class Intensity(str, Enum):
    low = "Low"
    normal = "Normal"
    high = "High"


class _PlanModel(CamelModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
        extra="allow",
        allow_inf_nan=False,
    )


class ExerciseEntry(_PlanModel):
    name: str = ""
    sets: Optional[PlanNumber] = None
    reps: Optional[PlanNumber] = None
    instructions: Optional[str] = None


class DayEntry(_PlanModel):
    day: str = ""
    workout_type: Optional[str] = None
    duration: Optional[PlanNumber] = None
    intensity: Optional[Intensity] = None
    exercises: list[ExerciseEntry] = Field(default_factory=list)

    @field_validator("intensity", mode="before")
    @classmethod
    def normalize_intensity(cls, value: Any) -> Optional[Intensity]:
        if value is None or isinstance(value, Intensity):
            return value
        lowered = str(value).strip().lower()
        for item in Intensity:
            if item.value.lower() == lowered:
                return item
        return None


class WorkoutPlanDoc(_PlanModel):
    overview: Optional[str] = None
    weekly_schedule: list[DayEntry] = Field(default_factory=list)
    tips: list[str] = Field(default_factory=list)


class MealPlanDoc(_PlanModel):
    daily_nutrition_targets: dict[str, Any] = Field(default_factory=dict)
    protein_sources: list[dict[str, Any]] = Field(default_factory=list)
    sample_meals: list[dict[str, Any]] = Field(default_factory=list)
    tips: list[str] = Field(default_factory=list)


def is_number(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)
