import json
from typing import Any, Optional

from pydantic import ValidationError

from fitpulse.core.plans import MealPlanDoc, WorkoutPlanDoc
from fitpulse.core.schema import CamelModel
from fitpulse.services.llm import LLMClient, LLMNotConfiguredError

TRAINER_INSTRUCTION = (
    "You are a certified personal trainer and fitness expert. Create personalized workout plans "
    "based on user goals and fitness levels. Always respond with valid JSON."
)
NUTRITIONIST_INSTRUCTION = (
    "You are a certified nutritionist and dietary expert. Create personalized meal plans based on "
    "user goals and nutritional needs. Always respond with valid JSON."
)
FOOD_DATABASE_INSTRUCTION = (
    "You are a nutritional database expert. Provide accurate calorie and macronutrient information "
    "for foods. Always respond with valid JSON."
)

WORKOUT_PLAN_SHAPE = {
    "overview": "Brief description of the plan",
    "weeklySchedule": [
        {
            "day": "Monday",
            "workoutType": "Upper Body",
            "duration": 45,
            "intensity": "Normal",
            "exercises": [
                {
                    "name": "Exercise name",
                    "sets": 3,
                    "reps": 12,
                    "instructions": "Brief instructions",
                }
            ],
        }
    ],
    "tips": ["Training tips"],
}


class PlanGenerationError(ValueError):
    pass


class WorkoutPlanParams(CamelModel):
    age: int
    weight: float
    height: float
    fitness_level: str
    goals: list[str]
    workout_days: int
    equipment: list[str] = []


class MealPlanParams(CamelModel):
    calorie_target: int
    protein_target: int
    goals: list[str]
    dietary_restrictions: list[str] = []


class FoodAnalysis(CamelModel):
    food: str
    quantity: float = 1
    unit: str = "serving"
    calories: float = 0
    protein: float = 0
    carbs: float = 0
    fat: float = 0
    confidence: str = "medium"


def _workout_prompt(params: WorkoutPlanParams) -> str:
    equipment = ", ".join(params.equipment) if params.equipment else "bodyweight only"
    return json.dumps(
        {
            "task": (
                f"Create a personalized workout plan for a {params.age}-year-old person who weighs "
                f"{params.weight}kg, is {params.height}cm tall, has a {params.fitness_level} fitness level, "
                f"and wants to work out {params.workout_days} days per week."
            ),
            "goals": params.goals,
            "equipment": equipment,
            "rules": [
                "Return exactly one weeklySchedule entry per workout day.",
                "duration is whole minutes; sets and reps are whole numbers when countable.",
                "intensity is one of Low, Normal, High.",
            ],
            "output_shape": WORKOUT_PLAN_SHAPE,
        }
    )


def _meal_prompt(params: MealPlanParams) -> str:
    return json.dumps(
        {
            "task": (
                f"Create a personalized meal plan for someone with a daily calorie target of "
                f"{params.calorie_target} calories and protein target of {params.protein_target}g."
            ),
            "goals": params.goals,
            "dietary_restrictions": params.dietary_restrictions,
            "output_shape": {
                "dailyNutritionTargets": {
                    "calories": params.calorie_target,
                    "protein": params.protein_target,
                    "carbs": "calculated amount",
                    "fat": "calculated amount",
                },
                "proteinSources": [
                    {
                        "name": "Food name",
                        "serving": "serving size",
                        "calories": "calories per serving",
                        "protein": "protein grams per serving",
                        "benefits": "why this food is good for their goals",
                    }
                ],
                "sampleMeals": [
                    {
                        "mealType": "Breakfast/Lunch/Dinner/Snack",
                        "name": "Meal name",
                        "ingredients": ["ingredient list"],
                        "calories": "total calories",
                        "protein": "total protein",
                    }
                ],
                "tips": ["Nutrition tips"],
            },
        }
    )


def generate_workout_plan(llm: LLMClient, params: WorkoutPlanParams) -> WorkoutPlanDoc:
    raw = llm.generate_json(_workout_prompt(params), system_instruction=TRAINER_INSTRUCTION)
    try:
        plan = WorkoutPlanDoc.model_validate(raw)
    except ValidationError as exc:
        raise PlanGenerationError("Generated workout plan did not match the plan schema") from exc
    if not plan.weekly_schedule:
        raise PlanGenerationError("Generated workout plan has no weekly schedule")
    return plan


def generate_meal_plan(llm: LLMClient, params: MealPlanParams) -> MealPlanDoc:
    raw = llm.generate_json(_meal_prompt(params), system_instruction=NUTRITIONIST_INSTRUCTION)
    try:
        return MealPlanDoc.model_validate(raw)
    except ValidationError as exc:
        raise PlanGenerationError("Generated meal plan did not match the meal plan schema") from exc


def _as_float(value: Any) -> float:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value)
    digits = "".join(ch for ch in str(value or "") if ch.isdigit() or ch == ".")
    try:
        return float(digits) if digits else 0.0
    except ValueError:
        return 0.0


def fallback_food_analysis(food_name: str, quantity: float = 1, unit: str = "serving") -> FoodAnalysis:
    """Rough per-serving estimate used when no AI provider is available."""
    return FoodAnalysis(
        food=food_name,
        quantity=quantity,
        unit=unit,
        calories=round(200 * quantity),
        protein=round(10 * quantity, 1),
        carbs=round(25 * quantity, 1),
        fat=round(7 * quantity, 1),
        confidence="low",
    )


def analyze_food_calories(
    llm: Optional[LLMClient], food_name: str, quantity: float = 1, unit: str = "serving"
) -> FoodAnalysis:
    if llm is None:
        return fallback_food_analysis(food_name, quantity, unit)
    prompt = json.dumps(
        {
            "task": f'Analyze the nutritional content of {quantity} {unit} of "{food_name}".',
            "output_shape": {
                "food": food_name,
                "quantity": quantity,
                "unit": unit,
                "calories": "total calories",
                "protein": "protein in grams",
                "carbs": "carbohydrates in grams",
                "fat": "fat in grams",
                "confidence": "high/medium/low based on how well-known this food is",
            },
        }
    )
    try:
        raw = llm.generate_json(prompt, system_instruction=FOOD_DATABASE_INSTRUCTION, task_type="food_analysis")
    except LLMNotConfiguredError:
        return fallback_food_analysis(food_name, quantity, unit)
    confidence = str(raw.get("confidence") or "medium").strip().lower()
    return FoodAnalysis(
        food=str(raw.get("food") or food_name),
        quantity=quantity,
        unit=unit,
        calories=_as_float(raw.get("calories")),
        protein=_as_float(raw.get("protein")),
        carbs=_as_float(raw.get("carbs")),
        fat=_as_float(raw.get("fat")),
        confidence=confidence if confidence in {"high", "medium", "low"} else "medium",
    )
