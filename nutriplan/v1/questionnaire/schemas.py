"""
Questionnaire answer schema.

Answers are stored as JSON written by the web client, so fields accept the
client's camelCase keys as well as their Python names.
"""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

Sex = Literal["Male", "Female"]
PrimaryGoal = Literal["Fat loss", "Recomposition", "Muscle gain", "Energy + focus"]
DailySteps = Literal["<5k", "5-8k", "8-12k", "12k+"]
ProteinPreference = Literal[
    "Chicken",
    "Beef",
    "Fish",
    "Eggs",
    "Greek yogurt",
    "Protein shakes",
    "Tofu-Tempeh",
    "Beans-Lentils",
]


class QuestionnaireAnswers(BaseModel):
    """Full questionnaire as completed by the user."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    # Stats + goal
    first_name: str = Field(..., min_length=1, description="First name")
    sex: Sex
    age: float = Field(..., ge=16, le=90)
    height_cm: float = Field(..., ge=120, le=230)
    weight_kg: float = Field(..., ge=35, le=250)
    primary_goal: PrimaryGoal

    # Routine constraints
    wake_time: str = Field(..., min_length=1)
    sleep_time: str = Field(..., min_length=1)
    work_schedule: str = Field(..., min_length=1)
    kitchen_access_daytime: Literal["None", "Microwave", "Full kitchen"]
    meal_prep_willingness: Literal["None", "Light 10-15 mins", "Batch cook 1-2x week"]

    # Training / activity
    training_days_per_week: int = Field(..., ge=0, le=7)
    training_time_of_day: Literal["Morning", "Lunch", "Evening", "Varies"]
    daily_steps: DailySteps

    # Preferences + real life
    diet_style: Literal["Omnivore", "Pescatarian", "Vegetarian", "Vegan", "Other"]
    allergies_intolerances: str | None = None
    foods_love: str = Field(..., min_length=1)
    foods_hate_avoid: str | None = None
    protein_preferences: list[ProteinPreference] = Field(..., min_length=1)
    biggest_obstacle: Literal[
        "Time",
        "Stress",
        "Cravings",
        "Travel",
        "Social eating",
        "Night eating",
        "Inconsistent schedule",
    ]
    takeaways_and_orders: str = Field(
        ..., min_length=1, description="Weekly takeaways ('0' if none)"
    )
    alcohol_per_week: Literal["None", "1-2", "3-6", "7+"]

    @field_validator("first_name")
    @classmethod
    def strip_first_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("First name is required")
        return v
