"""
Structured results returned by the AI gateway's forced function calls.

Each model is both the contract declared to the gateway (via `tool_parameters`)
and the validator applied to the arguments it sends back.
"""
from __future__ import annotations

from typing import Annotated, ClassVar, List, Literal

from pydantic import BaseModel, ConfigDict, Field, conint, field_validator

Percent = Annotated[float, Field(ge=0, le=100, allow_inf_nan=False)]


class ToolResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    # bumped whenever the declared shape changes, independently of prompt text
    schema_version: ClassVar[str] = "1"


# ============================================================================
# PYQ ANALYSIS
# ============================================================================

class TopicFrequency(BaseModel):
    topic: str
    frequency: conint(ge=0)
    percentage: Percent


class TopicShare(BaseModel):
    name: str
    value: Percent


class Prediction(BaseModel):
    topic: str
    probability: Percent


class Predictions(BaseModel):
    ct1: List[Prediction]
    ct2: List[Prediction]
    endsem: List[Prediction]


class AnalysisResult(ToolResult):
    schema_version: ClassVar[str] = "2"

    topic_frequency: List[TopicFrequency] = Field(alias="topicFrequency")
    topic_distribution: List[TopicShare] = Field(alias="topicDistribution")
    predictions: Predictions
    study_recommendation: str = Field(alias="studyRecommendation")


# ============================================================================
# FLASHCARDS & QUIZZES
# ============================================================================

class FlashcardItem(BaseModel):
    question: str
    answer: str


class FlashcardSet(ToolResult):
    cards: List[FlashcardItem]


class QuizItem(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    question: str
    type: Literal["mcq", "short"]
    options: List[str] = Field(default_factory=list)
    correct_answer: str = Field(alias="correctAnswer")

    @field_validator("options", mode="before")
    @classmethod
    def null_options_are_empty(cls, v):
        return [] if v is None else v


class QuizSet(ToolResult):
    questions: List[QuizItem]


# ============================================================================
# TOOL DECLARATIONS
# ============================================================================

def _inline(node, defs: dict):
    """Resolve `$ref`s and drop generated titles; function-call schemas are sent flat."""
    if isinstance(node, dict):
        if "$ref" in node:
            return _inline(defs[node["$ref"].rsplit("/", 1)[-1]], defs)
        return {
            k: _inline(v, defs)
            for k, v in node.items()
            if k != "$defs" and not (k == "title" and isinstance(v, str))
        }
    if isinstance(node, list):
        return [_inline(v, defs) for v in node]
    return node


def tool_parameters(model: type[BaseModel]) -> dict:
    schema = model.model_json_schema(by_alias=True)
    return _inline(schema, schema.get("$defs", {}))


def function_tool(name: str, description: str, model: type[BaseModel]) -> dict:
    return {
        "type": "function",
        "function": {
            "name": name,
            "description": description,
            "parameters": tool_parameters(model),
        },
    }
