# learncheck/schemas.py
from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

Difficulty = Literal["easy", "medium", "hard"]
Language = Literal["id", "en"]
QuestionType = Literal["multiple-choice", "true-false", "short-answer"]
OptionId = Literal["A", "B", "C", "D"]

OPTION_IDS: List[str] = ["A", "B", "C", "D"]


class QuestionOption(BaseModel):
    id: OptionId
    text: str


class Question(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: int = Field(..., ge=1, description="1-based position of the question in its set")
    question: str
    options: List[QuestionOption] = Field(..., min_length=4, max_length=4)
    correct_answer: OptionId = Field(..., alias="correctAnswer")
    explanation: str

    @model_validator(mode="after")
    def _correct_answer_is_an_option(self) -> "Question":
        if self.correct_answer not in {opt.id for opt in self.options}:
            raise ValueError(f"correctAnswer {self.correct_answer!r} is not one of the option ids")
        return self


class GenerationRequest(BaseModel):
    """Body of POST /api/llm/generate-questions."""
    model_config = ConfigDict(populate_by_name=True)

    content: str = Field(..., min_length=100, max_length=50000)
    difficulty: Difficulty = "medium"
    question_count: int = Field(3, ge=1, le=10, alias="questionCount")
    language: Language = "id"
    tutorial_title: Optional[str] = Field(None, alias="tutorialTitle")
    question_type: QuestionType = Field("multiple-choice", alias="questionType")
    # Part of the cache key, so a retry never gets the previous attempt's set
    attempt_number: int = Field(0, ge=0, alias="attemptNumber")
    previous_score: Optional[int] = Field(None, ge=0, le=100, alias="previousScore")
    user_id: Optional[str] = Field(None, alias="userId")


class TutorialGenerationRequest(BaseModel):
    """Body of POST /api/tutorials/{id}/questions; the content comes from the provider."""
    model_config = ConfigDict(populate_by_name=True)

    difficulty: Difficulty = "medium"
    question_count: int = Field(3, ge=1, le=10, alias="questionCount")
    language: Language = "id"
    question_type: QuestionType = Field("multiple-choice", alias="questionType")
    attempt_number: int = Field(0, ge=0, alias="attemptNumber")
    previous_score: Optional[int] = Field(None, ge=0, le=100, alias="previousScore")
    user_id: Optional[str] = Field(None, alias="userId")


class QuestionSet(BaseModel):
    questions: List[Question]


class GenerationMetadata(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    requested_difficulty: Difficulty = Field(..., alias="requestedDifficulty")
    adjusted_difficulty: Difficulty = Field(..., alias="adjustedDifficulty")
    previous_score: Optional[int] = Field(None, alias="previousScore")
    language: Language
    question_type: QuestionType = Field(..., alias="questionType")
    content_length: int = Field(..., alias="contentLength")
    question_count: int = Field(..., alias="questionCount")
    tutorial_title: Optional[str] = Field(None, alias="tutorialTitle")


class GenerationResponse(BaseModel):
    """Transport shape returned to the quiz widget."""
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    data: QuestionSet
    cached: bool = False
    fallback: bool = False
    difficulty: Difficulty
    attempt_number: int = Field(..., alias="attemptNumber")
    generated_at: datetime = Field(..., alias="generatedAt")
    message: Optional[str] = None
    metadata: Optional[GenerationMetadata] = None


class Tutorial(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str
    title: str = ""
    content: str = ""

    @field_validator("id", mode="before")
    @classmethod
    def _id_as_str(cls, v: Any) -> Any:
        return str(v) if isinstance(v, int) else v

    @field_validator("title", "content", mode="before")
    @classmethod
    def _none_as_empty(cls, v: Any) -> Any:
        return "" if v is None else v


class UserPreferences(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    theme: Optional[Literal["light", "dark"]] = None
    font_size: Optional[str] = Field(None, alias="fontSize")
    layout_width: Optional[str] = Field(None, alias="layoutWidth")
    font_family: Optional[str] = Field(None, alias="fontFamily")
    notifications: Optional[bool] = None
    language: Optional[Language] = None
    auto_save: Optional[bool] = Field(None, alias="autoSave")
    show_hints: Optional[bool] = Field(None, alias="showHints")


class SubmissionIn(BaseModel):
    """A finished attempt sent by the widget for grading and recording."""
    model_config = ConfigDict(populate_by_name=True)

    user_id: str = Field(..., min_length=1, alias="userId")
    tutorial_id: str = Field(..., min_length=1, alias="tutorialId")
    attempt_number: int = Field(0, ge=0, alias="attemptNumber")
    difficulty: Difficulty = "medium"
    questions: List[Question] = Field(..., min_length=1)
    # question index (as sent by the widget, "0", "1", ...) -> chosen option id
    answers: Dict[str, OptionId] = Field(default_factory=dict)


class AttemptRecord(BaseModel):
    """One entry of a learner's per-tutorial history. Never mutated once created."""
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    attempt_number: int = Field(..., ge=0, alias="attemptNumber")
    score: int = Field(..., ge=0)
    total: int = Field(..., ge=0)
    difficulty: Difficulty
    timestamp: str
    questions: List[Question]
    answers: Dict[str, OptionId]


class SubmissionOut(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id: str = Field(..., alias="userId")
    tutorial_id: str = Field(..., alias="tutorialId")
    record: AttemptRecord
    percentage: int
    next_difficulty: Difficulty = Field(..., alias="nextDifficulty")
    history_length: int = Field(..., alias="historyLength")


class ErrorOut(BaseModel):
    success: bool = False
    error: str
    details: Optional[List[Any]] = None
