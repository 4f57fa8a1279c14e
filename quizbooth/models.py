"""Data models for question generation."""

from typing import Any, List, Optional

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    StrictInt,
    ValidationError,
    field_validator,
)

from .exceptions import InvalidQuestionError

OPTIONS_PER_QUESTION = 4


class GeneratedQuestion(BaseModel):
    """A multiple-choice question produced by an LLM provider.

    Field names follow the camelCase wire format used in prompts and in the
    stored documents; ``question`` is accepted as a legacy alias for
    ``questionText``.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    question_text: str = Field(
        ...,
        validation_alias=AliasChoices("questionText", "question", "question_text"),
        serialization_alias="questionText",
    )
    options: List[str]
    correct_answer: StrictInt = Field(
        ...,
        validation_alias=AliasChoices("correctAnswer", "correct_answer"),
        serialization_alias="correctAnswer",
    )
    explanation: str = ""

    @field_validator("question_text")
    @classmethod
    def validate_question_text(cls, v: str) -> str:
        """Question text must not be empty or whitespace-only."""
        if not v or not v.strip():
            raise ValueError("question text is empty")
        return v

    @field_validator("options")
    @classmethod
    def validate_options(cls, v: List[str]) -> List[str]:
        """Exactly four answer options."""
        if len(v) != OPTIONS_PER_QUESTION:
            raise ValueError(
                f"expected {OPTIONS_PER_QUESTION} options, got {len(v)}"
            )
        return v

    @field_validator("correct_answer")
    @classmethod
    def validate_correct_answer(cls, v: int) -> int:
        """Correct answer must index into the options."""
        if not 0 <= v < OPTIONS_PER_QUESTION:
            raise ValueError(f"correct answer index {v} out of range 0-3")
        return v

    @field_validator("explanation", mode="before")
    @classmethod
    def default_explanation(cls, v: Any) -> Any:
        return "" if v is None else v

    def to_dict(self) -> dict:
        """Serialize using the camelCase wire names."""
        return self.model_dump(by_alias=True)


class GameContext(BaseModel):
    """Game metadata used to build generation prompts."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    company_name: str = Field("", alias="companyName")
    industry: str = ""
    product_description: Optional[str] = Field(None, alias="productDescription")
    difficulty: str = "medium"
    categories: List[str] = Field(default_factory=list)
    custom_category_description: Optional[str] = Field(
        None, alias="customCategoryDescription"
    )
    question_count: int = Field(5, alias="questionCount")
    game_title: Optional[str] = Field(None, alias="gameTitle")
    user_id: Optional[str] = Field(None, alias="userId")


class StoredQuestion(BaseModel):
    """A question as written to the ``questions`` collection."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    game_id: str = Field(..., alias="gameId")
    question_text: str = Field(..., alias="questionText")
    options: List[str]
    correct_answer: int = Field(..., alias="correctAnswer")
    explanation: str = ""
    order: int

    def to_dict(self) -> dict:
        return self.model_dump(by_alias=True)


def validate_question_batch(items: List[Any]) -> List[GeneratedQuestion]:
    """Validate every raw item of a provider batch.

    A single malformed item rejects the whole batch.

    Args:
        items: Raw question items returned by a provider

    Returns:
        Validated questions, in the original order

    Raises:
        InvalidQuestionError: If any item violates the question invariants
    """
    questions: List[GeneratedQuestion] = []
    for index, item in enumerate(items):
        try:
            questions.append(GeneratedQuestion.model_validate(item))
        except ValidationError as e:
            errors = "; ".join(err["msg"] for err in e.errors())
            raise InvalidQuestionError(
                f"Question {index + 1} is invalid: {errors}"
            ) from e
    return questions
