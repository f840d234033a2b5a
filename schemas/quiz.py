from datetime import datetime
from typing import Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

PROCEDURE_CATEGORIES = ("cosmetic", "orthodontic", "restorative", "preventive", "comfort")
QUESTION_CATEGORIES = ("goals", "current", "color", "alignment", "concerns", "health", "timeline", "experience")
TAG_DELIMITER = ", "
TAG_MAX_LENGTH = 255


def check_points(value) -> Optional[Dict[str, int]]:
    """Validate a point-weight mapping: non-empty procedure keys, non-negative integer weights."""
    if value is None:
        return None
    if not isinstance(value, dict):
        raise ValueError("Points must be a mapping of procedure key to weight")
    cleaned = {}
    for key, weight in value.items():
        key = str(key).strip()
        if not key:
            raise ValueError("Procedure keys must be non-empty")
        # bool is an int subclass; true is not a weight
        if isinstance(weight, bool) or not isinstance(weight, int):
            raise ValueError(f"Weight for '{key}' must be an integer")
        if weight < 0:
            raise ValueError(f"Weight for '{key}' must be non-negative")
        cleaned[key] = weight
    return cleaned


def check_procedure_category(value: Optional[str]) -> Optional[str]:
    if value is not None and value not in PROCEDURE_CATEGORIES:
        raise ValueError(f"Category must be one of {', '.join(PROCEDURE_CATEGORIES)}")
    return value


def check_question_category(value: Optional[str]) -> Optional[str]:
    if value is not None and value not in QUESTION_CATEGORIES:
        raise ValueError(f"Category must be one of {', '.join(QUESTION_CATEGORIES)}")
    return value


def reject_null(value):
    """Explicit null on a column that cannot be empty."""
    if value is None:
        raise ValueError("Value may not be null")
    return value


# Procedures
class ProcedureBase(BaseModel):
    key: str = Field(..., min_length=1, max_length=50)
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    timeframe: Optional[str] = None
    icon: Optional[str] = "🦷"
    color_gradient: Optional[str] = "from-teal-400 to-cyan-500"
    category: Optional[str] = None
    sort_order: int = 0
    is_active: bool = True

    @field_validator("category")
    @classmethod
    def validate_category(cls, value: Optional[str]) -> Optional[str]:
        return check_procedure_category(value)


class ProcedureCreate(ProcedureBase):
    pass


class ProcedureUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = None
    timeframe: Optional[str] = None
    icon: Optional[str] = None
    color_gradient: Optional[str] = None
    category: Optional[str] = None
    sort_order: Optional[int] = None
    is_active: Optional[bool] = None

    @field_validator("category")
    @classmethod
    def validate_category(cls, value: Optional[str]) -> Optional[str]:
        return check_procedure_category(value)

    @field_validator("name", "sort_order", "is_active")
    @classmethod
    def not_null(cls, value):
        return reject_null(value)


class ProcedureRead(ProcedureBase):
    id: int

    model_config = ConfigDict(from_attributes=True)


# Options
class QuizOptionBase(BaseModel):
    label: str = Field(..., min_length=1, max_length=255)
    emoji: Optional[str] = "✓"
    points: Dict[str, int] = Field(default_factory=dict)
    sort_order: int = 0

    @field_validator("points", mode="before")
    @classmethod
    def validate_points(cls, value):
        return check_points(value) or {}


class QuizOptionCreate(QuizOptionBase):
    pass


class QuizOptionUpdate(BaseModel):
    label: Optional[str] = Field(default=None, min_length=1, max_length=255)
    emoji: Optional[str] = None
    points: Optional[Dict[str, int]] = None
    sort_order: Optional[int] = None

    @field_validator("points", mode="before")
    @classmethod
    def validate_points(cls, value):
        return check_points(value)

    @field_validator("label", "sort_order")
    @classmethod
    def not_null(cls, value):
        return reject_null(value)


class QuizOptionRead(QuizOptionBase):
    id: int
    question_id: int

    model_config = ConfigDict(from_attributes=True)


# Questions
class QuizQuestionBase(BaseModel):
    question: str = Field(..., min_length=1)
    subtitle: Optional[str] = None
    category: str
    icon: Optional[str] = "⭐"
    fun_fact: Optional[str] = None
    is_multi_select: bool = False
    sort_order: int = 0
    is_active: bool = True

    @field_validator("category")
    @classmethod
    def validate_category(cls, value: str) -> str:
        return check_question_category(value)


class QuizQuestionCreate(QuizQuestionBase):
    options: List[QuizOptionCreate] = Field(default_factory=list)


class QuizQuestionUpdate(BaseModel):
    question: Optional[str] = Field(default=None, min_length=1)
    subtitle: Optional[str] = None
    category: Optional[str] = None
    icon: Optional[str] = None
    fun_fact: Optional[str] = None
    is_multi_select: Optional[bool] = None
    sort_order: Optional[int] = None
    is_active: Optional[bool] = None

    @field_validator("category")
    @classmethod
    def validate_category(cls, value: Optional[str]) -> Optional[str]:
        return check_question_category(value)

    @field_validator("question", "category", "is_multi_select", "sort_order", "is_active")
    @classmethod
    def not_null(cls, value):
        return reject_null(value)


class QuizQuestionRead(QuizQuestionBase):
    id: int
    options: List[QuizOptionRead] = []

    model_config = ConfigDict(from_attributes=True)


# Submission input
class QuizAnswerIn(BaseModel):
    question_id: int
    selected: Union[int, List[int]]

    @property
    def option_ids(self) -> List[int]:
        """Selected option ids as a list, duplicates removed, order kept."""
        raw = self.selected if isinstance(self.selected, list) else [self.selected]
        return list(dict.fromkeys(raw))


class QuizSubmissionRequest(BaseModel):
    first_name: Optional[str] = Field(default=None, max_length=100)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(default=None, max_length=50)
    answers: List[QuizAnswerIn] = Field(default_factory=list)
    timeline: Optional[Union[str, List[str]]] = None
    primary_interest: Optional[Union[str, List[str]]] = None
    source: Optional[str] = Field(default="quiz", max_length=100)
    utm_source: Optional[str] = Field(default=None, max_length=255)
    utm_medium: Optional[str] = Field(default=None, max_length=255)
    utm_campaign: Optional[str] = Field(default=None, max_length=255)

    @field_validator("email", mode="before")
    @classmethod
    def blank_email_is_none(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("timeline", "primary_interest")
    @classmethod
    def join_tags(cls, value):
        if value is None:
            return None
        if isinstance(value, list):
            parts = [v.strip() for v in value if v and v.strip()]
            value = TAG_DELIMITER.join(parts)
        value = value.strip()
        if len(value) > TAG_MAX_LENGTH:
            raise ValueError(f"At most {TAG_MAX_LENGTH} characters once joined")
        return value or None

    class Config:
        json_schema_extra = {
            "example": {
                "first_name": "Jamie",
                "email": "jamie@example.com",
                "phone": "+15555550123",
                "answers": [
                    {"question_id": 1, "selected": 1},
                    {"question_id": 5, "selected": [21, 23]},
                ],
                "timeline": "asap",
                "primary_interest": ["whiter", "straighter"],
                "utm_source": "facebook",
            }
        }


class Attribution(BaseModel):
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None


class RespondentInfo(BaseModel):
    first_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    timeline: Optional[str] = None
    primary_interest: Optional[str] = None
    source: Optional[str] = None
    utm_source: Optional[str] = None
    utm_medium: Optional[str] = None
    utm_campaign: Optional[str] = None


# Engine output
class Recommendation(BaseModel):
    key: str
    score: int


class Classification(BaseModel):
    smile_type: str
    smile_type_name: str


class RecommendedProcedure(Recommendation):
    name: str
    description: Optional[str] = None
    timeframe: Optional[str] = None
    icon: Optional[str] = None
    color_gradient: Optional[str] = None
    category: Optional[str] = None


class QuizSubmissionResult(BaseModel):
    submission_id: int
    smile_type: str
    smile_type_name: str
    recommendations: List[RecommendedProcedure]
    scores: Dict[str, int]


# Submission read side
class QuizAnswerRead(BaseModel):
    id: int
    question_id: int
    selected_options: List[int]
    option_points: Dict[str, Dict[str, int]] = {}
    question_text: Optional[str] = None
    question_category: Optional[str] = None


class QuizSubmissionRead(BaseModel):
    id: int
    first_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    smile_type: Optional[str] = None
    smile_type_name: Optional[str] = None
    recommendations: List[Recommendation] = []
    timeline: Optional[str] = None
    primary_interest: Optional[str] = None
    source: Optional[str] = None
    utm_source: Optional[str] = None
    utm_medium: Optional[str] = None
    utm_campaign: Optional[str] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    completed_at: Optional[datetime] = None
    notification_sent: bool = False

    model_config = ConfigDict(from_attributes=True)


class QuizSubmissionDetail(QuizSubmissionRead):
    answers: List[QuizAnswerRead] = []


class QuizSubmissionList(BaseModel):
    items: List[QuizSubmissionRead]
    total: int
    limit: int
    offset: int


# Analytics
class CountItem(BaseModel):
    value: str
    count: int


class QuizStats(BaseModel):
    total_submissions: int = 0
    submissions_with_email: int = 0
    submissions_today: int = 0
    submissions_this_week: int = 0
    conversion_rate: int = 0
    top_interests: List[CountItem] = []
    timeline_breakdown: List[CountItem] = []
    smile_types: List[CountItem] = []


class SubmissionReplay(BaseModel):
    submission_id: int
    recorded: List[Recommendation]
    snapshot_scores: Dict[str, int]
    current_scores: Dict[str, int]
    diverged: bool
