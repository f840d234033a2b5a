import pytest
from pydantic import ValidationError

from schemas.quiz import (
    ProcedureCreate,
    QuizAnswerIn,
    QuizOptionCreate,
    QuizOptionUpdate,
    ProcedureUpdate,
    QuizQuestionCreate,
    QuizQuestionUpdate,
    QuizSubmissionRequest,
)


def test_answer_accepts_single_id_or_list():
    assert QuizAnswerIn(question_id=1, selected=4).option_ids == [4]
    assert QuizAnswerIn(question_id=1, selected=[4, 5, 4]).option_ids == [4, 5]


def test_list_tags_are_joined():
    request = QuizSubmissionRequest(
        answers=[{"question_id": 1, "selected": 1}],
        timeline=["asap", " soon "],
        primary_interest="whiter",
    )
    assert request.timeline == "asap, soon"
    assert request.primary_interest == "whiter"


def test_blank_tags_and_email_become_none():
    request = QuizSubmissionRequest(answers=[], email="  ", timeline=[], primary_interest="  ")
    assert request.email is None
    assert request.timeline is None
    assert request.primary_interest is None
    assert request.source == "quiz"


def test_invalid_email_rejected():
    with pytest.raises(ValidationError):
        QuizSubmissionRequest(answers=[], email="nope")


@pytest.mark.parametrize("points", [
    {"whitening": -1},
    {"whitening": 1.5},
    {"whitening": "3"},
    {"whitening": True},
    {"": 2},
    ["whitening"],
])
def test_option_points_rejected(points):
    with pytest.raises(ValidationError):
        QuizOptionCreate(label="Option", points=points)


def test_option_points_defaults():
    assert QuizOptionCreate(label="Option").points == {}
    assert QuizOptionCreate(label="Option", points=None).points == {}
    assert QuizOptionCreate(label="Option", points={" bonding ": 2}).points == {"bonding": 2}
    assert QuizOptionUpdate(label="Option").points is None


def test_question_category_checked():
    QuizQuestionCreate(question="Q?", category="goals")
    with pytest.raises(ValidationError):
        QuizQuestionCreate(question="Q?", category="weather")


def test_procedure_category_checked():
    assert ProcedureCreate(key="x", name="X").category is None
    with pytest.raises(ValidationError):
        ProcedureCreate(key="x", name="X", category="spa")


@pytest.mark.parametrize("schema, payload", [
    (QuizQuestionUpdate, {"category": None}),
    (QuizQuestionUpdate, {"question": None}),
    (QuizQuestionUpdate, {"is_multi_select": None}),
    (QuizQuestionUpdate, {"sort_order": None}),
    (QuizQuestionUpdate, {"is_active": None}),
    (ProcedureUpdate, {"name": None}),
    (ProcedureUpdate, {"sort_order": None}),
    (ProcedureUpdate, {"is_active": None}),
    (QuizOptionUpdate, {"label": None}),
    (QuizOptionUpdate, {"sort_order": None}),
])
def test_updates_reject_null_for_required_columns(schema, payload):
    with pytest.raises(ValidationError):
        schema(**payload)


def test_updates_allow_null_for_optional_columns():
    assert QuizQuestionUpdate(subtitle=None, fun_fact=None).model_dump(exclude_unset=True) == {
        "subtitle": None,
        "fun_fact": None,
    }
    assert ProcedureUpdate(category=None).category is None
    assert QuizOptionUpdate(points=None).points is None


def test_attribution_fields_are_length_limited():
    QuizSubmissionRequest(answers=[], utm_campaign="c" * 255)
    with pytest.raises(ValidationError):
        QuizSubmissionRequest(answers=[], utm_campaign="c" * 256)
    with pytest.raises(ValidationError):
        QuizSubmissionRequest(answers=[], utm_source="s" * 300)


def test_joined_tags_are_length_limited():
    assert len(QuizSubmissionRequest(answers=[], timeline=["a" * 120, "b" * 120]).timeline) == 242
    with pytest.raises(ValidationError):
        QuizSubmissionRequest(answers=[], primary_interest=["a" * 200, "b" * 200])
    with pytest.raises(ValidationError):
        QuizSubmissionRequest(answers=[], timeline="t" * 256)
