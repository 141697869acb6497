"""Public survey flow tests: answer tagging, sessions and submission."""

import re
import uuid

import pytest
from fastapi.testclient import TestClient

from pulse.core.config import settings
from pulse.core.database import get_db
from pulse.main import app
from pulse.models.survey_question import SurveyQuestion
from pulse.models.survey_response import SurveyResponse
from pulse.schemas.survey import QuestionAnswer
from pulse.services.survey_service import build_session_id, tag_answer
from tests.conftest import DEFAULT_TENANT_ID, DEFAULT_TENANT_SLUG

BASE = f"/v1/tenants/{DEFAULT_TENANT_SLUG}"


@pytest.fixture
def db_session():
    gen = get_db()
    db = next(gen)
    try:
        yield db
    finally:
        for _ in gen:
            pass


@pytest.fixture
def client():
    """Create test client."""
    return TestClient(app)


def _question(db_session, text, order_index, question_type="open_text", is_active=True):
    question = SurveyQuestion(
        tenant_id=DEFAULT_TENANT_ID,
        question=text,
        type=question_type,
        options=[],
        order_index=order_index,
        is_active=is_active,
    )
    db_session.add(question)
    db_session.commit()
    db_session.refresh(question)
    return question


@pytest.fixture
def questions(db_session):
    return [
        _question(db_session, "How was your visit?", 2, "sentiment"),
        _question(db_session, "Anything else?", 1),
        _question(db_session, "Old question", 3, is_active=False),
    ]


def _answer(question_id, **value):
    return QuestionAnswer(question_id=question_id, **value)


class TestTagAnswer:
    def test_text(self):
        assert tag_answer(_answer(uuid.uuid4(), answer_text="Lovely")) == {"text": "Lovely"}

    def test_json_array_text(self):
        answer = _answer(uuid.uuid4(), answer_text='["Tea", "Coffee"]')
        assert tag_answer(answer) == {"array": ["Tea", "Coffee"]}

    def test_json_non_array_stays_text(self):
        assert tag_answer(_answer(uuid.uuid4(), answer_text="42")) == {"text": "42"}

    def test_integral_number(self):
        tagged = tag_answer(_answer(uuid.uuid4(), answer_number=5))
        assert tagged == {"number": 5}
        assert isinstance(tagged["number"], int)

    def test_fractional_number(self):
        assert tag_answer(_answer(uuid.uuid4(), answer_number=2.5)) == {"number": 2.5}

    def test_boolean(self):
        assert tag_answer(_answer(uuid.uuid4(), answer_boolean=False)) == {"boolean": False}

    def test_empty(self):
        assert tag_answer(_answer(uuid.uuid4())) is None


class TestSessionId:
    def test_coupon_and_email(self):
        coupon_id = uuid.uuid4()
        assert build_session_id(coupon_id, "jane@acme.io") == f"{coupon_id}-jane@acme.io"

    def test_anonymous(self):
        session_id = build_session_id(None, None)
        assert re.match(r"^session-\d+-[a-z0-9]{7}$", session_id)
        assert build_session_id(None, None) != session_id


class TestSurveyAPI:
    def test_get_survey(self, client, questions):
        coupon_id = uuid.uuid4()
        response = client.get(f"{BASE}/survey", params={"coupon_id": str(coupon_id)})
        assert response.status_code == 200
        data = response.json()
        assert data["tenant_id"] == str(DEFAULT_TENANT_ID)
        assert data["coupon_id"] == str(coupon_id)
        assert [q["question"] for q in data["questions"]] == [
            "Anything else?",
            "How was your visit?",
        ]

    def test_get_survey_unknown_tenant(self, client):
        response = client.get("/v1/tenants/nope/survey")
        assert response.status_code == 404
        assert response.json()["detail"] == "Tenant not found: nope"

    def test_submit(self, client, db_session, questions):
        coupon_id = uuid.uuid4()
        response = client.post(
            f"{BASE}/survey/responses",
            json={
                "coupon_id": str(coupon_id),
                "email": "jane@acme.io",
                "answers": [
                    {"question_id": str(questions[0].id), "answer_number": 4},
                    {"question_id": str(questions[1].id), "answer_text": "Great muffins"},
                ],
            },
        )
        assert response.status_code == 201
        assert response.json() == {"success": True, "error": None}

        rows = db_session.query(SurveyResponse).all()
        assert len(rows) == 2
        assert {row.session_id for row in rows} == {f"{coupon_id}-jane@acme.io"}
        assert {row.tenant_id for row in rows} == {DEFAULT_TENANT_ID}
        answers = {row.question_id: row.answer for row in rows}
        assert answers[questions[0].id] == {"number": 4}
        assert answers[questions[1].id] == {"text": "Great muffins"}

    def test_submit_requires_answers(self, client):
        response = client.post(f"{BASE}/survey/responses", json={"answers": []})
        assert response.status_code == 422

    def test_submit_unknown_question(self, client, db_session, questions):
        response = client.post(
            f"{BASE}/survey/responses",
            json={
                "answers": [
                    {"question_id": str(questions[0].id), "answer_number": 4},
                    {"question_id": str(uuid.uuid4()), "answer_text": "?"},
                ]
            },
        )
        assert response.status_code == 404
        assert response.json() == {"success": False, "error": "Question not found"}
        assert db_session.query(SurveyResponse).count() == 0

    def test_submit_rate_limited(self, client, questions):
        payload = {
            "email": "jane@acme.io",
            "answers": [{"question_id": str(questions[1].id), "answer_text": "Hi"}],
        }
        for _ in range(settings.RATE_LIMIT_SURVEY_SUBMIT_MAX):
            assert client.post(f"{BASE}/survey/responses", json=payload).status_code == 201
        response = client.post(f"{BASE}/survey/responses", json=payload)
        assert response.status_code == 429
        assert "Retry-After" in response.headers
        assert response.json()["error"].startswith("Too many survey submission requests")
