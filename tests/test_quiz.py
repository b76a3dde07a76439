import pytest
from datetime import timedelta

from training_portal.config.settings import settings
from training_portal.models.quiz import QuizAttempt, QuizResponse
from training_portal.services.quiz_service import QuizService
from training_portal.utils.exceptions import ConflictError, InvalidStateError, NotFoundError, ValidationError
from training_portal.utils.helpers import utc_now


@pytest.fixture
def training(trainer, make_training):
    return make_training(trainer)


@pytest.fixture
def quiz(db_session, training):
    return QuizService(db_session).create_quiz(training.id, "Python Quiz", passing_score=70)


def _add_multiple_choice(service, quiz_id, texts=("4", "5", "6"), correct="4"):
    return service.add_question(
        quiz_id, "2 + 2 = ?", "multiple-choice",
        options=[{"option_text": text, "is_correct": text == correct} for text in texts],
    )


def _correct_option_id(question):
    return next(option["id"] for option in question["options"] if option["is_correct"])


def _wrong_option_id(question):
    return next(option["id"] for option in question["options"] if not option["is_correct"])


def test_multiple_choice_attempt_passes(client, trainer, employee, training, auth_headers):
    """创建测验、添加选择题、作答正确后交卷，得分100并通过"""
    response = client.post(
        "/api/quizzes/create",
        json={"training_id": training.id, "title": "Basics", "passing_score": 70},
        headers=auth_headers(trainer),
    )
    assert response.status_code == 201
    quiz = response.json()
    assert quiz["time_limit"] == 30
    assert quiz["passing_score"] == 70

    response = client.post(
        f"/api/quizzes/{quiz['id']}/questions",
        json={
            "question": "2 + 2 = ?",
            "type": "multiple-choice",
            "options": [
                {"option_text": "4", "is_correct": True},
                {"option_text": "5"},
                {"option_text": "6"},
            ],
        },
        headers=auth_headers(trainer),
    )
    assert response.status_code == 201
    question = response.json()
    correct_id = _correct_option_id(question)

    response = client.post(f"/api/quizzes/{quiz['id']}/start", headers=auth_headers(employee))
    assert response.status_code == 201
    attempt = response.json()
    assert attempt["state"] == "in_progress"
    assert attempt["score"] is None

    response = client.post(
        "/api/quizzes/response",
        json={"attempt_id": attempt["id"], "question_id": question["id"], "answer": str(correct_id)},
        headers=auth_headers(employee),
    )
    assert response.status_code == 200
    assert response.json()["is_correct"] is True

    response = client.post(f"/api/quizzes/attempt/{attempt['id']}/complete", headers=auth_headers(employee))
    assert response.status_code == 200
    result = response.json()
    assert result["score"] == 100
    assert result["passed"] is True

    response = client.get(f"/api/quizzes/{quiz['id']}/results", headers=auth_headers(employee))
    assert response.status_code == 200
    results = response.json()
    assert len(results) == 1
    assert results[0]["state"] == "completed"
    assert results[0]["passed"] is True
    assert results[0]["correct_answers"] == 1


def test_start_returns_existing_attempt(client, db_session, employee, quiz, auth_headers):
    first = client.post(f"/api/quizzes/{quiz['id']}/start", headers=auth_headers(employee))
    second = client.post(f"/api/quizzes/{quiz['id']}/start", headers=auth_headers(employee))
    assert first.status_code == 201
    assert second.status_code == 200
    assert first.json()["id"] == second.json()["id"]
    assert db_session.query(QuizAttempt).filter_by(quiz_id=quiz["id"]).count() == 1


def test_score_three_of_four(db_session, employee, quiz):
    service = QuizService(db_session)
    questions = [_add_multiple_choice(service, quiz["id"]) for _ in range(4)]
    attempt, _ = service.start_attempt(quiz["id"], employee.id)

    for index, question in enumerate(questions):
        answer = _wrong_option_id(question) if index == 0 else _correct_option_id(question)
        service.submit_response(attempt.id, employee.id, question["id"], str(answer))

    result = service.complete_attempt(attempt.id, employee.id)
    assert result["score"] == 75
    assert result["passed"] is True
    assert result["correct_answers"] == 3
    assert result["total_answered"] == 4


def test_complete_without_responses_scores_zero(db_session, employee, quiz):
    service = QuizService(db_session)
    attempt, _ = service.start_attempt(quiz["id"], employee.id)
    result = service.complete_attempt(attempt.id, employee.id)
    assert result["score"] == 0
    assert result["passed"] is False


def test_complete_twice_returns_stored_result(db_session, employee, quiz):
    service = QuizService(db_session)
    question = _add_multiple_choice(service, quiz["id"])
    attempt, _ = service.start_attempt(quiz["id"], employee.id)
    service.submit_response(attempt.id, employee.id, question["id"], str(_correct_option_id(question)))

    first = service.complete_attempt(attempt.id, employee.id)
    second = service.complete_attempt(attempt.id, employee.id)
    assert first["score"] == second["score"] == 100
    assert second["end_time"] == first["end_time"]

    with pytest.raises(ConflictError):
        service.submit_response(attempt.id, employee.id, question["id"], "1")


def test_true_false_graded_against_stored_answer(db_session, employee, quiz):
    service = QuizService(db_session)
    question = service.add_question(quiz["id"], "Python is compiled to bytecode", "true-false",
                                    correct_answer=True)
    assert [option["id"] for option in question["options"]] == ["true", "false"]

    attempt, _ = service.start_attempt(quiz["id"], employee.id)
    wrong = service.submit_response(attempt.id, employee.id, question["id"], "false")
    assert wrong.is_correct is False
    right = service.submit_response(attempt.id, employee.id, question["id"], True)
    assert right.is_correct is True
    assert right.answer == "true"


def test_resubmission_overwrites_response(db_session, employee, quiz):
    service = QuizService(db_session)
    question = _add_multiple_choice(service, quiz["id"])
    attempt, _ = service.start_attempt(quiz["id"], employee.id)

    service.submit_response(attempt.id, employee.id, question["id"], str(_wrong_option_id(question)))
    service.submit_response(attempt.id, employee.id, question["id"], str(_correct_option_id(question)))

    responses = db_session.query(QuizResponse).filter_by(attempt_id=attempt.id).all()
    assert len(responses) == 1
    assert responses[0].is_correct is True
    assert service.complete_attempt(attempt.id, employee.id)["score"] == 100


def test_short_answer_counts_in_total(db_session, employee, quiz):
    service = QuizService(db_session)
    mc = _add_multiple_choice(service, quiz["id"])
    essay = service.add_question(quiz["id"], "Explain decorators", "short-answer")
    attempt, _ = service.start_attempt(quiz["id"], employee.id)

    service.submit_response(attempt.id, employee.id, mc["id"], str(_correct_option_id(mc)))
    pending = service.submit_response(attempt.id, employee.id, essay["id"], "They wrap functions")
    assert pending.is_correct is None

    assert service.complete_attempt(attempt.id, employee.id)["score"] == 50


def test_response_rejected_after_time_limit(db_session, employee, quiz, monkeypatch):
    monkeypatch.setattr(settings, "ENFORCE_QUIZ_TIME_LIMIT", True)
    service = QuizService(db_session)
    question = _add_multiple_choice(service, quiz["id"])
    attempt, _ = service.start_attempt(quiz["id"], employee.id)

    attempt.start_time = utc_now() - timedelta(minutes=quiz["time_limit"] + 5)
    db_session.commit()

    with pytest.raises(InvalidStateError):
        service.submit_response(attempt.id, employee.id, question["id"], "1")

    restarted, created = service.start_attempt(quiz["id"], employee.id)
    assert created is True
    assert restarted.id != attempt.id
    db_session.refresh(attempt)
    assert attempt.state == "abandoned"

    with pytest.raises(ConflictError):
        service.complete_attempt(attempt.id, employee.id)


def test_response_for_other_quiz_rejected(db_session, training, employee, quiz):
    service = QuizService(db_session)
    other_quiz = service.create_quiz(training.id, "Other")
    other_question = _add_multiple_choice(service, other_quiz["id"])
    attempt, _ = service.start_attempt(quiz["id"], employee.id)

    with pytest.raises(ValidationError):
        service.submit_response(attempt.id, employee.id, other_question["id"], "1")
    with pytest.raises(NotFoundError):
        service.submit_response(attempt.id, employee.id, 9999, "1")


def test_attempt_belongs_to_caller(db_session, make_user, employee, quiz):
    service = QuizService(db_session)
    question = _add_multiple_choice(service, quiz["id"])
    attempt, _ = service.start_attempt(quiz["id"], employee.id)
    intruder = make_user()

    with pytest.raises(NotFoundError):
        service.submit_response(attempt.id, intruder.id, question["id"], "1")
    with pytest.raises(NotFoundError):
        service.complete_attempt(attempt.id, intruder.id)


@pytest.mark.parametrize("payload", [
    {"question": "", "type": "multiple-choice",
     "options": [{"option_text": "a", "is_correct": True}, {"option_text": "b"}]},
    {"question": "Q", "type": "essay"},
    {"question": "Q", "type": "multiple-choice", "options": [{"option_text": "a", "is_correct": True}]},
    {"question": "Q", "type": "multiple-choice", "options": [{"option_text": "a"}, {"option_text": "b"}]},
    {"question": "Q", "type": "true-false"},
    {"question": "Q", "type": "short-answer", "points": 0},
])
def test_add_question_validation(client, trainer, quiz, payload, auth_headers):
    response = client.post(f"/api/quizzes/{quiz['id']}/questions", json=payload, headers=auth_headers(trainer))
    assert response.status_code == 400


def test_create_quiz_requires_title_and_training(client, trainer, auth_headers):
    response = client.post("/api/quizzes/create", json={"title": "No training"}, headers=auth_headers(trainer))
    assert response.status_code == 400
    response = client.post("/api/quizzes/create", json={"training_id": 999, "title": "Missing"},
                           headers=auth_headers(trainer))
    assert response.status_code == 404


def test_create_quiz_forbidden_for_employee(client, employee, training, auth_headers):
    response = client.post("/api/quizzes/create", json={"training_id": training.id, "title": "Nope"},
                           headers=auth_headers(employee))
    assert response.status_code == 403


def test_correct_flags_hidden_from_employees(client, db_session, trainer, employee, training, quiz,
                                             auth_headers):
    _add_multiple_choice(QuizService(db_session), quiz["id"])

    staff_view = client.get(f"/api/quizzes/training/{training.id}", headers=auth_headers(trainer)).json()
    assert staff_view[0]["question_count"] == 1
    assert any(option.get("is_correct") for option in staff_view[0]["questions"][0]["options"])

    employee_view = client.get(f"/api/quizzes/training/{training.id}", headers=auth_headers(employee)).json()
    assert all("is_correct" not in option for option in employee_view[0]["questions"][0]["options"])

    taking_view = client.get(f"/api/quizzes/{quiz['id']}", headers=auth_headers(trainer)).json()
    assert all("is_correct" not in option for option in taking_view["questions"][0]["options"])
