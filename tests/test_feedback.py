from training_portal.models.enrollment import Enrollment


def _enroll(db_session, training, user, status="Pending"):
    db_session.add(Enrollment(training_id=training.id, user_id=user.id, status=status))
    db_session.commit()


def test_submit_then_update_feedback(client, db_session, trainer, employee, make_training, auth_headers):
    """同一学员第二次提交反馈时原地更新，统计只计一条"""
    training = make_training(trainer)
    _enroll(db_session, training, employee)
    url = f"/api/trainings/{training.id}/feedback"

    response = client.post(url, json={"rating": 5, "comment": "great"}, headers=auth_headers(employee))
    assert response.status_code == 201
    feedback_id = response.json()["feedback"]["id"]

    response = client.post(url, json={"rating": 3, "comment": "ok"}, headers=auth_headers(employee))
    assert response.status_code == 200
    assert response.json()["feedback"]["id"] == feedback_id

    response = client.get(url, headers=auth_headers(employee))
    assert response.status_code == 200
    data = response.json()
    assert data["stats"]["total_feedback"] == 1
    assert data["stats"]["average_rating"] == 3
    assert data["stats"]["three_stars"] == 1
    assert data["stats"]["five_stars"] == 0
    assert len(data["feedback"]) == 1
    assert data["feedback"][0]["comment"] == "ok"
    assert data["feedback"][0]["user_name"] == "Eve Employee"
    assert data["user_feedback"]["rating"] == 3


def test_feedback_requires_enrollment(client, trainer, employee, make_training, auth_headers):
    training = make_training(trainer)
    response = client.post(f"/api/trainings/{training.id}/feedback", json={"rating": 4},
                           headers=auth_headers(employee))
    assert response.status_code == 403


def test_feedback_rating_out_of_range(client, db_session, trainer, employee, make_training, auth_headers):
    training = make_training(trainer)
    _enroll(db_session, training, employee)
    for rating in (0, 6):
        response = client.post(f"/api/trainings/{training.id}/feedback", json={"rating": rating},
                               headers=auth_headers(employee))
        assert response.status_code == 400


def test_feedback_unknown_training(client, employee, auth_headers):
    response = client.post("/api/trainings/999/feedback", json={"rating": 4}, headers=auth_headers(employee))
    assert response.status_code == 404


def test_feedback_stats_average(client, db_session, trainer, make_user, make_training, auth_headers):
    training = make_training(trainer)
    for rating in (5, 4, 4):
        user = make_user()
        _enroll(db_session, training, user, status="Approved")
        client.post(f"/api/trainings/{training.id}/feedback", json={"rating": rating},
                    headers=auth_headers(user))

    stats = client.get(f"/api/trainings/{training.id}/feedback", headers=auth_headers(trainer)).json()["stats"]
    assert stats["total_feedback"] == 3
    assert stats["average_rating"] == 4.33
    assert stats["four_stars"] == 2


def test_delete_only_own_feedback(client, db_session, trainer, employee, make_user, make_training, auth_headers):
    training = make_training(trainer)
    _enroll(db_session, training, employee)
    feedback_id = client.post(f"/api/trainings/{training.id}/feedback", json={"rating": 2},
                              headers=auth_headers(employee)).json()["feedback"]["id"]

    other = make_user()
    response = client.delete(f"/api/trainings/feedback/{feedback_id}", headers=auth_headers(other))
    assert response.status_code == 404

    response = client.delete(f"/api/trainings/feedback/{feedback_id}", headers=auth_headers(employee))
    assert response.status_code == 200

    response = client.delete(f"/api/trainings/feedback/{feedback_id}", headers=auth_headers(employee))
    assert response.status_code == 404
