import pytest
from datetime import timedelta

from training_portal.models.enrollment import AttendanceRecord, Enrollment
from training_portal.models.user import Role
from training_portal.services.attendance_service import AttendanceService
from training_portal.services.enrollment_service import EnrollmentService
from training_portal.utils.exceptions import InvalidStateError, NotFoundError
from training_portal.utils.helpers import local_today


def test_enroll_seeds_attendance_and_rejects_duplicate(client, db_session, trainer, employee,
                                                       make_training, auth_headers):
    """报名成功后生成当天出勤记录，重复报名返回409"""
    training = make_training(trainer)

    response = client.post(f"/api/trainings/{training.id}/enroll", headers=auth_headers(employee))
    assert response.status_code == 201
    data = response.json()
    assert data["status"] == "Pending"
    assert data["user_id"] == employee.id

    records = db_session.query(AttendanceRecord).filter_by(training_id=training.id, user_id=employee.id).all()
    assert len(records) == 1
    assert records[0].date == local_today()
    assert records[0].status == "Present"

    response = client.post(f"/api/trainings/{training.id}/enroll", headers=auth_headers(employee))
    assert response.status_code == 409
    assert response.json()["message"] == "Already enrolled in this training"
    assert db_session.query(Enrollment).filter_by(training_id=training.id).count() == 1
    assert db_session.query(AttendanceRecord).filter_by(training_id=training.id).count() == 1


def test_enroll_requires_active_training(client, trainer, employee, make_training, auth_headers):
    training = make_training(trainer, status="Upcoming")
    response = client.post(f"/api/trainings/{training.id}/enroll", headers=auth_headers(employee))
    assert response.status_code == 400


def test_enroll_unknown_training(client, employee, auth_headers):
    response = client.post("/api/trainings/999/enroll", headers=auth_headers(employee))
    assert response.status_code == 404


def test_mark_attendance_is_idempotent(db_session, trainer, employee, make_training):
    training = make_training(trainer)
    EnrollmentService(db_session).enroll(training.id, employee.id)
    service = AttendanceService(db_session)
    tomorrow = local_today() + timedelta(days=1)

    first = service.mark_attendance(training.id, employee.id, True, tomorrow)
    second = service.mark_attendance(training.id, employee.id, True, tomorrow)
    assert first.id == second.id
    assert db_session.query(AttendanceRecord).filter_by(training_id=training.id, date=tomorrow).count() == 1

    third = service.mark_attendance(training.id, employee.id, False, tomorrow)
    assert third.id == first.id
    assert third.status == "Absent"


def test_mark_attendance_requires_enrollment(db_session, trainer, employee, make_training):
    training = make_training(trainer)
    with pytest.raises(InvalidStateError):
        AttendanceService(db_session).mark_attendance(training.id, employee.id, True)


def test_mark_attendance_ignores_rejected_enrollment(db_session, trainer, employee, make_training):
    training = make_training(trainer)
    db_session.add(Enrollment(training_id=training.id, user_id=employee.id, status="Rejected"))
    db_session.commit()
    with pytest.raises(InvalidStateError):
        AttendanceService(db_session).mark_attendance(training.id, employee.id, True)


def test_roster_lists_enrolled_users_by_name(client, db_session, trainer, make_user, make_training,
                                             auth_headers):
    """3个已批准的学员中1人出勤：返回3行，1个 Present，2个 Not Marked，按姓名排序"""
    training = make_training(trainer)
    carol = make_user(full_name="Carol")
    alice = make_user(full_name="Alice")
    bob = make_user(full_name="Bob")
    for user in (carol, alice, bob):
        db_session.add(Enrollment(training_id=training.id, user_id=user.id, status="Approved"))
    db_session.commit()

    today = local_today()
    response = client.post(
        f"/api/trainings/{training.id}/attendance",
        json={"user_id": bob.id, "present": True, "date": today.isoformat()},
        headers=auth_headers(trainer),
    )
    assert response.status_code == 200
    assert response.json()["status"] == "Present"

    response = client.get(
        f"/api/trainings/{training.id}/attendance",
        params={"date": today.isoformat()},
        headers=auth_headers(trainer),
    )
    assert response.status_code == 200
    roster = response.json()
    assert [row["name"] for row in roster] == ["Alice", "Bob", "Carol"]
    assert [row["attendance_status"] for row in roster] == ["Not Marked", "Present", "Not Marked"]
    assert all(row["enrollment_status"] == "Approved" for row in roster)


def test_roster_requires_active_training(db_session, trainer, make_training):
    training = make_training(trainer, status="Completed")
    with pytest.raises(NotFoundError):
        AttendanceService(db_session).get_attendance_roster(training.id)


def test_roster_forbidden_for_employee(client, trainer, employee, make_training, auth_headers):
    training = make_training(trainer)
    response = client.get(f"/api/trainings/{training.id}/attendance", headers=auth_headers(employee))
    assert response.status_code == 403


def test_attendance_summary_counts_per_date(client, db_session, trainer, make_user, make_training,
                                            auth_headers):
    training = make_training(trainer)
    service = EnrollmentService(db_session)
    first, second = make_user(), make_user()
    service.enroll(training.id, first.id)
    service.enroll(training.id, second.id)

    yesterday = local_today() - timedelta(days=1)
    attendance = AttendanceService(db_session)
    attendance.mark_attendance(training.id, first.id, True, yesterday)
    attendance.mark_attendance(training.id, second.id, False, yesterday)

    response = client.get(f"/api/trainings/{training.id}/attendance/summary", headers=auth_headers(trainer))
    assert response.status_code == 200
    summary = response.json()
    assert [row["date"] for row in summary] == [local_today().isoformat(), yesterday.isoformat()]
    assert summary[0]["present_count"] == 2
    assert summary[0]["absent_count"] == 0
    assert summary[1]["present_count"] == 1
    assert summary[1]["absent_count"] == 1
    assert all(row["total_enrolled"] == 2 for row in summary)


def test_enrollment_approval(client, trainer, employee, make_training, auth_headers):
    training = make_training(trainer)
    client.post(f"/api/trainings/{training.id}/enroll", headers=auth_headers(employee))

    url = f"/api/trainings/{training.id}/enrollments/{employee.id}"
    response = client.patch(url, json={"status": "Approved"}, headers=auth_headers(trainer))
    assert response.status_code == 200
    assert response.json()["status"] == "Approved"

    response = client.patch(url, json={"status": "Rejected"}, headers=auth_headers(trainer))
    assert response.status_code == 400

    response = client.patch(url, json={"status": "Approved"}, headers=auth_headers(employee))
    assert response.status_code == 403


def test_attendance_summary_counts_only_students_recorded_that_day(client, db_session, trainer, make_user,
                                                                  make_training, auth_headers):
    """total_enrolled 按天统计有考勤记录的有效报名学员"""
    training = make_training(trainer)
    students = [make_user() for _ in range(3)]
    for student in students:
        db_session.add(Enrollment(training_id=training.id, user_id=student.id, status="Approved"))
    yesterday = local_today() - timedelta(days=1)
    db_session.add(AttendanceRecord(training_id=training.id, user_id=students[0].id,
                                    date=yesterday, status="Present"))
    db_session.commit()

    response = client.get(f"/api/trainings/{training.id}/attendance/summary", headers=auth_headers(trainer))
    assert response.status_code == 200
    assert response.json() == [{
        "date": yesterday.isoformat(),
        "total_enrolled": 1,
        "present_count": 1,
        "absent_count": 0,
    }]


def test_attendance_summary_ignores_rejected_enrollments(db_session, trainer, make_user, make_training):
    training = make_training(trainer)
    approved, rejected = make_user(), make_user()
    db_session.add(Enrollment(training_id=training.id, user_id=approved.id, status="Approved"))
    db_session.add(Enrollment(training_id=training.id, user_id=rejected.id, status="Rejected"))
    for student in (approved, rejected):
        db_session.add(AttendanceRecord(training_id=training.id, user_id=student.id,
                                        date=local_today(), status="Absent"))
    db_session.commit()

    summary = AttendanceService(db_session).get_attendance_summary(training.id)
    assert len(summary) == 1
    assert summary[0]["total_enrolled"] == 1
    assert summary[0]["absent_count"] == 1
