"""End-to-end flow of a student taking a coding test."""

from datetime import timedelta
from unittest.mock import patch

import requests

from conftest import coding_test_payload, judge_response
from extensions import db
import models
from services.judge_service import judge0_service


def sum_problem_id(test):
    return test["problems"][0]["id"]


def start(student_client, test):
    return student_client.post(f"/tests/{test['id']}/start-session")


class TestJoin:
    def test_student_joins_and_sees_public_cases(self, student_client, coding_test):
        response = student_client.post(f"/tests/{coding_test['id']}/join")
        assert response.status_code == 200
        data = response.get_json()
        assert data["session"]["status"] == "IN_PROGRESS"
        assert len(data["test"]["problems"][0]["testCases"]) == 1

    def test_join_is_idempotent(self, app, student_client, coding_test):
        student_client.post(f"/tests/{coding_test['id']}/join")
        student_client.post(f"/tests/{coding_test['id']}/join")
        with app.app_context():
            assert db.session.query(models.TestSession).count() == 1

    def test_start_session_reports_creation(self, student_client, coding_test):
        assert start(student_client, coding_test).status_code == 201
        assert start(student_client, coding_test).status_code == 200

    def test_teacher_cannot_join(self, teacher_client, coding_test):
        assert teacher_client.post(f"/tests/{coding_test['id']}/join").status_code == 403

    def test_closed_window(self, teacher_client, student_client, classroom):
        payload = coding_test_payload(start_offset=timedelta(hours=1), end_offset=timedelta(hours=2))
        test = teacher_client.post(f"/classes/{classroom['id']}/tests", json=payload).get_json()["test"]
        assert student_client.post(f"/tests/{test['id']}/join").status_code == 400

    def test_requires_login(self, app, coding_test):
        assert app.test_client().post(f"/tests/{coding_test['id']}/join").status_code == 401

    def test_join_details(self, student_client, coding_test):
        response = student_client.get(f"/tests/{coding_test['id']}/join")
        assert response.get_json()["test"]["title"] == "Midterm"


class TestSessionLifecycle:
    def test_heartbeat_moves_problem_index(self, student_client, coding_test):
        start(student_client, coding_test)
        url = f"/tests/{coding_test['id']}/session/heartbeat"
        response = student_client.patch(url, json={"currentProblemIndex": 1})
        assert response.get_json()["session"]["currentProblemIndex"] == 1
        assert student_client.patch(url, json={"currentProblemIndex": 2}).status_code == 400

    def test_penalties_are_counted(self, student_client, coding_test):
        start(student_client, coding_test)
        url = f"/tests/{coding_test['id']}/session/penalty"
        student_client.post(url, json={"type": "TAB_SWITCH"})
        response = student_client.post(url, json={"type": "FOCUS_LOST", "reason": "blur"})
        assert response.status_code == 201
        assert response.get_json()["penaltyCount"] == 2

        session = student_client.get(f"/tests/{coding_test['id']}/session").get_json()
        assert [p["type"] for p in session["penalties"]] == ["FOCUS_LOST", "TAB_SWITCH"]

    def test_unknown_penalty_type(self, student_client, coding_test):
        start(student_client, coding_test)
        response = student_client.post(
            f"/tests/{coding_test['id']}/session/penalty", json={"type": "SNEEZE"}
        )
        assert response.status_code == 400

    def test_complete_closes_session(self, student_client, coding_test):
        start(student_client, coding_test)
        response = student_client.post(f"/tests/{coding_test['id']}/session/complete")
        assert response.get_json()["session"]["status"] == "SUBMITTED"

        again = student_client.post(f"/tests/{coding_test['id']}/session/complete")
        assert again.status_code == 400

    def test_session_missing(self, student_client, coding_test):
        assert student_client.get(f"/tests/{coding_test['id']}/session").status_code == 404
        assert student_client.get(f"/tests/{coding_test['id']}/status").status_code == 404


class TestRealTimeExecution:
    def test_runs_public_cases_only(self, student_client, coding_test):
        start(student_client, coding_test)
        with patch("services.judge_service.requests.post", return_value=judge_response()) as post:
            response = student_client.post(f"/tests/{coding_test['id']}/run-tests", json={
                "code": "a, b = map(int, input().split()); print(a + b)",
                "language": "python",
                "problemId": sum_problem_id(coding_test),
            })

        assert response.status_code == 200
        data = response.get_json()
        assert post.call_count == 1
        assert post.call_args.args[0] == "http://judge.test/submissions"
        assert data["summary"] == {"passed": 1, "total": 1, "status": "ACCEPTED", "score": 100}
        assert data["results"][0]["input"] == "1 2"

    def test_language_not_allowed(self, student_client, coding_test):
        start(student_client, coding_test)
        response = student_client.post(f"/tests/{coding_test['id']}/run-tests", json={
            "code": "class A {}", "language": "java", "problemId": sum_problem_id(coding_test),
        })
        assert response.status_code == 400

    def test_unknown_problem(self, student_client, coding_test):
        start(student_client, coding_test)
        response = student_client.post(f"/tests/{coding_test['id']}/run-tests", json={
            "code": "print()", "language": "python", "problemId": 999,
        })
        assert response.status_code == 404

    def test_rate_limited(self, student_client, coding_test):
        start(student_client, coding_test)
        body = {"code": "print(3)", "language": "python", "problemId": sum_problem_id(coding_test)}
        with patch("services.judge_service.requests.post", return_value=judge_response()):
            for _ in range(3):
                assert student_client.post(f"/tests/{coding_test['id']}/run-tests", json=body).status_code == 200
            response = student_client.post(f"/tests/{coding_test['id']}/run-tests", json=body)

        assert response.status_code == 429
        assert int(response.headers["Retry-After"]) > 0

    def test_multi_run_over_the_limit_runs_nothing(self, app, student_client, coding_test):
        start(student_client, coding_test)
        single = {"code": "print(3)", "language": "python", "problemId": sum_problem_id(coding_test)}
        executions = [
            {"problemId": p["id"], "code": "print(3)", "language": "python"}
            for p in coding_test["problems"]
        ]
        with patch("services.judge_service.requests.post", return_value=judge_response()) as post:
            for _ in range(2):
                student_client.post(f"/tests/{coding_test['id']}/run-tests", json=single)
            post.reset_mock()

            response = student_client.post(
                f"/tests/{coding_test['id']}/execute-multi-test", json={"executions": executions}
            )
            assert response.status_code == 429
            assert post.call_count == 0

            # the rejected request used no slots, so one more single run fits
            again = student_client.post(f"/tests/{coding_test['id']}/run-tests", json=single)
            assert again.status_code == 200

    def test_judge_down(self, student_client, coding_test):
        start(student_client, coding_test)
        with patch(
            "services.judge_service.requests.post",
            side_effect=requests.exceptions.ConnectionError("refused")
        ):
            response = student_client.post(f"/tests/{coding_test['id']}/run-tests", json={
                "code": "print(3)", "language": "python", "problemId": sum_problem_id(coding_test),
            })
        assert response.status_code == 500

    def test_multi_execution(self, student_client, coding_test):
        start(student_client, coding_test)
        executions = [
            {"problemId": p["id"], "code": "print(3)", "language": "python"}
            for p in coding_test["problems"]
        ]
        with patch("services.judge_service.requests.post", return_value=judge_response()):
            response = student_client.post(
                f"/tests/{coding_test['id']}/execute-multi-test", json={"executions": executions}
            )
        results = response.get_json()["results"]
        assert [r["problemId"] for r in results] == [p["id"] for p in coding_test["problems"]]


class TestSubmissions:
    def test_submit_judges_against_all_cases(self, student_client, coding_test):
        start(student_client, coding_test)
        with patch("services.judge_service.requests.post", side_effect=[
            judge_response(3, "Accepted", time="0.02", memory=2048),
            judge_response(4, "Wrong Answer", time="0.05", memory=1024),
        ]):
            response = student_client.post(f"/tests/{coding_test['id']}/submit", json={
                "problemId": sum_problem_id(coding_test), "code": "print(3)", "language": "python",
            })

        submission = response.get_json()["submission"]
        assert submission["status"] == "WRONG_ANSWER"
        assert submission["score"] == 50
        assert submission["executionTime"] == 0.05
        assert submission["memoryUsed"] == 2048
        assert len(submission["judgeResponse"]["results"]) == 2

    def test_submit_marks_system_error_when_judge_fails(self, app, student_client, coding_test):
        start(student_client, coding_test)
        with patch(
            "services.judge_service.requests.post",
            side_effect=requests.exceptions.ConnectionError("refused")
        ):
            response = student_client.post(f"/tests/{coding_test['id']}/submit", json={
                "problemId": sum_problem_id(coding_test), "code": "print(3)", "language": "python",
            })

        assert response.status_code == 500
        assert response.get_json()["submission"]["status"] == "SYSTEM_ERROR"
        with app.app_context():
            stored = db.session.query(models.TestSubmission).one()
            assert stored.status == "SYSTEM_ERROR"

    def test_submit_with_malformed_judge_body(self, app, student_client, coding_test):
        start(student_client, coding_test)
        null_body = judge_response()
        null_body.json.return_value = None
        with patch("services.judge_service.requests.post", return_value=null_body):
            response = student_client.post(f"/tests/{coding_test['id']}/submit", json={
                "problemId": sum_problem_id(coding_test), "code": "print(3)", "language": "python",
            })

        assert response.status_code == 500
        assert response.get_json()["submission"]["status"] == "SYSTEM_ERROR"
        with app.app_context():
            stored = db.session.query(models.TestSubmission).one()
            assert stored.status == "SYSTEM_ERROR"

    def test_submit_code_queues(self, student_client, coding_test):
        start(student_client, coding_test)
        response = student_client.post(f"/tests/{coding_test['id']}/submit-code", json={
            "problemId": sum_problem_id(coding_test), "code": "print(3)", "language": "cpp",
        })
        assert response.status_code == 202
        assert response.get_json()["submission"]["status"] == "QUEUED"

    def test_multi_submit_validates_before_writing(self, app, student_client, coding_test):
        start(student_client, coding_test)
        response = student_client.post(f"/tests/{coding_test['id']}/submit-multi-test", json={
            "submissions": [
                {"problemId": sum_problem_id(coding_test), "code": "print(3)", "language": "python"},
                {"problemId": 999, "code": "print(3)", "language": "python"},
            ]
        })
        assert response.status_code == 400
        with app.app_context():
            assert db.session.query(models.TestSubmission).count() == 0

    def test_multi_submit_then_batch(self, app, student_client, coding_test):
        start(student_client, coding_test)
        response = student_client.post(f"/tests/{coding_test['id']}/submit-multi-test", json={
            "submissions": [
                {"problemId": p["id"], "code": "print(3)", "language": "python"}
                for p in coding_test["problems"]
            ]
        })
        data = response.get_json()
        assert data["queuedForBatch"] is True
        assert len(data["submissionIds"]) == 2

        session = student_client.get(f"/tests/{coding_test['id']}/session").get_json()["session"]
        assert session["status"] == "SUBMITTED"

        with app.app_context():
            with patch("services.judge_service.requests.post", return_value=judge_response()):
                assert judge0_service.process_batch(test_id=coding_test["id"]) == 2
            statuses = {s.status for s in db.session.query(models.TestSubmission).all()}
            assert statuses == {"ACCEPTED"}

        status = student_client.get(f"/tests/{coding_test['id']}/status").get_json()["session"]
        assert [s["problem"]["title"] for s in status["submissions"]] == ["Echo", "Sum"]

    def test_batch_failure_marks_system_error(self, app, student_client, coding_test):
        start(student_client, coding_test)
        student_client.post(f"/tests/{coding_test['id']}/submit-code", json={
            "problemId": sum_problem_id(coding_test), "code": "print(3)", "language": "python",
        })
        with app.app_context():
            with patch("services.judge_service.requests.post", return_value=judge_response(status_id=3)) as post:
                post.return_value.status_code = 502
                judge0_service.process_batch()
            stored = db.session.query(models.TestSubmission).one()
            assert stored.status == "SYSTEM_ERROR"
            assert stored.score == 0

    def test_batch_keeps_going_after_malformed_judge_body(self, app, student_client, coding_test):
        start(student_client, coding_test)
        for problem in coding_test["problems"]:
            student_client.post(f"/tests/{coding_test['id']}/submit-code", json={
                "problemId": problem["id"], "code": "print(3)", "language": "python",
            })

        null_body = judge_response()
        null_body.json.return_value = None
        with app.app_context():
            # first submission (Sum, two cases) gets a null body, the second is judged
            with patch("services.judge_service.requests.post", side_effect=[null_body, judge_response()]):
                assert judge0_service.process_batch(test_id=coding_test["id"]) == 2
            statuses = [
                s.status for s in db.session.query(models.TestSubmission)
                .order_by(models.TestSubmission.submission_id).all()
            ]
            assert statuses == ["SYSTEM_ERROR", "ACCEPTED"]

    def test_submit_automated_survives_malformed_judge_body(self, teacher_client, student_client, coding_test):
        teacher_client.post(f"/tests/{coding_test['id']}/schedule-automated")
        start(student_client, coding_test)
        null_body = judge_response()
        null_body.json.return_value = None
        with patch("services.judge_service.requests.post", return_value=null_body):
            response = student_client.post(f"/tests/{coding_test['id']}/submit-automated", json={
                "submissions": [
                    {"problemId": sum_problem_id(coding_test), "code": "print(3)", "language": "python"}
                ]
            })

        assert response.status_code == 200
        assert response.get_json()["submissions"][0]["status"] == "SYSTEM_ERROR"
        session = student_client.get(f"/tests/{coding_test['id']}/session").get_json()["session"]
        assert session["status"] == "SUBMITTED"

    def test_submit_after_completion_rejected(self, student_client, coding_test):
        start(student_client, coding_test)
        student_client.post(f"/tests/{coding_test['id']}/session/complete")
        response = student_client.post(f"/tests/{coding_test['id']}/submit-code", json={
            "problemId": sum_problem_id(coding_test), "code": "print(3)", "language": "python",
        })
        assert response.status_code == 400


class TestAutomatedJudge:
    def test_schedule_window(self, teacher_client, coding_test):
        response = teacher_client.post(f"/tests/{coding_test['id']}/schedule-automated")
        assert response.status_code == 201
        instance = response.get_json()["instance"]
        assert instance["status"] == "RUNNING"
        assert instance["endpoint"] == "http://judge-automated.test"

        again = teacher_client.post(f"/tests/{coding_test['id']}/schedule-automated")
        assert again.status_code == 200

    def test_student_cannot_schedule(self, student_client, coding_test):
        assert student_client.post(f"/tests/{coding_test['id']}/schedule-automated").status_code == 403

    def test_execute_without_instance(self, student_client, coding_test):
        start(student_client, coding_test)
        response = student_client.post(f"/tests/{coding_test['id']}/execute-automated", json={
            "code": "print(3)", "language": "python", "problemId": sum_problem_id(coding_test),
        })
        assert response.status_code == 503

    def test_execute_uses_instance_endpoint(self, teacher_client, student_client, coding_test):
        teacher_client.post(f"/tests/{coding_test['id']}/schedule-automated")
        start(student_client, coding_test)
        with patch("services.judge_service.requests.post", return_value=judge_response()) as post:
            response = student_client.post(f"/tests/{coding_test['id']}/execute-automated", json={
                "code": "print(3)", "language": "python", "problemId": sum_problem_id(coding_test),
            })
        assert response.status_code == 200
        assert post.call_args.args[0] == "http://judge-automated.test/submissions"

    def test_submit_automated_judges_immediately(self, teacher_client, student_client, coding_test):
        teacher_client.post(f"/tests/{coding_test['id']}/schedule-automated")
        start(student_client, coding_test)
        with patch("services.judge_service.requests.post", return_value=judge_response()):
            response = student_client.post(f"/tests/{coding_test['id']}/submit-automated", json={
                "submissions": [
                    {"problemId": sum_problem_id(coding_test), "code": "print(3)", "language": "python"}
                ]
            })
        submissions = response.get_json()["submissions"]
        assert submissions[0]["status"] == "ACCEPTED"
        assert submissions[0]["score"] == 100

    def test_judge0_status_probes_running_instance(self, teacher_client, student_client, coding_test):
        teacher_client.post(f"/tests/{coding_test['id']}/schedule-automated")
        about = judge_response()
        about.status_code = 200
        about.json.return_value = {"version": "1.13.1"}
        with patch("services.judge_service.requests.get", return_value=about):
            response = student_client.get(f"/tests/{coding_test['id']}/judge0-status")
        data = response.get_json()
        assert data["instance"]["status"] == "RUNNING"
        assert data["health"]["reachable"] is True

    def test_judge0_status_without_instance(self, student_client, coding_test):
        assert student_client.get(f"/tests/{coding_test['id']}/judge0-status").status_code == 404
