"""Student test-taking flow: sessions, real-time runs, submissions, judge instances."""

import logging
from datetime import timedelta

from flask import Blueprint, current_app, jsonify
from flask_login import current_user, login_required

from extensions import db
from models import ClassStudent, CodingTest, JudgeInstance, TestPenalty, TestSession, TestSubmission
from models.judge_instance import INSTANCE_RUNNING
from models.coding_session import (
    SESSION_IN_PROGRESS,
    SESSION_SUBMITTED,
    STATUS_PROCESSING,
    STATUS_QUEUED,
    STATUS_SYSTEM_ERROR,
)
from routes.class_routes import owned_class
from schemas import (
    FinalSubmission,
    HeartbeatUpdate,
    MultiTestExecution,
    PenaltyCreate,
    ProblemSolution,
    RealTimeExecution,
)
from services.judge_service import JudgeError, default_client, judge0_service, mark_system_error
from utils.decorators import role_required
from utils.time_utils import utcnow
from utils.validation import parse_body

logger = logging.getLogger(__name__)

test_session_bp = Blueprint("test_sessions", __name__, url_prefix="/tests")


@test_session_bp.before_request
@login_required
def require_login():
    return None


# =========================================================
# HELPERS
# =========================================================

def enrolled_test(test_id, user_id):
    return (
        CodingTest.query
        .join(ClassStudent, ClassStudent.class_id == CodingTest.class_id)
        .filter(CodingTest.test_id == test_id, ClassStudent.user_id == user_id)
        .first()
    )


def find_session(test_id):
    return TestSession.query.filter_by(test_id=test_id, user_id=current_user.user_id).first()


def active_session(test_id):
    """Returns (session, error_response); exactly one of them is None."""
    session = find_session(test_id)
    if session is None:
        return None, (jsonify({"error": "Test session not found"}), 404)
    if session.status != SESSION_IN_PROGRESS:
        return None, (jsonify({"error": "Test session is not active"}), 400)
    return session, None


def find_problem(test, problem_id):
    return next((p for p in test.problems if p.problem_id == problem_id), None)


def public_cases(problem):
    return [
        {"id": tc.test_case_id, "input": tc.input, "expectedOutput": tc.expected_output}
        for tc in problem.public_cases
    ]


def check_solution(test, solution):
    """Error message for a solution the test does not accept, else None."""
    if find_problem(test, solution.problem_id) is None:
        return f"Invalid problem ID: {solution.problem_id}"
    if solution.language not in test.allowed_languages:
        return f"Language {solution.language} not allowed"
    return None


def open_session(test_id):
    """Find or create the current student's session.

    Returns (test, session, created, error_response).
    """
    if not current_user.is_student:
        return None, None, False, (jsonify({"error": "Only students can join test sessions"}), 403)

    test = enrolled_test(test_id, current_user.user_id)
    if test is None:
        return None, None, False, (jsonify({"error": "Test not found or access denied"}), 404)

    if not test.is_open(utcnow()):
        return test, None, False, (jsonify({"error": "Test is not currently active"}), 400)

    session = find_session(test_id)
    if session is not None:
        return test, session, False, None

    now = utcnow()
    session = TestSession(
        test_id=test_id,
        user_id=current_user.user_id,
        status=SESSION_IN_PROGRESS,
        started_at=now,
        last_activity=now
    )
    db.session.add(session)
    db.session.commit()
    logger.info("Test session %s started for user %s", session.session_id, current_user.username)
    return test, session, True, None


def touch(session):
    session.last_activity = utcnow()


def queue_solutions(session, solutions):
    submissions = [
        TestSubmission(
            session_id=session.session_id,
            problem_id=s.problem_id,
            code=s.code,
            language=s.language,
            status=STATUS_QUEUED
        )
        for s in solutions
    ]
    db.session.add_all(submissions)
    db.session.commit()
    return submissions


def running_instance(test_id):
    """Returns (instance, error_response)."""
    instance = JudgeInstance.query.filter_by(test_id=test_id).first()
    if instance is None:
        return None, (jsonify({"error": "No judge instance scheduled for this test"}), 503)
    if instance.status_at(utcnow()) != INSTANCE_RUNNING:
        return None, (jsonify({"error": "Judge instance is not running"}), 503)
    return instance, None


# =========================================================
# JOIN / SESSION LIFECYCLE
# =========================================================

@test_session_bp.route("/<int:test_id>/join", methods=["POST"])
def join_test_session(test_id):
    try:
        test, session, _, error = open_session(test_id)
        if error:
            return error

        return jsonify({
            "session": {
                "id": session.session_id,
                "status": session.status,
                "currentProblemIndex": session.current_problem_index,
                "penaltyCount": session.penalty_count,
            },
            "test": test.to_dict(),
            "submissions": [s.to_dict() for s in session.submissions],
        })
    except Exception as e:
        db.session.rollback()
        logger.error("Error joining test session: %s", e)
        return jsonify({"error": "Failed to join test session"}), 500


@test_session_bp.route("/<int:test_id>/join", methods=["GET"])
def get_join_details(test_id):
    test = db.session.get(CodingTest, test_id)
    if test is None:
        return jsonify({"error": "Test not found"}), 404

    allowed = (
        test.class_.teacher_id == current_user.user_id
        or test.class_.has_student(current_user.user_id)
    )
    if not allowed:
        return jsonify({"error": "Test not found or access denied"}), 404

    return jsonify({"test": test.to_dict()})


@test_session_bp.route("/<int:test_id>/start-session", methods=["POST"])
def start_test_session(test_id):
    try:
        _, session, created, error = open_session(test_id)
        if error:
            return error

        return jsonify({
            "message": "Test session started" if created else "Test session resumed",
            "session": session.to_dict(),
        }), 201 if created else 200
    except Exception as e:
        db.session.rollback()
        logger.error("Error starting test session: %s", e)
        return jsonify({"error": "Failed to start test session"}), 500


@test_session_bp.route("/<int:test_id>/session", methods=["GET"])
def get_test_session(test_id):
    session = find_session(test_id)
    if session is None:
        return jsonify({"error": "Test session not found"}), 404

    return jsonify({
        "session": session.to_dict(),
        "submissions": [s.to_dict() for s in session.submissions],
        "penalties": [p.to_dict() for p in session.penalties],
    })


@test_session_bp.route("/<int:test_id>/session/heartbeat", methods=["PATCH"])
def update_heartbeat(test_id):
    data = parse_body(HeartbeatUpdate)

    session, error = active_session(test_id)
    if error:
        return error

    if data.current_problem_index is not None:
        if data.current_problem_index >= len(session.test.problems):
            return jsonify({"error": "Problem index out of range"}), 400
        session.current_problem_index = data.current_problem_index

    touch(session)
    db.session.commit()
    return jsonify({"session": session.to_dict()})


@test_session_bp.route("/<int:test_id>/session/penalty", methods=["POST"])
def record_penalty(test_id):
    data = parse_body(PenaltyCreate)

    session, error = active_session(test_id)
    if error:
        return error

    try:
        penalty = TestPenalty(
            session_id=session.session_id,
            penalty_type=data.type,
            reason=data.reason,
            timestamp=utcnow()
        )
        db.session.add(penalty)
        session.penalty_count = (session.penalty_count or 0) + 1
        touch(session)
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        logger.error("Error recording penalty: %s", e)
        return jsonify({"error": "Failed to record penalty"}), 500

    logger.warning(
        "Penalty %s recorded for session %s (total %s)",
        data.type, session.session_id, session.penalty_count
    )
    return jsonify({"penalty": penalty.to_dict(), "penaltyCount": session.penalty_count}), 201


@test_session_bp.route("/<int:test_id>/session/complete", methods=["POST"])
def complete_test_session(test_id):
    session, error = active_session(test_id)
    if error:
        return error

    now = utcnow()
    session.status = SESSION_SUBMITTED
    session.submitted_at = now
    session.last_activity = now
    db.session.commit()

    return jsonify({"message": "Test session completed", "session": session.to_dict()})


@test_session_bp.route("/<int:test_id>/status", methods=["GET"])
def get_test_session_status(test_id):
    session = find_session(test_id)
    if session is None:
        return jsonify({"error": "Test session not found"}), 404

    submissions = []
    for sub in session.submissions:
        entry = sub.to_dict()
        entry["problem"] = {
            "id": sub.problem.problem_id,
            "title": sub.problem.title,
            "difficulty": sub.problem.difficulty,
        }
        submissions.append(entry)

    return jsonify({
        "session": {
            "id": session.session_id,
            "status": session.status,
            "startedAt": session.started_at.isoformat() if session.started_at else None,
            "submittedAt": session.submitted_at.isoformat() if session.submitted_at else None,
            "submissions": submissions,
        }
    })


# =========================================================
# REAL-TIME EXECUTION (public test cases only)
# =========================================================

def _execute(test_id, solutions, client=None):
    """Run each solution against its problem's public cases.

    Returns (results, error_response).
    """
    session, error = active_session(test_id)
    if error:
        return None, error

    test = session.test
    for solution in solutions:
        problem = find_problem(test, solution.problem_id)
        if problem is None:
            return None, (jsonify({"error": "Problem not found"}), 404)
        if solution.language not in test.allowed_languages:
            return None, (jsonify({"error": "Language not allowed for this test"}), 400)

    # One limiter charge for the whole request, before any judge call
    judge0_service.reserve_runs(current_user.user_id, len(solutions))

    results = []
    try:
        for solution in solutions:
            problem = find_problem(test, solution.problem_id)
            result = judge0_service.execute_real_time(
                current_user.user_id,
                solution.code,
                solution.language,
                public_cases(problem),
                problem.time_limit,
                problem.memory_limit,
                client=client,
                reserved=True
            )
            result["problemId"] = problem.problem_id
            results.append(result)
    except JudgeError as e:
        logger.error("Error executing real-time code: %s", e)
        return None, (jsonify({"error": "Code execution failed"}), 500)

    touch(session)
    db.session.commit()
    return results, None


@test_session_bp.route("/<int:test_id>/run-tests", methods=["POST"])
def run_test_cases(test_id):
    data = parse_body(RealTimeExecution)

    results, error = _execute(test_id, [data])
    if error:
        return error
    return jsonify(results[0])


@test_session_bp.route("/<int:test_id>/execute-multi-test", methods=["POST"])
def execute_real_time_multi_test(test_id):
    data = parse_body(MultiTestExecution)

    results, error = _execute(test_id, data.executions)
    if error:
        return error
    return jsonify({"results": results})


# =========================================================
# SUBMISSIONS
# =========================================================

@test_session_bp.route("/<int:test_id>/submit-code", methods=["POST"])
def submit_code(test_id):
    data = parse_body(ProblemSolution)

    session, error = active_session(test_id)
    if error:
        return error

    problem_error = check_solution(session.test, data)
    if problem_error:
        return jsonify({"error": problem_error}), 400

    try:
        submission = queue_solutions(session, [data])[0]
        judge0_service.queue_for_batch(test_id, submission.submission_id)
        touch(session)
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        logger.error("Error submitting code: %s", e)
        return jsonify({"error": "Failed to submit code"}), 500

    return jsonify({
        "message": "Code submitted",
        "submission": submission.to_dict(),
    }), 202


@test_session_bp.route("/<int:test_id>/submit", methods=["POST"])
def submit_single_problem(test_id):
    data = parse_body(ProblemSolution)

    session, error = active_session(test_id)
    if error:
        return error

    problem = find_problem(session.test, data.problem_id)
    if problem is None:
        return jsonify({"error": "Problem not found"}), 404
    if data.language not in session.test.allowed_languages:
        return jsonify({"error": "Language not allowed for this test"}), 400

    submission = TestSubmission(
        session_id=session.session_id,
        problem_id=problem.problem_id,
        code=data.code,
        language=data.language,
        status=STATUS_PROCESSING
    )
    db.session.add(submission)
    touch(session)
    db.session.commit()

    try:
        judge0_service.process_submission(submission.submission_id)
    except Exception as e:
        db.session.rollback()
        logger.error("Execution failed for submission %s: %s", submission.submission_id, e)
        mark_system_error(submission.submission_id)
        return jsonify({
            "error": "Code execution failed",
            "submission": {"id": submission.submission_id, "status": STATUS_SYSTEM_ERROR, "score": 0},
        }), 500

    updated = db.session.get(TestSubmission, submission.submission_id)
    return jsonify({
        "message": "Submission processed successfully",
        "submission": updated.to_dict(),
    })


@test_session_bp.route("/<int:test_id>/submit-multi-test", methods=["POST"])
def submit_final_solutions_multi_test(test_id):
    data = parse_body(FinalSubmission)

    session, error = active_session(test_id)
    if error:
        return error

    # Validate everything before writing anything
    for solution in data.submissions:
        problem_error = check_solution(session.test, solution)
        if problem_error:
            return jsonify({"error": problem_error}), 400

    try:
        submissions = queue_solutions(session, data.submissions)
        for submission in submissions:
            judge0_service.queue_for_batch(test_id, submission.submission_id)

        now = utcnow()
        session.status = SESSION_SUBMITTED
        session.submitted_at = now
        session.last_activity = now
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        logger.error("Error submitting final solutions: %s", e)
        return jsonify({"error": "Submission failed"}), 500

    return jsonify({
        "message": "Solutions submitted successfully",
        "submissionIds": [s.submission_id for s in submissions],
        "queuedForBatch": True,
    })


# =========================================================
# AUTOMATED JUDGE INSTANCES
# =========================================================

@test_session_bp.route("/<int:test_id>/schedule-automated", methods=["POST"])
@role_required("teacher")
def schedule_automated_test(test_id):
    test = db.session.get(CodingTest, test_id)
    if test is None or owned_class(test.class_id) is None:
        return jsonify({"error": "Test not found"}), 404

    config = current_app.config
    start = test.start_time - timedelta(minutes=config["JUDGE_WARMUP_MINUTES"])
    stop = test.end_time + timedelta(minutes=config["JUDGE_COOLDOWN_MINUTES"])

    instance = JudgeInstance.query.filter_by(test_id=test_id).first()
    created = instance is None
    if created:
        instance = JudgeInstance(test_id=test_id)
        db.session.add(instance)

    instance.endpoint = config["JUDGE0_AUTOMATED_URL"]
    instance.scheduled_start = start
    instance.scheduled_stop = stop
    instance.status = instance.status_at(utcnow())
    db.session.commit()

    logger.info(
        "Judge instance for test %s scheduled %s - %s at %s",
        test_id, start.isoformat(), stop.isoformat(), instance.endpoint
    )
    return jsonify({"instance": instance.to_dict()}), 201 if created else 200


@test_session_bp.route("/<int:test_id>/execute-automated", methods=["POST"])
def execute_real_time_automated(test_id):
    data = parse_body(RealTimeExecution)

    instance, error = running_instance(test_id)
    if error:
        return error

    results, error = _execute(test_id, [data], client=default_client(instance.endpoint))
    if error:
        return error
    return jsonify(results[0])


@test_session_bp.route("/<int:test_id>/submit-automated", methods=["POST"])
def submit_final_solutions_automated(test_id):
    data = parse_body(FinalSubmission)

    instance, error = running_instance(test_id)
    if error:
        return error

    session, error = active_session(test_id)
    if error:
        return error

    for solution in data.submissions:
        problem_error = check_solution(session.test, solution)
        if problem_error:
            return jsonify({"error": problem_error}), 400

    submissions = queue_solutions(session, data.submissions)
    client = default_client(instance.endpoint)

    results = []
    for submission in submissions:
        try:
            judged = judge0_service.process_submission(submission.submission_id, client=client)
        except Exception as e:
            db.session.rollback()
            logger.error("Automated judging failed for submission %s: %s", submission.submission_id, e)
            judged = mark_system_error(submission.submission_id)
        results.append(judged.to_dict())

    now = utcnow()
    session.status = SESSION_SUBMITTED
    session.submitted_at = now
    session.last_activity = now
    db.session.commit()

    return jsonify({
        "message": "Solutions submitted and judged",
        "submissions": results,
    })


@test_session_bp.route("/<int:test_id>/judge0-status", methods=["GET"])
def get_judge0_instance_status(test_id):
    test = db.session.get(CodingTest, test_id)
    if test is None:
        return jsonify({"error": "Test not found"}), 404
    if test.class_.teacher_id != current_user.user_id and not test.class_.has_student(current_user.user_id):
        return jsonify({"error": "Test not found"}), 404

    instance = JudgeInstance.query.filter_by(test_id=test_id).first()
    if instance is None:
        return jsonify({"error": "No judge instance scheduled for this test"}), 404

    status = instance.status_at(utcnow())
    if instance.status != status:
        instance.status = status
        db.session.commit()

    health = default_client(instance.endpoint).health() if status == INSTANCE_RUNNING else None
    return jsonify({"instance": instance.to_dict(), "health": health})
