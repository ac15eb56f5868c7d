import logging

from flask import Blueprint, jsonify, send_file
from flask_login import current_user, login_required

from extensions import db
from models import Assignment, Problem, Submission
from routes.class_routes import owned_class, visible_class
from schemas import AssignmentCreate
from services.assignment_service import (
    assignment_progress,
    ensure_submission_rows,
    export_progress,
    infer_platform,
)
from services.hackerrank_service import force_check_hackerrank_submissions_for_assignment
from services.leetcode_service import force_check_leetcode_submissions_for_assignment
from utils.decorators import role_required
from utils.time_utils import to_naive_utc, utcnow
from utils.validation import parse_body

logger = logging.getLogger(__name__)

assignment_bp = Blueprint("assignments", __name__)


def assignment_summary(assignment):
    return {
        "id": assignment.assignment_id,
        "classId": assignment.class_id,
        "title": assignment.title,
        "description": assignment.description,
        "assignDate": assignment.assign_date.isoformat() if assignment.assign_date else None,
        "dueDate": assignment.due_date.isoformat() if assignment.due_date else None,
        "problems": [p.to_dict() for p in assignment.problems],
    }


def visible_assignment(assignment_id):
    assignment = db.session.get(Assignment, assignment_id)
    if assignment is None or visible_class(assignment.class_id) is None:
        return None
    return assignment


def owned_assignment(assignment_id):
    assignment = db.session.get(Assignment, assignment_id)
    if assignment is None or owned_class(assignment.class_id) is None:
        return None
    return assignment


# =========================================================
# TEACHER
# =========================================================

@assignment_bp.route("/classes/<int:class_id>/assignments", methods=["POST"])
@role_required("teacher")
def create_assignment(class_id):
    class_ = owned_class(class_id)
    if class_ is None:
        return jsonify({"error": "Class not found"}), 404

    data = parse_body(AssignmentCreate)

    try:
        assignment = Assignment(
            class_id=class_id,
            title=data.title,
            description=data.description,
            assign_date=to_naive_utc(data.assign_date) or utcnow(),
            due_date=to_naive_utc(data.due_date)
        )
        db.session.add(assignment)

        for p in data.problems:
            assignment.problems.append(Problem(
                title=p.title,
                url=p.url,
                platform=p.platform or infer_platform(p.url),
                difficulty=p.difficulty
            ))
        db.session.flush()

        student_ids = [e.user_id for e in class_.enrollments]
        ensure_submission_rows(student_ids, assignment.problems)
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        logger.error("Failed to create assignment in class %s: %s", class_id, e)
        return jsonify({"error": "Failed to create assignment"}), 500

    logger.info(
        "Assignment %s created with %s problems for %s students",
        assignment.assignment_id, len(assignment.problems), len(class_.enrollments)
    )
    return jsonify({"assignment": assignment_summary(assignment)}), 201


@assignment_bp.route("/assignments/<int:assignment_id>", methods=["DELETE"])
@role_required("teacher")
def delete_assignment(assignment_id):
    assignment = owned_assignment(assignment_id)
    if assignment is None:
        return jsonify({"error": "Assignment not found"}), 404

    try:
        db.session.delete(assignment)
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        logger.error("Failed to delete assignment %s: %s", assignment_id, e)
        return jsonify({"error": "Failed to delete assignment"}), 500

    return jsonify({"status": "deleted"})


@assignment_bp.route("/assignments/<int:assignment_id>/check-submissions", methods=["POST"])
@role_required("teacher")
def check_submissions(assignment_id):
    assignment = owned_assignment(assignment_id)
    if assignment is None:
        return jsonify({"error": "Assignment not found"}), 404

    try:
        hr_success, hr_errors = force_check_hackerrank_submissions_for_assignment(assignment_id)
        lc_success, lc_errors = force_check_leetcode_submissions_for_assignment(assignment_id)
    except Exception as e:
        db.session.rollback()
        logger.error("Submission check failed for assignment %s: %s", assignment_id, e)
        return jsonify({"error": "Failed to check submissions"}), 500

    return jsonify({
        "message": "Submission check completed",
        "hackerrank": {"success": hr_success, "errors": hr_errors},
        "leetcode": {"success": lc_success, "errors": lc_errors},
        "progress": assignment_progress(assignment),
    })


@assignment_bp.route("/assignments/<int:assignment_id>/export", methods=["GET"])
@role_required("teacher")
def export_assignment(assignment_id):
    assignment = owned_assignment(assignment_id)
    if assignment is None:
        return jsonify({"error": "Assignment not found"}), 404

    try:
        output = export_progress(assignment)
    except Exception as e:
        logger.error("Export failed for assignment %s: %s", assignment_id, e)
        return jsonify({"error": "Export failed"}), 500

    return send_file(
        output,
        mimetype="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        as_attachment=True,
        download_name=f"assignment_{assignment_id}_progress.xlsx"
    )


# =========================================================
# SHARED
# =========================================================

@assignment_bp.route("/classes/<int:class_id>/assignments", methods=["GET"])
@login_required
def list_assignments(class_id):
    class_ = visible_class(class_id)
    if class_ is None:
        return jsonify({"error": "Class not found"}), 404

    assignments = sorted(
        class_.assignments,
        key=lambda a: a.assign_date or utcnow(),
        reverse=True
    )
    return jsonify({"assignments": [assignment_summary(a) for a in assignments]})


@assignment_bp.route("/assignments/<int:assignment_id>", methods=["GET"])
@login_required
def get_assignment(assignment_id):
    assignment = visible_assignment(assignment_id)
    if assignment is None:
        return jsonify({"error": "Assignment not found"}), 404

    summary = assignment_summary(assignment)
    if assignment.class_.teacher_id == current_user.user_id:
        summary["progress"] = assignment_progress(assignment)
    else:
        rows = {
            s.problem_id: s
            for s in Submission.query.filter(
                Submission.user_id == current_user.user_id,
                Submission.problem_id.in_([p.problem_id for p in assignment.problems])
            ).all()
        }
        for problem in summary["problems"]:
            row = rows.get(problem["id"])
            problem["submission"] = row.to_dict() if row else None
    return jsonify({"assignment": summary})


# =========================================================
# STUDENT
# =========================================================

@assignment_bp.route("/submissions/<int:submission_id>/complete", methods=["POST"])
@role_required("student")
def complete_submission(submission_id):
    submission = db.session.get(Submission, submission_id)
    if submission is None or submission.user_id != current_user.user_id:
        return jsonify({"error": "Submission not found"}), 404

    if submission.problem.platform != "other":
        return jsonify({
            "error": f"{submission.problem.platform} problems are verified automatically"
        }), 400

    submission.completed = True
    submission.submission_time = utcnow()
    db.session.commit()
    return jsonify({"submission": submission.to_dict()})
