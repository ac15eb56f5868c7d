import logging
import secrets

from flask import Blueprint, jsonify
from flask_login import current_user, login_required

from extensions import db
from models import Class, ClassStudent, Problem, Submission
from schemas import ClassCreate, JoinClassRequest
from services.assignment_service import ensure_submission_rows
from utils.decorators import role_required
from utils.validation import parse_body

logger = logging.getLogger(__name__)

class_bp = Blueprint("classes", __name__, url_prefix="/classes")


# =========================================================
# HELPERS
# =========================================================

def generate_join_code():
    while True:
        code = secrets.token_hex(3).upper()
        if not Class.query.filter_by(join_code=code).first():
            return code


def owned_class(class_id):
    """The class if the current teacher owns it, else None."""
    class_ = db.session.get(Class, class_id)
    if class_ is None or class_.teacher_id != current_user.user_id:
        return None
    return class_


def visible_class(class_id):
    """The class if the current user teaches it or is enrolled in it."""
    class_ = db.session.get(Class, class_id)
    if class_ is None:
        return None
    if class_.teacher_id == current_user.user_id or class_.has_student(current_user.user_id):
        return class_
    return None


def class_summary(class_):
    return {
        "id": class_.class_id,
        "name": class_.name,
        "description": class_.description,
        "joinCode": class_.join_code if class_.teacher_id == current_user.user_id else None,
        "teacher": class_.teacher.username,
        "studentCount": len(class_.enrollments),
        "assignmentCount": len(class_.assignments),
        "testCount": len(class_.tests),
    }


# =========================================================
# TEACHER: CLASS MANAGEMENT
# =========================================================

@class_bp.route("", methods=["POST"])
@role_required("teacher")
def create_class():
    data = parse_body(ClassCreate)

    try:
        class_ = Class(
            name=data.name,
            description=data.description,
            join_code=generate_join_code(),
            teacher_id=current_user.user_id
        )
        db.session.add(class_)
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        logger.error("Failed to create class %s: %s", data.name, e)
        return jsonify({"error": "Failed to create class"}), 500

    logger.info("Class %s created by %s", class_.class_id, current_user.username)
    return jsonify({"class": class_summary(class_)}), 201


@class_bp.route("", methods=["GET"])
@login_required
def list_classes():
    if current_user.is_teacher:
        classes = Class.query.filter_by(teacher_id=current_user.user_id).order_by(Class.name).all()
    else:
        classes = (
            Class.query
            .join(ClassStudent, ClassStudent.class_id == Class.class_id)
            .filter(ClassStudent.user_id == current_user.user_id)
            .order_by(Class.name)
            .all()
        )
    return jsonify({"classes": [class_summary(c) for c in classes]})


@class_bp.route("/<int:class_id>", methods=["GET"])
@login_required
def get_class(class_id):
    class_ = visible_class(class_id)
    if class_ is None:
        return jsonify({"error": "Class not found"}), 404

    summary = class_summary(class_)
    summary["assignments"] = [
        {
            "id": a.assignment_id,
            "title": a.title,
            "dueDate": a.due_date.isoformat() if a.due_date else None,
            "problemCount": len(a.problems),
        }
        for a in class_.assignments
    ]
    summary["tests"] = [
        {
            "id": t.test_id,
            "title": t.title,
            "startTime": t.start_time.isoformat(),
            "endTime": t.end_time.isoformat(),
            "isActive": t.is_active,
        }
        for t in class_.tests
    ]
    return jsonify({"class": summary})


@class_bp.route("/<int:class_id>", methods=["DELETE"])
@role_required("teacher")
def delete_class(class_id):
    class_ = owned_class(class_id)
    if class_ is None:
        return jsonify({"error": "Class not found"}), 404

    try:
        db.session.delete(class_)
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        logger.error("Failed to delete class %s: %s", class_id, e)
        return jsonify({"error": "Failed to delete class"}), 500

    return jsonify({"status": "deleted"})


@class_bp.route("/<int:class_id>/students", methods=["GET"])
@role_required("teacher")
def list_students(class_id):
    class_ = owned_class(class_id)
    if class_ is None:
        return jsonify({"error": "Class not found"}), 404

    return jsonify({
        "students": [
            {
                "id": e.student.user_id,
                "username": e.student.username,
                "email": e.student.email,
                "hackerrankUsername": e.student.hackerrank_username,
                "hackerrankCookieStatus": e.student.hackerrank_cookie_status,
                "leetcodeUsername": e.student.leetcode_username,
                "joinedAt": e.joined_at.isoformat() if e.joined_at else None,
            }
            for e in sorted(class_.enrollments, key=lambda e: e.student.username.lower())
        ]
    })


@class_bp.route("/<int:class_id>/students/<int:user_id>", methods=["DELETE"])
@role_required("teacher")
def remove_student(class_id, user_id):
    class_ = owned_class(class_id)
    if class_ is None:
        return jsonify({"error": "Class not found"}), 404

    enrollment = ClassStudent.query.filter_by(class_id=class_id, user_id=user_id).first()
    if not enrollment:
        return jsonify({"error": "Student not found in class"}), 404

    try:
        # Drop the student's progress rows for this class's problems
        problem_ids = [p.problem_id for a in class_.assignments for p in a.problems]
        if problem_ids:
            Submission.query.filter(
                Submission.user_id == user_id,
                Submission.problem_id.in_(problem_ids)
            ).delete(synchronize_session=False)
        db.session.delete(enrollment)
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        logger.error("Failed to remove student %s from class %s: %s", user_id, class_id, e)
        return jsonify({"error": "Failed to remove student"}), 500

    return jsonify({"status": "removed"})


# =========================================================
# STUDENT: JOIN
# =========================================================

@class_bp.route("/join", methods=["POST"])
@role_required("student")
def join_class():
    data = parse_body(JoinClassRequest)

    class_ = Class.query.filter_by(join_code=data.join_code.strip().upper()).first()
    if class_ is None:
        return jsonify({"error": "Invalid join code"}), 404

    if class_.has_student(current_user.user_id):
        return jsonify({"error": "Already enrolled in this class"}), 409

    try:
        db.session.add(ClassStudent(class_id=class_.class_id, user_id=current_user.user_id))
        problems = (
            Problem.query
            .filter(Problem.assignment_id.in_([a.assignment_id for a in class_.assignments]))
            .all()
        ) if class_.assignments else []
        ensure_submission_rows([current_user.user_id], problems)
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        logger.error("User %s failed to join class %s: %s", current_user.user_id, class_.class_id, e)
        return jsonify({"error": "Failed to join class"}), 500

    logger.info("User %s joined class %s", current_user.username, class_.class_id)
    return jsonify({"class": class_summary(class_)}), 201
