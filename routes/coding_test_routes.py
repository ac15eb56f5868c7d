import logging

from flask import Blueprint, jsonify
from flask_login import current_user, login_required

from extensions import db
from models import CodingTest, TestCase, TestProblem
from routes.class_routes import owned_class, visible_class
from schemas import CodingTestCreate, CodingTestUpdate
from utils.decorators import role_required
from utils.time_utils import to_naive_utc
from utils.validation import parse_body

logger = logging.getLogger(__name__)

coding_test_bp = Blueprint("coding_tests", __name__)


def owned_test(test_id):
    test = db.session.get(CodingTest, test_id)
    if test is None or owned_class(test.class_id) is None:
        return None
    return test


@coding_test_bp.route("/classes/<int:class_id>/tests", methods=["POST"])
@role_required("teacher")
def create_test(class_id):
    if owned_class(class_id) is None:
        return jsonify({"error": "Class not found"}), 404

    data = parse_body(CodingTestCreate)

    try:
        test = CodingTest(
            class_id=class_id,
            title=data.title,
            description=data.description,
            duration=data.duration,
            start_time=to_naive_utc(data.start_time),
            end_time=to_naive_utc(data.end_time),
            is_active=data.is_active,
            allowed_languages=list(data.allowed_languages)
        )
        for order, p in enumerate(data.problems, start=1):
            problem = TestProblem(
                title=p.title,
                description=p.description,
                constraints=p.constraints,
                examples=p.examples,
                difficulty=p.difficulty,
                time_limit=p.time_limit,
                memory_limit=p.memory_limit,
                order=order
            )
            for tc in p.test_cases:
                problem.test_cases.append(TestCase(
                    input=tc.input,
                    expected_output=tc.expected_output,
                    is_public=tc.is_public
                ))
            test.problems.append(problem)

        db.session.add(test)
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        logger.error("Failed to create coding test in class %s: %s", class_id, e)
        return jsonify({"error": "Failed to create test"}), 500

    logger.info("Coding test %s created with %s problems", test.test_id, len(test.problems))
    return jsonify({"test": test.to_dict(include_hidden=True)}), 201


@coding_test_bp.route("/classes/<int:class_id>/tests", methods=["GET"])
@login_required
def list_tests(class_id):
    class_ = visible_class(class_id)
    if class_ is None:
        return jsonify({"error": "Class not found"}), 404

    tests = sorted(class_.tests, key=lambda t: t.start_time)
    return jsonify({
        "tests": [
            {
                "id": t.test_id,
                "title": t.title,
                "duration": t.duration,
                "startTime": t.start_time.isoformat(),
                "endTime": t.end_time.isoformat(),
                "isActive": t.is_active,
                "problemCount": len(t.problems),
            }
            for t in tests
        ]
    })


@coding_test_bp.route("/tests/<int:test_id>", methods=["GET"])
@login_required
def get_test(test_id):
    test = db.session.get(CodingTest, test_id)
    if test is None or visible_class(test.class_id) is None:
        return jsonify({"error": "Test not found"}), 404

    is_owner = test.class_.teacher_id == current_user.user_id
    return jsonify({"test": test.to_dict(include_hidden=is_owner)})


@coding_test_bp.route("/tests/<int:test_id>", methods=["PATCH"])
@role_required("teacher")
def update_test(test_id):
    test = owned_test(test_id)
    if test is None:
        return jsonify({"error": "Test not found"}), 404

    data = parse_body(CodingTestUpdate)

    start_time = to_naive_utc(data.start_time) or test.start_time
    end_time = to_naive_utc(data.end_time) or test.end_time
    if end_time <= start_time:
        return jsonify({"error": "end_time must be after start_time"}), 400

    if data.title is not None:
        test.title = data.title
    if data.description is not None:
        test.description = data.description
    if data.is_active is not None:
        test.is_active = data.is_active
    test.start_time = start_time
    test.end_time = end_time

    db.session.commit()
    return jsonify({"test": test.to_dict(include_hidden=True)})


@coding_test_bp.route("/tests/<int:test_id>", methods=["DELETE"])
@role_required("teacher")
def delete_test(test_id):
    test = owned_test(test_id)
    if test is None:
        return jsonify({"error": "Test not found"}), 404

    try:
        db.session.delete(test)
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        logger.error("Failed to delete test %s: %s", test_id, e)
        return jsonify({"error": "Failed to delete test"}), 500

    return jsonify({"status": "deleted"})
