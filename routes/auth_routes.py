import logging

from flask import Blueprint, jsonify
from flask_login import current_user, login_required, login_user, logout_user

from extensions import db
from models.user import HACKERRANK_LINKED, HACKERRANK_NOT_LINKED
from schemas import HackerRankLinkRequest, LeetCodeLinkRequest, LoginRequest, RegisterRequest
from services.auth_service import authenticate_user, register_user
from utils.validation import parse_body

logger = logging.getLogger(__name__)

auth_bp = Blueprint("auth", __name__, url_prefix="/auth")


# =========================================================
# REGISTER / LOGIN / LOGOUT
# =========================================================
@auth_bp.route("/register", methods=["POST"])
def register():
    data = parse_body(RegisterRequest)

    try:
        user, error = register_user(data.username, data.email, data.password, data.role)
    except Exception as e:
        db.session.rollback()
        logger.error("Registration failed for %s: %s", data.username, e)
        return jsonify({"error": "Registration failed"}), 500

    if error:
        return jsonify({"error": error}), 409

    logger.info("Registered %s as %s", user.username, data.role)
    return jsonify({"user": user.to_dict()}), 201


@auth_bp.route("/login", methods=["POST"])
def login():
    data = parse_body(LoginRequest)

    user = authenticate_user(data.username, data.password)
    if not user:
        return jsonify({"error": "Invalid username or password"}), 401

    login_user(user)
    return jsonify({"user": user.to_dict()})


@auth_bp.route("/logout", methods=["POST"])
@login_required
def logout():
    logout_user()
    return jsonify({"status": "success"})


@auth_bp.route("/me")
@login_required
def me():
    return jsonify({"user": current_user.to_dict()})


# =========================================================
# EXTERNAL PLATFORM ACCOUNTS
# =========================================================
@auth_bp.route("/hackerrank", methods=["POST"])
@login_required
def link_hackerrank():
    data = parse_body(HackerRankLinkRequest)

    current_user.hackerrank_username = data.username
    current_user.hackerrank_cookie = data.session_cookie
    current_user.hackerrank_cookie_status = HACKERRANK_LINKED
    db.session.commit()

    logger.info("User %s linked HackerRank account %s", current_user.user_id, data.username)
    return jsonify({"user": current_user.to_dict()})


@auth_bp.route("/hackerrank", methods=["DELETE"])
@login_required
def unlink_hackerrank():
    current_user.hackerrank_cookie = None
    current_user.hackerrank_cookie_status = HACKERRANK_NOT_LINKED
    db.session.commit()
    return jsonify({"user": current_user.to_dict()})


@auth_bp.route("/leetcode", methods=["POST"])
@login_required
def link_leetcode():
    data = parse_body(LeetCodeLinkRequest)

    current_user.leetcode_username = data.username
    db.session.commit()
    return jsonify({"user": current_user.to_dict()})
