import logging
import time

import requests
from flask import current_app

from extensions import db
from models import Problem, Submission, User
from services.matching import extract_leetcode_slug, reconcile_submissions

logger = logging.getLogger(__name__)

RECENT_AC_QUERY = """
query recentAcSubmissions($username: String!, $limit: Int!) {
  recentAcSubmissionList(username: $username, limit: $limit) {
    id
    title
    titleSlug
    timestamp
    lang
  }
}
"""


def fetch_leetcode_submissions(username, limit=20):
    """Fetch a user's recent accepted submissions from the public GraphQL API.

    Entries are shaped like HackerRank feed entries so both feeds share the
    same matching code.
    """
    logger.info("LeetCode: fetching submissions for %s (limit: %s)", username, limit)

    response = requests.post(
        current_app.config["LEETCODE_GRAPHQL_URL"],
        json={
            "query": RECENT_AC_QUERY,
            "variables": {"username": username, "limit": limit},
        },
        headers={
            "User-Agent": "Mozilla/5.0",
            "Content-Type": "application/json",
            "Referer": "https://leetcode.com/",
        },
        timeout=current_app.config["HTTP_TIMEOUT"]
    )
    response.raise_for_status()

    payload = response.json() or {}
    if payload.get("errors"):
        raise ValueError(f"LeetCode API error: {payload['errors'][0].get('message')}")

    entries = (payload.get("data") or {}).get("recentAcSubmissionList") or []
    submissions = [
        {
            "id": entry.get("id"),
            "challenge_name": entry.get("title") or "",
            "challenge_slug": entry.get("titleSlug") or None,
            "language": entry.get("lang"),
            "status": "Accepted",
            "created_at": entry.get("timestamp"),
        }
        for entry in entries
    ]
    logger.info("LeetCode: found %s accepted submissions for %s", len(submissions), username)
    return submissions


def _leetcode_rows(user_id, assignment_id=None):
    query = (
        Submission.query
        .join(Problem, Submission.problem_id == Problem.problem_id)
        .filter(Submission.user_id == user_id)
        .filter(db.func.lower(Problem.platform) == "leetcode")
    )
    if assignment_id is not None:
        query = query.filter(Problem.assignment_id == assignment_id)
    return query.all()


def fetch_leetcode_stats_and_submissions(user):
    if not user.leetcode_username:
        logger.warning("User %s has no LeetCode username", user.user_id)
        return False

    try:
        submissions = fetch_leetcode_submissions(
            user.leetcode_username, current_app.config["LEETCODE_FETCH_LIMIT"]
        )
        rows = _leetcode_rows(user.user_id)
        updated = reconcile_submissions(
            rows, submissions, extract_leetcode_slug, user.leetcode_username
        )
        db.session.commit()
        logger.info("LeetCode: updated %s problem submissions for %s", updated, user.leetcode_username)
        return True
    except Exception as e:
        db.session.rollback()
        logger.error("LeetCode sync failed for %s: %s", user.leetcode_username, e)
        return False


def sync_all_leetcode_users():
    users = User.query.filter(User.leetcode_username.isnot(None)).all()
    logger.info("LeetCode: starting sync for %s users", len(users))

    synced = 0
    for user in users:
        if fetch_leetcode_stats_and_submissions(user):
            synced += 1
        time.sleep(current_app.config["SYNC_DELAY_SECONDS"])

    logger.info("LeetCode: finished sync, %s/%s users synced", synced, len(users))
    return synced


def force_check_leetcode_submissions_for_assignment(assignment_id):
    """Returns (success_count, error_count)."""
    users = (
        User.query
        .filter(User.leetcode_username.isnot(None))
        .join(Submission, Submission.user_id == User.user_id)
        .join(Problem, Submission.problem_id == Problem.problem_id)
        .filter(
            Problem.assignment_id == assignment_id,
            db.func.lower(Problem.platform) == "leetcode"
        )
        .distinct()
        .all()
    )
    logger.info("Found %s users with LeetCode problems in assignment %s", len(users), assignment_id)

    success_count = 0
    error_count = 0
    for user in users:
        rows = _leetcode_rows(user.user_id, assignment_id)
        if not rows:
            continue
        try:
            submissions = fetch_leetcode_submissions(
                user.leetcode_username, current_app.config["LEETCODE_FETCH_LIMIT"]
            )
            reconcile_submissions(rows, submissions, extract_leetcode_slug, user.leetcode_username)
            db.session.commit()
            success_count += 1
        except Exception as e:
            db.session.rollback()
            logger.error("Failed to check LeetCode submissions for %s: %s", user.leetcode_username, e)
            error_count += 1
        time.sleep(current_app.config["SYNC_DELAY_SECONDS"])

    logger.info(
        "LeetCode force check completed for assignment %s. Success: %s, Errors: %s",
        assignment_id, success_count, error_count
    )
    return success_count, error_count
