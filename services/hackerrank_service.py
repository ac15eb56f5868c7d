import logging
import time

import requests
from flask import current_app

from extensions import db
from models import Problem, Submission, User
from models.user import HACKERRANK_EXPIRED, HACKERRANK_LINKED
from services.matching import extract_hackerrank_slug, reconcile_submissions

logger = logging.getLogger(__name__)

HACKERRANK_ORIGIN = "https://www.hackerrank.com"


class HackerRankSessionExpired(Exception):
    """Raised when HackerRank rejects the stored _hrank_session cookie."""
    pass


def _headers(session_cookie):
    return {
        "User-Agent": "Mozilla/5.0",
        "Cookie": f"_hrank_session={session_cookie}",
        "Referer": f"{HACKERRANK_ORIGIN}/",
        "Origin": HACKERRANK_ORIGIN,
    }


def fetch_hackerrank_submissions(session_cookie, limit=100):
    """Fetch recent accepted submissions with an authenticated session."""
    logger.info("HackerRank: fetching submissions (limit: %s)", limit)

    base_url = current_app.config["HACKERRANK_API_URL"]
    url = f"{base_url}/contests/master/submissions"

    try:
        response = requests.get(
            url,
            params={"offset": 0, "limit": limit},
            headers=_headers(session_cookie),
            timeout=current_app.config["HTTP_TIMEOUT"]
        )
        response.raise_for_status()
    except requests.exceptions.HTTPError as e:
        if e.response is not None and e.response.status_code == 401:
            logger.error("HackerRank: unauthorized, the session cookie may be invalid or expired")
            raise HackerRankSessionExpired("HackerRank session expired or invalid.") from e
        logger.error("HackerRank: error fetching submissions: %s", e)
        raise

    if response.status_code != 200:
        logger.error("HackerRank: failed to fetch submissions, status: %s", response.status_code)
        return []

    data = response.json() or {}
    models = data.get("models")
    if not models:
        logger.error("HackerRank: response carried no submissions")
        return []

    submissions = []
    for sub in models:
        if sub.get("status") != "Accepted":
            continue
        challenge = sub.get("challenge") or {}
        submissions.append({
            "id": sub.get("id"),
            "challenge_name": challenge.get("name") or "",
            "challenge_slug": challenge.get("slug") or None,
            "language": sub.get("language"),
            "score": sub.get("score"),
            "status": sub.get("status"),
            "created_at": sub.get("created_at"),
        })

    logger.info(
        "HackerRank: found %s accepted submissions out of %s total",
        len(submissions), len(models)
    )
    return submissions


def fetch_submission_code(submission_id, session_cookie):
    """Fetch the source of one submission; None when it cannot be read."""
    base_url = current_app.config["HACKERRANK_API_URL"]
    url = f"{base_url}/contests/master/submissions/{submission_id}"

    try:
        response = requests.get(
            url,
            headers=_headers(session_cookie),
            timeout=current_app.config["HTTP_TIMEOUT"]
        )
        if response.status_code == 200:
            model = (response.json() or {}).get("model")
            if model:
                return model.get("code")
        logger.error(
            "HackerRank: failed to fetch code for submission %s, status: %s",
            submission_id, response.status_code
        )
        return None
    except (requests.exceptions.RequestException, ValueError) as e:
        logger.error("HackerRank: error fetching code for submission %s: %s", submission_id, e)
        return None


def _hackerrank_rows(user_id, assignment_id=None):
    query = (
        Submission.query
        .join(Problem, Submission.problem_id == Problem.problem_id)
        .filter(Submission.user_id == user_id)
        .filter(db.func.lower(Problem.platform) == "hackerrank")
    )
    if assignment_id is not None:
        query = query.filter(Problem.assignment_id == assignment_id)
    return query.all()


def process_hackerrank_submissions(user, submissions):
    rows = _hackerrank_rows(user.user_id)
    logger.info(
        "HackerRank: checking %s problems against %s submissions for %s",
        len(rows), len(submissions), user.hackerrank_username
    )
    updated = reconcile_submissions(
        rows, submissions, extract_hackerrank_slug, user.hackerrank_username
    )
    db.session.commit()
    logger.info(
        "HackerRank: updated %s problem submissions for %s",
        updated, user.hackerrank_username
    )
    return updated


def fetch_hackerrank_stats_and_submissions(user):
    """Sync one user; returns True when the feed was fetched and applied."""
    if not user.hackerrank_username:
        logger.warning("User %s has no HackerRank username", user.user_id)
        return False

    if user.hackerrank_cookie_status != HACKERRANK_LINKED or not user.hackerrank_cookie:
        logger.warning("User %s does not have a linked HackerRank session", user.user_id)
        return False

    try:
        try:
            submissions = fetch_hackerrank_submissions(
                user.hackerrank_cookie, current_app.config["HACKERRANK_FETCH_LIMIT"]
            )
        except Exception:
            logger.error(
                "HackerRank submissions call failed for %s, marking cookie as expired",
                user.hackerrank_username
            )
            user.hackerrank_cookie_status = HACKERRANK_EXPIRED
            db.session.commit()
            return False

        process_hackerrank_submissions(user, submissions)
        return True
    except Exception as e:
        db.session.rollback()
        logger.error("HackerRank sync failed for %s: %s", user.hackerrank_username, e)
        return False


def linked_hackerrank_users():
    return User.query.filter(
        User.hackerrank_cookie_status == HACKERRANK_LINKED,
        User.hackerrank_cookie.isnot(None),
        User.hackerrank_username.isnot(None)
    ).all()


def sync_all_linked_hackerrank_users():
    users = linked_hackerrank_users()
    logger.info("HackerRank: starting sync for %s linked users", len(users))

    synced = 0
    for user in users:
        try:
            if fetch_hackerrank_stats_and_submissions(user):
                synced += 1
        except Exception:
            logger.exception("HackerRank: error syncing user %s", user.hackerrank_username)
        time.sleep(current_app.config["SYNC_DELAY_SECONDS"])

    logger.info("HackerRank: finished sync, %s/%s users synced", synced, len(users))
    return synced


def force_check_hackerrank_submissions_for_assignment(assignment_id):
    """Re-check every linked student's HackerRank problems in an assignment.

    Always fetches a fresh feed. Returns (success_count, error_count).
    """
    users = (
        User.query
        .filter(
            User.hackerrank_cookie_status == HACKERRANK_LINKED,
            User.hackerrank_cookie.isnot(None),
            User.hackerrank_username.isnot(None)
        )
        .join(Submission, Submission.user_id == User.user_id)
        .join(Problem, Submission.problem_id == Problem.problem_id)
        .filter(
            Problem.assignment_id == assignment_id,
            db.func.lower(Problem.platform) == "hackerrank"
        )
        .distinct()
        .all()
    )
    logger.info(
        "Found %s users with HackerRank problems in assignment %s",
        len(users), assignment_id
    )

    success_count = 0
    error_count = 0
    for user in users:
        try:
            rows = _hackerrank_rows(user.user_id, assignment_id)
            if not rows:
                continue

            try:
                submissions = fetch_hackerrank_submissions(
                    user.hackerrank_cookie, current_app.config["HACKERRANK_FETCH_LIMIT"]
                )
            except Exception as e:
                logger.error(
                    "Failed to fetch HackerRank submissions for %s: %s",
                    user.hackerrank_username, e
                )
                error_count += 1
                continue

            updated = reconcile_submissions(
                rows, submissions, extract_hackerrank_slug, user.hackerrank_username
            )
            db.session.commit()
            logger.info(
                "Updated %s/%s problems for %s", updated, len(rows), user.hackerrank_username
            )
            success_count += 1
            time.sleep(current_app.config["SYNC_DELAY_SECONDS"])
        except Exception:
            db.session.rollback()
            logger.exception("Error force checking user %s", user.hackerrank_username)
            error_count += 1

    logger.info(
        "Force check completed for assignment %s. Success: %s, Errors: %s",
        assignment_id, success_count, error_count
    )
    return success_count, error_count
