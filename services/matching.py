"""Reconcile external-platform feeds against assignment problems.

A feed entry is a dict with at least ``challenge_name``, ``challenge_slug``
(may be ``None``) and ``created_at`` (epoch seconds or ISO-8601). Each stored
problem is identified by the slug found in its URL.
"""

import logging
import re
from datetime import datetime, timezone

from utils.time_utils import to_naive_utc, utcnow

logger = logging.getLogger(__name__)

HACKERRANK_SLUG_RE = re.compile(r"/challenges/([^/?#]+)")
LEETCODE_SLUG_RE = re.compile(r"/problems/([^/?#]+)")


def extract_hackerrank_slug(url):
    if not url:
        return None
    match = HACKERRANK_SLUG_RE.search(url)
    return match.group(1) if match else None


def extract_leetcode_slug(url):
    if not url:
        return None
    match = LEETCODE_SLUG_RE.search(url)
    return match.group(1) if match else None


def normalize_challenge_name(name):
    """Turn a challenge title into URL slug form ("Two Sum!" -> "two-sum")."""
    slug = re.sub(r"[^a-z0-9]", "-", (name or "").lower())
    slug = re.sub(r"-+", "-", slug)
    return slug.strip("-")


def safe_date_from_timestamp(timestamp):
    """Epoch seconds or an ISO-8601 string as naive UTC; now when unparseable."""
    try:
        return datetime.fromtimestamp(float(timestamp), tz=timezone.utc).replace(tzinfo=None)
    except (TypeError, ValueError, OverflowError, OSError):
        pass

    if isinstance(timestamp, str):
        try:
            return to_naive_utc(datetime.fromisoformat(timestamp.strip().replace("Z", "+00:00")))
        except ValueError:
            pass
    return utcnow()


def find_matching_submission(slug, submissions):
    """Return the first feed entry that solves ``slug``, else None.

    Tried in order: exact slug from the feed, the normalized challenge name
    against the slug, then both sides normalized.
    """
    normalized_slug = normalize_challenge_name(slug)
    for entry in submissions:
        if entry.get("challenge_slug") and entry["challenge_slug"] == slug:
            return entry

        normalized_name = normalize_challenge_name(entry.get("challenge_name"))
        if normalized_name == slug:
            return entry

        if normalized_name and normalized_name == normalized_slug:
            return entry
    return None


def match_strategy(entry):
    return "slug" if entry.get("challenge_slug") else "normalized name"


def reconcile_submissions(rows, feed, extract_slug, username=None):
    """Mark each Submission row in ``rows`` completed when ``feed`` solves it.

    Rows whose problem URL carries no slug are skipped. The caller commits.
    Returns the number of rows updated.
    """
    updated = 0
    for row in rows:
        slug = extract_slug(row.problem.url)
        if not slug:
            logger.warning("Could not extract slug from %s", row.problem.url)
            continue

        entry = find_matching_submission(slug, feed)
        if entry is None:
            logger.debug("No submission found for %s by %s", slug, username)
            continue

        row.completed = True
        row.submission_time = safe_date_from_timestamp(entry.get("created_at"))
        updated += 1
        logger.info(
            "Marked %s as completed for %s (matched via %s: %s)",
            slug, username, match_strategy(entry), entry.get("challenge_name")
        )
    return updated
