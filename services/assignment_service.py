import logging
from io import BytesIO
from urllib.parse import urlparse

import pandas as pd

from extensions import db
from models import Submission

logger = logging.getLogger(__name__)


def infer_platform(url):
    host = (urlparse(url).hostname or "").lower()
    if host.endswith("hackerrank.com"):
        return "hackerrank"
    if host.endswith("leetcode.com") or host.endswith("leetcode.cn"):
        return "leetcode"
    return "other"


def ensure_submission_rows(user_ids, problems):
    """Add a pending Submission for each (user, problem) pair that lacks one.

    The caller commits. Returns the number of rows added.
    """
    if not user_ids or not problems:
        return 0

    problem_ids = [p.problem_id for p in problems]
    existing = {
        (s.user_id, s.problem_id)
        for s in Submission.query.filter(
            Submission.user_id.in_(user_ids),
            Submission.problem_id.in_(problem_ids)
        ).all()
    }

    added = 0
    for user_id in user_ids:
        for problem_id in problem_ids:
            if (user_id, problem_id) in existing:
                continue
            db.session.add(Submission(user_id=user_id, problem_id=problem_id, completed=False))
            added += 1
    return added


def assignment_progress(assignment):
    """Per-student completion of one assignment, ordered by username."""
    problem_ids = [p.problem_id for p in assignment.problems]
    rows = Submission.query.filter(Submission.problem_id.in_(problem_ids)).all() if problem_ids else []

    by_user = {}
    for row in rows:
        by_user.setdefault(row.user_id, []).append(row)

    progress = []
    for enrollment in assignment.class_.enrollments:
        student = enrollment.student
        student_rows = by_user.get(student.user_id, [])
        completed = {r.problem_id for r in student_rows if r.completed}
        progress.append({
            "userId": student.user_id,
            "username": student.username,
            "completedCount": len(completed),
            "totalProblems": len(problem_ids),
            "problems": {pid: pid in completed for pid in problem_ids},
        })
    return sorted(progress, key=lambda p: p["username"].lower())


def export_progress(assignment):
    """Excel workbook (BytesIO) with one row per student, one column per problem."""
    progress = assignment_progress(assignment)
    titles = {
        p.problem_id: f"{i}. {p.title}" for i, p in enumerate(assignment.problems, start=1)
    }

    records = []
    for entry in progress:
        record = {"Student": entry["username"]}
        for problem_id, done in entry["problems"].items():
            record[titles[problem_id]] = "Done" if done else "Pending"
        record["Completed"] = f"{entry['completedCount']}/{entry['totalProblems']}"
        records.append(record)

    df = pd.DataFrame(records, columns=["Student", *titles.values(), "Completed"])

    output = BytesIO()
    with pd.ExcelWriter(output, engine="openpyxl") as writer:
        df.to_excel(writer, sheet_name="Progress", index=False)
    output.seek(0)
    logger.info("Exported progress of assignment %s (%s students)", assignment.assignment_id, len(records))
    return output
