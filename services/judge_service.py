"""Judge0 integration for timed coding tests."""

import logging
import threading
import time
from collections import defaultdict, deque

import requests
from flask import current_app

from extensions import db
from models import TestSession, TestSubmission
from models.coding_session import (
    STATUS_ACCEPTED,
    STATUS_COMPILATION_ERROR,
    STATUS_PROCESSING,
    STATUS_QUEUED,
    STATUS_RUNTIME_ERROR,
    STATUS_SYSTEM_ERROR,
    STATUS_TIME_LIMIT_EXCEEDED,
    STATUS_WRONG_ANSWER,
)

logger = logging.getLogger(__name__)

LANGUAGE_IDS = {
    "c": 50,
    "cpp": 54,
    "java": 62,
    "javascript": 63,
    "python": 71,
}

# Judge0 status.id -> submission status
_STATUS_MAP = {
    3: STATUS_ACCEPTED,
    4: STATUS_WRONG_ANSWER,
    5: STATUS_TIME_LIMIT_EXCEEDED,
    6: STATUS_COMPILATION_ERROR,
    7: STATUS_RUNTIME_ERROR,   # SIGSEGV
    8: STATUS_RUNTIME_ERROR,   # SIGXFSZ
    9: STATUS_RUNTIME_ERROR,   # SIGFPE
    10: STATUS_RUNTIME_ERROR,  # SIGABRT
    11: STATUS_RUNTIME_ERROR,  # NZEC
    12: STATUS_RUNTIME_ERROR,  # Other
    13: STATUS_SYSTEM_ERROR,   # Internal Error
    14: STATUS_SYSTEM_ERROR,   # Exec Format Error
}

NO_TEST_CASES = "NO_TEST_CASES"


class JudgeError(Exception):
    """Raised when the judge cannot be reached or returns garbage."""
    pass


class RateLimitExceeded(Exception):
    def __init__(self, retry_after):
        super().__init__(f"Rate limit exceeded, retry in {retry_after} seconds")
        self.retry_after = retry_after


class Judge0Client:
    def __init__(self, base_url, api_key="", timeout=30):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout

    def _headers(self):
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["X-Auth-Token"] = self.api_key
        return headers

    def run(self, code, language, stdin, expected_output, time_limit, memory_limit):
        """Execute ``code`` once, synchronously, and return a normalized result."""
        language_id = LANGUAGE_IDS.get(language)
        if language_id is None:
            raise JudgeError(f"Unsupported language: {language}")

        payload = {
            "source_code": code,
            "language_id": language_id,
            "stdin": stdin or "",
            "expected_output": expected_output,
            "cpu_time_limit": time_limit,
            "memory_limit": int(memory_limit) * 1024,
        }

        try:
            response = requests.post(
                f"{self.base_url}/submissions",
                params={"base64_encoded": "false", "wait": "true"},
                json=payload,
                headers=self._headers(),
                timeout=self.timeout
            )
        except requests.exceptions.RequestException as e:
            raise JudgeError(f"Judge unreachable: {e}") from e

        if response.status_code not in (200, 201):
            raise JudgeError(f"Judge returned HTTP {response.status_code}")

        try:
            data = response.json()
        except ValueError as e:
            raise JudgeError("Judge returned a non-JSON response") from e

        if not isinstance(data, dict):
            raise JudgeError(f"Judge returned an unexpected body: {data!r}")

        status_id = (data.get("status") or {}).get("id")
        status = _STATUS_MAP.get(status_id, STATUS_SYSTEM_ERROR)
        return {
            "status": status,
            "passed": status == STATUS_ACCEPTED,
            "stdout": data.get("stdout"),
            "stderr": data.get("stderr"),
            "compileOutput": data.get("compile_output"),
            "time": float(data["time"]) if data.get("time") else 0.0,
            "memory": int(data["memory"]) if data.get("memory") else 0,
            "judgeStatus": (data.get("status") or {}).get("description"),
        }

    def health(self):
        try:
            response = requests.get(
                f"{self.base_url}/about", headers=self._headers(), timeout=5
            )
            if response.status_code == 200:
                return {"reachable": True, "about": response.json()}
            return {"reachable": False, "httpStatus": response.status_code}
        except (requests.exceptions.RequestException, ValueError) as e:
            return {"reachable": False, "error": str(e)}


class RateLimiter:
    """At most ``limit`` calls per key inside a sliding ``window`` of seconds."""

    def __init__(self, clock=time.monotonic):
        self._clock = clock
        self._calls = defaultdict(deque)
        self._lock = threading.Lock()

    def check(self, key, limit, window, cost=1):
        """Record ``cost`` calls for ``key``, all or none."""
        now = self._clock()
        with self._lock:
            calls = self._calls[key]
            while calls and now - calls[0] >= window:
                calls.popleft()
            overflow = len(calls) + cost - limit
            if overflow > 0:
                if cost > limit:
                    retry_after = int(window)
                else:
                    # wait until the oldest ``overflow`` calls leave the window
                    retry_after = int(window - (now - calls[overflow - 1])) + 1
                raise RateLimitExceeded(retry_after)
            calls.extend([now] * cost)

    def reset(self):
        with self._lock:
            self._calls.clear()


def default_client(base_url=None):
    config = current_app.config
    return Judge0Client(
        base_url or config["JUDGE0_URL"],
        config["JUDGE0_API_KEY"],
        config["JUDGE0_TIMEOUT"]
    )


def summarize(results):
    total = len(results)
    passed = sum(1 for r in results if r["passed"])
    if total == 0:
        status = NO_TEST_CASES
    elif passed == total:
        status = STATUS_ACCEPTED
    else:
        status = next(r["status"] for r in results if not r["passed"])
    return {
        "passed": passed,
        "total": total,
        "status": status,
        "score": round(100 * passed / total) if total else 0,
    }


class Judge0ExecutionService:
    def __init__(self, limiter=None):
        self.limiter = limiter or RateLimiter()

    def run_test_cases(self, client, code, language, test_cases, time_limit, memory_limit):
        results = []
        for index, case in enumerate(test_cases, start=1):
            outcome = client.run(
                code,
                language,
                case["input"],
                case["expectedOutput"],
                time_limit,
                memory_limit
            )
            outcome["testCase"] = case.get("id") or index
            outcome["input"] = case["input"]
            outcome["expectedOutput"] = case["expectedOutput"]
            results.append(outcome)
        return results

    def reserve_runs(self, user_id, runs=1):
        config = current_app.config
        self.limiter.check(
            user_id,
            config["REALTIME_EXECUTION_LIMIT"],
            config["REALTIME_EXECUTION_WINDOW"],
            cost=runs
        )

    def execute_real_time(self, user_id, code, language, test_cases, time_limit,
                          memory_limit, client=None, reserved=False):
        """Run ``code`` against ``test_cases``.

        Counts one run against the user's rate limit unless the caller already
        reserved it with ``reserve_runs``.
        """
        if not reserved:
            self.reserve_runs(user_id)
        client = client or default_client()
        results = self.run_test_cases(
            client, code, language, test_cases, time_limit, memory_limit
        )
        return {"results": results, "summary": summarize(results)}

    def process_submission(self, submission_id, client=None):
        """Judge a stored submission against every test case of its problem."""
        submission = db.session.get(TestSubmission, submission_id)
        if submission is None:
            raise ValueError(f"Submission {submission_id} not found")

        submission.status = STATUS_PROCESSING
        db.session.commit()

        problem = submission.problem
        cases = [
            {"id": tc.test_case_id, "input": tc.input, "expectedOutput": tc.expected_output}
            for tc in problem.test_cases
        ]
        client = client or default_client()
        results = self.run_test_cases(
            client,
            submission.code,
            submission.language,
            cases,
            problem.time_limit,
            problem.memory_limit
        )
        summary = summarize(results)

        submission.status = STATUS_SYSTEM_ERROR if summary["status"] == NO_TEST_CASES else summary["status"]
        submission.score = summary["score"]
        submission.execution_time = max((r["time"] for r in results), default=0.0)
        submission.memory_used = max((r["memory"] for r in results), default=0)
        submission.judge_response = {"summary": summary, "results": results}
        db.session.commit()

        logger.info(
            "Submission %s judged: %s (%s/%s)",
            submission_id, submission.status, summary["passed"], summary["total"]
        )
        return submission

    def queue_for_batch(self, test_id, submission_id):
        submission = db.session.get(TestSubmission, submission_id)
        if submission is not None and submission.status != STATUS_QUEUED:
            submission.status = STATUS_QUEUED
            db.session.commit()
        logger.info("Submission %s queued for batch run of test %s", submission_id, test_id)

    def process_batch(self, test_id=None, client=None):
        """Judge every queued submission, optionally limited to one test.

        Returns the number of submissions processed.
        """
        query = TestSubmission.query.filter(TestSubmission.status == STATUS_QUEUED)
        if test_id is not None:
            query = query.join(TestSession).filter(TestSession.test_id == test_id)
        queued_ids = [s.submission_id for s in query.order_by(TestSubmission.submission_id).all()]

        logger.info("Batch run: %s queued submissions", len(queued_ids))
        for submission_id in queued_ids:
            try:
                self.process_submission(submission_id, client=client)
            except Exception as e:
                db.session.rollback()
                mark_system_error(submission_id, str(e))
                logger.error("Batch run failed for submission %s: %s", submission_id, e)
        return len(queued_ids)


def mark_system_error(submission_id, message="Execution failed"):
    submission = db.session.get(TestSubmission, submission_id)
    if submission is None:
        return None
    submission.status = STATUS_SYSTEM_ERROR
    submission.score = 0
    submission.judge_response = {"error": message}
    db.session.commit()
    return submission


judge0_service = Judge0ExecutionService()
