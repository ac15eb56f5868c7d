from unittest.mock import patch

import pytest

from conftest import http_response
from models import Submission, User
from services.leetcode_service import (
    fetch_leetcode_stats_and_submissions,
    fetch_leetcode_submissions,
    force_check_leetcode_submissions_for_assignment,
    sync_all_leetcode_users,
)

FEED = {
    "data": {
        "recentAcSubmissionList": [
            {"id": "901", "title": "Two Sum", "titleSlug": "two-sum", "timestamp": "1760000000", "lang": "python3"},
            {"id": "902", "title": "Valid Anagram", "titleSlug": "valid-anagram", "timestamp": "1760000500", "lang": "cpp"},
        ]
    }
}


@pytest.fixture
def leetcode_assignment(teacher_client, student_client, classroom):
    response = teacher_client.post(f"/classes/{classroom['id']}/assignments", json={
        "title": "Arrays",
        "problems": [
            {"title": "Two Sum", "url": "https://leetcode.com/problems/two-sum/description/"},
            {"title": "3Sum", "url": "https://leetcode.com/problems/3sum/"},
        ],
    })
    student_client.post("/auth/leetcode", json={"username": "bob_lc"})
    return response.get_json()["assignment"]


def completed_titles():
    user = User.query.filter_by(username="bob").first()
    return sorted(
        s.problem.title for s in Submission.query.filter_by(user_id=user.user_id, completed=True)
    )


class TestFetchSubmissions:
    def test_maps_entries_to_feed_shape(self, app):
        with app.app_context():
            with patch("services.leetcode_service.requests.post", return_value=http_response(200, FEED)) as post:
                submissions = fetch_leetcode_submissions("bob_lc", limit=5)

        assert submissions[0] == {
            "id": "901",
            "challenge_name": "Two Sum",
            "challenge_slug": "two-sum",
            "language": "python3",
            "status": "Accepted",
            "created_at": "1760000000",
        }
        _, kwargs = post.call_args
        assert kwargs["json"]["variables"] == {"username": "bob_lc", "limit": 5}

    def test_graphql_errors_raise(self, app):
        payload = {"errors": [{"message": "That user does not exist."}]}
        with app.app_context():
            with patch("services.leetcode_service.requests.post", return_value=http_response(200, payload)):
                with pytest.raises(ValueError, match="does not exist"):
                    fetch_leetcode_submissions("ghost")


class TestSync:
    def test_sync_marks_solved_problems(self, app, leetcode_assignment):
        with app.app_context():
            with patch("services.leetcode_service.requests.post", return_value=http_response(200, FEED)):
                assert sync_all_leetcode_users() == 1
            assert completed_titles() == ["Two Sum"]

            user = User.query.filter_by(username="bob").first()
            row = Submission.query.filter_by(user_id=user.user_id, completed=True).first()
            assert row.submission_time.year == 2025

    def test_failure_returns_false(self, app, leetcode_assignment):
        with app.app_context():
            user = User.query.filter_by(username="bob").first()
            with patch("services.leetcode_service.requests.post", return_value=http_response(503)):
                assert fetch_leetcode_stats_and_submissions(user) is False
            assert completed_titles() == []

    def test_force_check(self, app, leetcode_assignment):
        with app.app_context():
            with patch("services.leetcode_service.requests.post", return_value=http_response(200, FEED)):
                result = force_check_leetcode_submissions_for_assignment(leetcode_assignment["id"])
            assert result == (1, 0)
            assert completed_titles() == ["Two Sum"]

    def test_sync_continues_after_a_failing_user(self, app, leetcode_assignment):
        from conftest import login, register
        other = app.test_client()
        register(other, "carol")
        login(other, "carol")
        other.post("/auth/leetcode", json={"username": "carol_lc"})

        with app.app_context():
            with patch("services.leetcode_service.requests.post", side_effect=[
                http_response(503), http_response(200, FEED)
            ]) as post:
                assert sync_all_leetcode_users() == 1
            assert post.call_count == 2
            usernames = [c.kwargs["json"]["variables"]["username"] for c in post.call_args_list]
            assert usernames == ["bob_lc", "carol_lc"]
            assert completed_titles() == []
