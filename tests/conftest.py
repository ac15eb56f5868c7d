"""Shared fixtures: an app on in-memory SQLite plus logged-in clients."""

from datetime import timedelta
from unittest.mock import MagicMock

import pytest
import requests

from app import create_app
from config.config import TestingConfig
from extensions import db
from services.judge_service import judge0_service
from utils.seed_data import run_seed
from utils.time_utils import utcnow


@pytest.fixture
def app():
    app = create_app(TestingConfig)
    with app.app_context():
        db.create_all()
        run_seed()
    judge0_service.limiter.reset()

    yield app

    with app.app_context():
        db.session.remove()
        db.drop_all()


def register(client, username, role="STUDENT", password="secret123"):
    return client.post("/auth/register", json={
        "username": username,
        "email": f"{username}@example.com",
        "password": password,
        "role": role,
    })


def login(client, username, password="secret123"):
    return client.post("/auth/login", json={"username": username, "password": password})


@pytest.fixture
def teacher_client(app):
    client = app.test_client()
    register(client, "alice", "TEACHER")
    login(client, "alice")
    return client


@pytest.fixture
def student_client(app):
    client = app.test_client()
    register(client, "bob", "STUDENT")
    login(client, "bob")
    return client


@pytest.fixture
def classroom(teacher_client, student_client):
    """A class owned by alice with bob enrolled."""
    response = teacher_client.post("/classes", json={"name": "Algorithms 101"})
    class_data = response.get_json()["class"]
    student_client.post("/classes/join", json={"join_code": class_data["joinCode"]})
    return class_data


def coding_test_payload(start_offset=timedelta(hours=-1), end_offset=timedelta(hours=1), **overrides):
    now = utcnow()
    payload = {
        "title": "Midterm",
        "description": "Two problems",
        "duration": 120,
        "start_time": (now + start_offset).isoformat(),
        "end_time": (now + end_offset).isoformat(),
        "allowed_languages": ["python", "cpp"],
        "problems": [
            {
                "title": "Sum",
                "description": "Add two numbers",
                "time_limit": 1,
                "memory_limit": 128,
                "test_cases": [
                    {"input": "1 2", "expected_output": "3", "is_public": True},
                    {"input": "5 5", "expected_output": "10", "is_public": False},
                ],
            },
            {
                "title": "Echo",
                "description": "Print the input",
                "test_cases": [
                    {"input": "hi", "expected_output": "hi", "is_public": True},
                ],
            },
        ],
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def coding_test(teacher_client, classroom):
    response = teacher_client.post(
        f"/classes/{classroom['id']}/tests", json=coding_test_payload()
    )
    return response.get_json()["test"]


def judge_response(status_id=3, description="Accepted", stdout="3", time="0.01", memory=1024):
    response = MagicMock()
    response.status_code = 201
    response.json.return_value = {
        "stdout": stdout,
        "stderr": None,
        "compile_output": None,
        "status": {"id": status_id, "description": description},
        "time": time,
        "memory": memory,
    }
    return response


def http_response(status_code=200, payload=None):
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = payload
    if status_code >= 400:
        error = requests.exceptions.HTTPError(f"{status_code} error")
        error.response = response
        response.raise_for_status.side_effect = error
    else:
        response.raise_for_status.return_value = None
    return response
