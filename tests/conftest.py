import asyncio
import os

os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")

import pytest
from fastapi.testclient import TestClient
from mongomock_motor import AsyncMongoMockClient

from oasis.auth import passwords
from oasis.auth.tokens import issue_token
from oasis.database import create_indexes, get_db
from oasis.main import create_app


@pytest.fixture(autouse=True)
def fast_password_hashing(monkeypatch):
    monkeypatch.setattr(passwords, "ITERATIONS", 1000)


@pytest.fixture
def db():
    database = AsyncMongoMockClient()["oasis_test"]
    asyncio.run(create_indexes(database))
    return database


@pytest.fixture
def client(db):
    app = create_app()

    async def override_db():
        return db

    app.dependency_overrides[get_db] = override_db
    return TestClient(app)


def auth(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def register(client, db):
    """Register a user through the API, then set role/department directly"""
    counter = {"n": 0}

    def _register(role="employee", department="Engineering", password="secret123", email=None):
        counter["n"] += 1
        email = email or f"user{counter['n']}@oasis.test"
        response = client.post("/api/auth/register", json={
            "first_name": "Test",
            "last_name": f"User{counter['n']}",
            "email": email,
            "password": password,
            "department": department,
        })
        assert response.status_code == 201, response.text
        user = response.json()["user"]
        if role != "employee":
            asyncio.run(db.users.update_one({"user_id": user["user_id"]}, {"$set": {"role": role}}))
        return user["user_id"], issue_token(user["user_id"])

    return _register


def lesson_payload(title="Intro", duration=10, quiz=False):
    lesson = {
        "title": title,
        "content": f"https://cdn.oasis.test/{title}.mp4",
        "content_type": "video",
        "duration": duration,
    }
    if quiz:
        lesson["quiz"] = {
            "passing_score": 70,
            "questions": [
                {
                    "question_id": "Q1",
                    "question": "Which port does HTTPS use?",
                    "options": [{"text": "80"}, {"text": "443", "is_correct": True}],
                },
                {
                    "question_id": "Q2",
                    "question": "Is TLS encryption?",
                    "options": [{"text": "Yes", "is_correct": True}, {"text": "No"}],
                    "points": 2,
                },
            ],
        }
    return lesson


def course_payload(department="Engineering", lessons=None, **overrides):
    payload = {
        "title": "Secure Coding",
        "description": "Writing software that resists attack",
        "category": "Technical Skills",
        "department": department,
        "level": "Beginner",
        "instructor": {"name": "Ada Lovelace"},
        "lessons": lessons if lessons is not None else [
            lesson_payload("Intro", 10),
            lesson_payload("Transport", 25, quiz=True),
        ],
        "tags": ["security"],
        "is_published": True,
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def admin(register):
    return register(role="admin", department="HR")


@pytest.fixture
def create_course(client, admin):
    def _create(**kwargs):
        response = client.post("/api/courses", json=course_payload(**kwargs), headers=auth(admin[1]))
        assert response.status_code == 201, response.text
        return response.json()["course"]

    return _create
