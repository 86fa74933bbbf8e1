import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["CHATBOT_URL"] = "http://chatbot.test/webhook"

import pytest
from fastapi.testclient import TestClient

import main
from auth import create_token, hash_password
from db import Base, SessionLocal, engine
from logic.store import Repository
from models.question import Question
from models.user import User


@pytest.fixture
def schema():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db(schema):
    session = SessionLocal()
    yield session
    session.close()


@pytest.fixture
def client(schema):
    return TestClient(main.app)


def make_user(db, username="ada", **fields):
    fields.setdefault("email", f"{username}@school.edu")
    fields.setdefault("fullname", username.title())
    fields.setdefault("password", hash_password("password123"))
    return Repository(db, User).create(username=username, **fields)


def add_questions(db, topic, *external_ids):
    return Repository(db, Question).insert_many([
        {
            "external_id": qid,
            "type": "multiple-choice",
            "prompt": f"Prompt {qid}",
            "options": [{"value": "yes"}, {"value": "no"}],
            "correct_answer": "yes",
            "feedback": "Because.",
            "topic": topic,
        }
        for qid in external_ids
    ])


@pytest.fixture
def user(db):
    return make_user(db)


@pytest.fixture
def auth_headers(user):
    return {"Authorization": f"Bearer {create_token(user.id)}"}
