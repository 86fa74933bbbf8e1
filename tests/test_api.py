import json
from datetime import datetime, timedelta

import pytest
import requests
from fastapi.testclient import TestClient

import chat
import main
from auth import create_token
from conftest import make_user
from logic.seeding import seed_known_topics
from logic.store import Repository
from models.progress import Progress
from models.user import User

SIGNUP = {
    "fullname": "Ada Lovelace",
    "email": "ada@school.edu",
    "password": "supersecret",
    "phone": "9876543210",
    "state": "Kerala",
    "username": "ada",
    "school10": "Central School",
    "marks10": "92.5",
}


class FakeResponse:
    def __init__(self, payload, status_code=200):
        self.payload = payload
        self.status_code = status_code
        self.text = json.dumps(payload)

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.exceptions.HTTPError(f"{self.status_code} error")

    def json(self):
        return self.payload


@pytest.fixture
def chatbot(monkeypatch):
    calls = []

    def fake_post(url, json=None, timeout=None):
        calls.append({"url": url, "json": json})
        return FakeResponse({"fulfillmentText": f"echo: {json['queryResult']['queryText']}"})

    monkeypatch.setattr(chat.requests, "post", fake_post)
    return calls


@pytest.fixture
def seeded(db):
    return seed_known_topics(db, ["magnetism"])


# --------- Auth ---------
def test_signup_and_signin(client):
    r = client.post("/api/signup", json=SIGNUP)
    assert r.status_code == 200
    assert r.json() == {"message": "Successfully signed up"}

    r = client.post("/api/signin", json={"username": "ada", "password": "supersecret"})
    assert r.status_code == 200
    token = r.json()["token"]

    r = client.get("/api/profile", headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 200
    profile = r.json()
    assert profile["username"] == "ada"
    assert profile["marks10"] == 92.5
    assert profile["totalXP"] == 0 and profile["streak"] == 0
    assert "password" not in profile


@pytest.mark.parametrize("field,value,fragment", [
    ("email", "ada@gmail.com", ".edu"),
    ("email", "not-an-email", "Invalid email"),
    ("phone", "12345", "10 digits"),
    ("password", "short", "at least 8"),
    ("password", "p" * 80, "72 bytes"),
    ("password", "é" * 40, "72 bytes"),
    ("marks10", "101", "cannot exceed 100"),
    ("marks10", "abc", "valid percentage"),
    ("fullname", "Al", "at least 3"),
])
def test_signup_validation(client, field, value, fragment):
    r = client.post("/api/signup", json=dict(SIGNUP, **{field: value}))
    assert r.status_code == 400
    errors = r.json()["errors"]
    assert errors[0]["path"] == field
    assert fragment in errors[0]["message"]


def test_signup_optional_fields(client):
    r = client.post("/api/signup", json=dict(SIGNUP, school12="", stream12="", marks12=""))
    assert r.status_code == 200
    r = client.post("/api/signup", json=dict(SIGNUP, username="bob", email="bob@school.edu", marks12="180"))
    assert r.status_code == 400
    assert r.json()["errors"][0]["path"] == "marks12"


@pytest.mark.parametrize("field", ["email", "username"])
def test_signup_duplicate(client, field):
    assert client.post("/api/signup", json=SIGNUP).status_code == 200
    other = dict(SIGNUP, email="other@school.edu", username="other")
    other[field] = SIGNUP[field]

    r = client.post("/api/signup", json=other)

    assert r.status_code == 400
    assert r.json() == {"errors": [{"path": field, "message": f"This {field} is already registered"}]}


@pytest.mark.parametrize("field", ["email", "username"])
def test_signup_duplicate_lost_race(client, db, monkeypatch, field):
    # Another signup commits between the uniqueness check and the insert
    taken = {"username": "other", "email": "other@school.edu", field: SIGNUP[field]}
    make_user(db, **taken)
    monkeypatch.setattr(main, "_registered_field", lambda users, data: None)

    r = client.post("/api/signup", json=SIGNUP)

    assert r.status_code == 400
    assert r.json() == {"errors": [{"path": field, "message": f"This {field} is already registered"}]}
    assert Repository(db, User).count_documents() == 1


def test_signin_failures(client):
    client.post("/api/signup", json=SIGNUP)

    r = client.post("/api/signin", json={"username": "nobody", "password": "supersecret"})
    assert r.status_code == 403
    assert r.json()["errors"][0]["path"] == "username"

    r = client.post("/api/signin", json={"username": "ada", "password": "wrong-password"})
    assert r.status_code == 403
    assert r.json()["errors"][0]["path"] == "password"


def test_missing_and_invalid_token(client):
    r = client.get("/api/profile")
    assert r.status_code == 401
    assert r.json() == {"errors": [{"path": "auth", "message": "No token provided"}]}

    r = client.get("/api/profile", headers={"Authorization": "Bearer not-a-token"})
    assert r.status_code == 403
    assert r.json()["errors"][0]["message"] == "Invalid token"


# --------- Quiz ---------
def test_topic_flow(client, seeded, auth_headers):
    r = client.post("/api/topic/magnetism", json={"isCorrect": None}, headers=auth_headers)
    assert r.status_code == 200
    first = r.json()
    assert first["id"].startswith("magnetism-q")
    assert all(set(o) == {"value", "description", "imageUrl"} for o in first["options"])

    answer = {"isCorrect": True, "questionId": first["id"], "xp": 10,
              "userAnswer": first["correctAnswer"], "questionNumber": 1}
    r = client.post("/api/topic/Magnetism", json=answer, headers=auth_headers)
    assert r.status_code == 200
    assert r.json()["id"] != first["id"]

    profile = client.get("/api/profile", headers=auth_headers).json()
    assert profile["totalXP"] == 10
    assert profile["dailyXP"] == 10
    assert profile["streak"] == 1

    history = client.get("/api/progress", headers=auth_headers).json()
    assert [h["questionId"] for h in history["history"]] == [first["id"]]
    assert history["history"][0]["isCorrect"] is True


def test_topic_session_complete(client, seeded, auth_headers):
    r = client.post("/api/topic/magnetism",
                    json={"isCorrect": True, "questionId": "magnetism-q1", "xp": 7, "questionNumber": 10},
                    headers=auth_headers)
    assert r.status_code == 200
    body = r.json()
    assert body["completed"] is True
    # The final answer is still recorded before completion
    assert body["totalXp"] == 7


def test_topic_not_found(client, auth_headers):
    r = client.post("/api/topic/chemistry", json={"isCorrect": None}, headers=auth_headers)
    assert r.status_code == 404
    assert r.json() == {"errors": [{"path": "questions", "message": "No questions available for this topic"}]}


@pytest.mark.parametrize("body,path", [
    ({"questionId": "magnetism-q1"}, "isCorrect"),
    ({"isCorrect": "yes", "questionId": "magnetism-q1", "xp": 10}, "isCorrect"),
    ({"isCorrect": True, "questionId": "magnetism-q1", "xp": -5}, "xp"),
    ({"isCorrect": None, "questionNumber": -1}, "questionNumber"),
])
def test_topic_submission_validation(client, db, seeded, auth_headers, user, body, path):
    r = client.post("/api/topic/magnetism", json=body, headers=auth_headers)
    assert r.status_code == 400
    assert r.json()["errors"][0]["path"] == path

    # Rejected submissions leave no trace
    assert Repository(db, Progress).count_documents() == 0
    db.refresh(user)
    assert (user.streak, user.daily_xp, user.total_xp) == (0, 0, 0)


def test_list_topics(client, seeded):
    topics = {t["topic"]: t["questions"] for t in client.get("/api/topics").json()}
    assert topics["magnetism"] == 5
    assert topics["light"] == 0


def test_lesson_complete(client, auth_headers):
    r = client.post("/api/lesson/complete", json={"xp": 20}, headers=auth_headers)
    assert r.status_code == 200
    assert r.json() == {"message": "Lesson completed", "streak": 1, "dailyXP": 20, "totalXP": 20, "newDay": True}

    r = client.post("/api/lesson/complete", json={"xp": 5}, headers=auth_headers)
    assert r.json()["dailyXP"] == 25
    assert r.json()["streak"] == 1


def test_token_for_deleted_user(client, schema):
    headers = {"Authorization": f"Bearer {create_token(404)}"}
    r = client.post("/api/lesson/complete", json={"xp": 5}, headers=headers)
    assert r.status_code == 404
    assert r.json()["errors"][0]["path"] == "user"


# --------- Leaderboard & Profile ---------
def test_leaderboard(client, db, user, auth_headers):
    now = datetime.now()
    make_user(db, "grace", total_xp=300, daily_xp=40, last_progress_date=now)
    make_user(db, "linus", total_xp=500, daily_xp=90, last_progress_date=now - timedelta(days=2))

    r = client.get("/api/leaderboard", headers=auth_headers)
    assert r.status_code == 200
    entries = r.json()["entries"]
    assert [e["username"] for e in entries] == ["linus", "grace", "ada"]
    assert [e["rank"] for e in entries] == [1, 2, 3]
    assert entries[0]["dailyXP"] == 0

    daily = client.get("/api/leaderboard?period=daily", headers=auth_headers).json()["entries"]
    assert [e["username"] for e in daily] == ["grace"]

    assert len(client.get("/api/leaderboard?limit=1", headers=auth_headers).json()["entries"]) == 1
    assert client.get("/api/leaderboard?period=weekly", headers=auth_headers).status_code == 400


def test_update_avatar(client, auth_headers):
    r = client.put("/api/profile/avatar", json={"avatar": " fox.png "}, headers=auth_headers)
    assert r.status_code == 200
    assert r.json()["avatar"] == "fox.png"
    assert client.get("/api/profile", headers=auth_headers).json()["avatar"] == "fox.png"


# --------- Chat ---------
def test_chat_proxy(client, auth_headers, chatbot):
    r = client.post("/api/chat", json={"message": "What is a magnet?"}, headers=auth_headers)
    assert r.status_code == 200
    assert r.json() == {"response": "echo: What is a magnet?"}
    assert chatbot[0]["url"] == "http://chatbot.test/webhook"
    assert chatbot[0]["json"]["queryResult"]["queryText"] == "What is a magnet?"


def test_chat_requires_message(client, auth_headers, chatbot):
    r = client.post("/api/chat", json={}, headers=auth_headers)
    assert r.status_code == 400
    assert r.json() == {"errors": [{"path": "message", "message": "Message is required"}]}
    assert chatbot == []


def test_chat_upstream_failure(client, auth_headers, monkeypatch):
    def boom(*args, **kwargs):
        raise requests.exceptions.ConnectionError("down")

    monkeypatch.setattr(chat.requests, "post", boom)
    r = client.post("/api/chat", json={"message": "hi"}, headers=auth_headers)
    assert r.status_code == 502
    assert r.json()["errors"][0]["message"] == "Failed to get AI response"


def test_chat_empty_fulfillment(monkeypatch):
    monkeypatch.setattr(chat.requests, "post", lambda *a, **kw: FakeResponse({}))
    assert chat.ask_chatbot("hi") == chat.NO_RESPONSE


def test_chat_websocket(client, chatbot):
    with client.websocket_connect("/ws/chat") as ws:
        assert "Connected" in ws.receive_json()["message"]

        ws.send_text(json.dumps({"message": "hello", "intent": "greeting"}))
        reply = ws.receive_json()
        assert reply["response"] == "echo: hello"
        assert reply["timestamp"]
        assert chatbot[0]["json"]["queryResult"]["intent"] == {"displayName": "greeting"}

        ws.send_text("not json")
        assert ws.receive_json() == {"error": "No message provided"}

        ws.send_text(json.dumps({"queryText": "again"}))
        assert ws.receive_json()["response"] == "echo: again"


def test_startup_creates_schema_and_seeds(schema):
    with TestClient(main.app) as c:
        topics = {t["topic"]: t["questions"] for t in c.get("/api/topics").json()}
    assert topics["magnetism"] == 5
    assert topics["electricity"] == 4
