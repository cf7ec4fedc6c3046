"""
Tests for the HTTP API
"""

from unittest.mock import AsyncMock, Mock

import pytest
from fastapi.testclient import TestClient

from modeljudge.auth import AuthService, TokenIssuer
from modeljudge.errors import PersistenceError
from modeljudge.judge import LengthJudge
from modeljudge.mailer import Mailer
from modeljudge.orchestrator import ConversationOrchestrator
from modeljudge.server import create_app
from modeljudge.settings import Settings
from conftest import make_gemini, make_gpt


@pytest.fixture
def mailer():
    return Mock(spec=Mailer)


@pytest.fixture
def auth(user_store):
    return AuthService(user_store, TokenIssuer("test-secret"), public_base_url="http://testserver")


@pytest.fixture
def orchestrator(thread_store):
    sources = (make_gpt("4"), make_gemini("Gemini API key not configured yet."))
    return ConversationOrchestrator(sources, LengthJudge(), thread_store)


@pytest.fixture
def client(orchestrator, auth, mailer):
    app = create_app(Settings(persist_verdicts=False), orchestrator=orchestrator, auth=auth, mailer=mailer)
    return TestClient(app)


def register(client, mailer, email="alice@example.com", password="s3cret-pw"):
    """Sign up, follow the emailed link and log in; returns auth headers"""
    res = client.post("/auth/signup", json={"name": "Alice", "email": email, "password": password})
    assert res.status_code == 201

    verify_url = mailer.send_verification_email.call_args.args[2]
    res = client.get(verify_url)
    assert res.status_code == 200

    res = client.post("/auth/login", json={"email": email, "password": password})
    assert res.status_code == 200
    return {"Authorization": f"Bearer {res.json()['token']}"}


def test_health(client):
    res = client.get("/api/health")

    assert res.status_code == 200
    assert res.json()["status"] == "ok"


def test_signup_sends_verification_email(client, mailer):
    res = client.post("/auth/signup", json={"name": "Alice", "email": "alice@example.com", "password": "s3cret-pw"})

    assert res.status_code == 201
    to, name, url = mailer.send_verification_email.call_args.args
    assert to == "alice@example.com"
    assert name == "Alice"
    assert url.startswith("http://testserver/auth/verify?token=")


def test_duplicate_signup_conflicts(client):
    body = {"name": "Alice", "email": "alice@example.com", "password": "s3cret-pw"}
    client.post("/auth/signup", json=body)

    res = client.post("/auth/signup", json=body)

    assert res.status_code == 409


def test_login_rejected_until_verified(client):
    client.post("/auth/signup", json={"name": "Alice", "email": "alice@example.com", "password": "s3cret-pw"})

    res = client.post("/auth/login", json={"email": "alice@example.com", "password": "s3cret-pw"})

    assert res.status_code == 403


def test_login_with_bad_password(client, mailer):
    register(client, mailer)

    res = client.post("/auth/login", json={"email": "alice@example.com", "password": "nope-nope"})

    assert res.status_code == 401


def test_verify_with_bad_token(client):
    assert client.get("/auth/verify", params={"token": "nope"}).status_code == 400


def test_forgot_and_reset_password(client, mailer):
    register(client, mailer)

    res = client.post("/auth/forgot-password", json={"email": "alice@example.com"})
    assert res.status_code == 200
    reset_url = mailer.send_password_reset_email.call_args.args[2]
    token = reset_url.split("token=", 1)[1]

    res = client.post("/auth/reset-password", json={"token": token, "password": "brand-new-pw"})
    assert res.status_code == 200

    res = client.post("/auth/login", json={"email": "alice@example.com", "password": "brand-new-pw"})
    assert res.status_code == 200


def test_forgot_password_unknown_email_looks_the_same(client, mailer):
    res = client.post("/auth/forgot-password", json={"email": "nobody@example.com"})

    assert res.status_code == 200
    mailer.send_password_reset_email.assert_not_called()


@pytest.mark.parametrize("headers", [{}, {"Authorization": "Bearer garbage"}])
def test_chat_requires_valid_token(client, headers):
    res = client.post("/api/chat", json={"question": "hi"}, headers=headers)

    assert res.status_code == 401


def test_chat_history_thread_and_delete(client, mailer):
    headers = register(client, mailer)

    res = client.post("/api/chat", json={"question": "What is 2+2?"}, headers=headers)
    assert res.status_code == 200
    body = res.json()
    assert body["bestAnswer"] == "4"
    assert body["chosenModel"] == "gpt-4o-mini"
    assert body["modelsConsidered"][1] == {
        "model": "gemini-2.5-flash",
        "answer": "Gemini API key not configured yet.",
    }
    root_id = body["rootId"]

    res = client.post(
        "/api/chat",
        json={"question": "And 3+3?", "rootConversationId": root_id},
        headers=headers,
    )
    assert res.json()["rootId"] == root_id

    history = client.get("/api/history", headers=headers).json()["items"]
    assert [item["id"] for item in history] == [root_id]
    assert history[0]["question"] == "What is 2+2?"
    assert history[0]["model"] == "gpt-4o-mini"
    assert "createdAt" in history[0]

    thread = client.get(f"/api/thread/{root_id}", headers=headers).json()["items"]
    assert [item["question"] for item in thread] == ["What is 2+2?", "And 3+3?"]

    res = client.delete(f"/api/thread/{root_id}", headers=headers)
    assert res.status_code == 200
    assert res.json() == {"success": True}

    assert client.delete(f"/api/thread/{root_id}", headers=headers).status_code == 404
    assert client.get(f"/api/thread/{root_id}", headers=headers).json()["items"] == []


def test_other_users_cannot_delete_a_thread(client, mailer):
    alice = register(client, mailer, "alice@example.com")
    bob = register(client, mailer, "bob@example.com")
    root_id = client.post("/api/chat", json={"question": "mine"}, headers=alice).json()["rootId"]

    assert client.delete(f"/api/thread/{root_id}", headers=bob).status_code == 404
    assert client.get(f"/api/thread/{root_id}", headers=bob).json()["items"] == []
    assert len(client.get(f"/api/thread/{root_id}", headers=alice).json()["items"]) == 1


def test_empty_question_is_a_bad_request(client, mailer):
    headers = register(client, mailer)

    res = client.post("/api/chat", json={"question": "   "}, headers=headers)

    assert res.status_code == 400


def test_persistence_failure_is_a_generic_server_error(auth, mailer):
    orchestrator = Mock(spec=ConversationOrchestrator)
    orchestrator.submit_question = AsyncMock(side_effect=PersistenceError("disk I/O error"))
    app = create_app(Settings(persist_verdicts=False), orchestrator=orchestrator, auth=auth, mailer=mailer)
    client = TestClient(app)
    token = auth.tokens.issue(1)

    res = client.post("/api/chat", json={"question": "q"}, headers={"Authorization": f"Bearer {token}"})

    assert res.status_code == 500
    assert res.json()["detail"] == "Internal server error"
