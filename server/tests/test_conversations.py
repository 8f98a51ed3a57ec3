import sqlite3

import pytest
from sqlalchemy.exc import IntegrityError

from iknoweverything.db import crud
from iknoweverything.db.models import Conversation, Message
from iknoweverything.db.session import get_session

BASE = "/api/v1/conversations"


def test_requires_authentication(client):
    resp = client.get(BASE)
    assert resp.status_code == 401
    assert resp.headers["WWW-Authenticate"] == "Bearer"


def test_create_and_list_most_recent_first(client, auth_headers, other_headers):
    a = client.post(BASE, params={"title": "Alpha"}, headers=auth_headers)
    assert a.status_code == 201
    b = client.post(BASE, params={"title": "Beta"}, headers=auth_headers).json()
    client.post(BASE, params={"title": "Someone else's"}, headers=other_headers)

    titles = [c["title"] for c in client.get(BASE, headers=auth_headers).json()]
    assert titles == ["Beta", "Alpha"]

    # Renaming touches updated_at and moves the conversation to the top
    renamed = client.patch(f"{BASE}/{a.json()['id']}", params={"title": "Alpha v2"}, headers=auth_headers)
    assert renamed.status_code == 200
    assert renamed.json()["title"] == "Alpha v2"
    titles = [c["title"] for c in client.get(BASE, headers=auth_headers).json()]
    assert titles == ["Alpha v2", "Beta"]
    assert b["id"] in [c["id"] for c in client.get(BASE, headers=auth_headers).json()]


def test_title_validation(client, auth_headers):
    assert client.post(BASE, params={"title": ""}, headers=auth_headers).status_code == 422
    assert client.post(BASE, params={"title": "x" * 201}, headers=auth_headers).status_code == 422


def test_foreign_conversation_is_not_found(client, auth_headers, other_headers):
    conv = client.post(BASE, headers=auth_headers).json()
    url = f"{BASE}/{conv['id']}"
    assert client.patch(url, params={"title": "mine now"}, headers=other_headers).status_code == 404
    assert client.delete(url, headers=other_headers).status_code == 404
    assert client.get(f"{url}/messages", headers=other_headers).status_code == 404
    assert client.get(f"{url}/messages", headers=auth_headers).status_code == 200


def test_unknown_conversation(client, auth_headers):
    assert client.delete(f"{BASE}/does-not-exist", headers=auth_headers).status_code == 404


def test_messages_oldest_first(client, provider, auth_headers):
    conversation_id = client.post("/api/v1/chat", json={"message": "q1"}, headers=auth_headers).json()["conversationId"]
    provider.reply = "a2"
    client.post("/api/v1/chat", json={"message": "q2", "conversationId": conversation_id}, headers=auth_headers)

    msgs = client.get(f"{BASE}/{conversation_id}/messages", headers=auth_headers).json()
    assert [m["content"] for m in msgs] == ["q1", "Paris is the capital of France.", "q2", "a2"]
    assert all(m["conversation_id"] == conversation_id for m in msgs)
    assert "user_id" not in msgs[0]


def test_delete_removes_messages(client, auth_headers, db_path):
    conversation_id = client.post("/api/v1/chat", json={"message": "remember me"}, headers=auth_headers).json()["conversationId"]

    resp = client.delete(f"{BASE}/{conversation_id}", headers=auth_headers)
    assert resp.status_code == 200
    assert resp.json() == {"status": "deleted", "id": conversation_id}

    assert client.get(f"{BASE}/{conversation_id}/messages", headers=auth_headers).status_code == 404
    assert client.get(BASE, headers=auth_headers).json() == []

    with sqlite3.connect(db_path) as conn:
        (count,) = conn.execute(
            "SELECT COUNT(*) FROM messages WHERE conversation_id = ?", (conversation_id,)
        ).fetchone()
    assert count == 0


def test_models_endpoint(client):
    data = client.get("/api/v1/models").json()
    assert data == {
        "providers": {
            "fake": {"name": "Fake", "models": [{"id": "fake-1", "name": "Fake One", "context_length": 1000}]}
        }
    }


def test_health(client):
    assert client.get("/healthz").json() == {"status": "ok"}
    assert client.get("/").json()["service"] == "iknoweverything"


def test_role_is_constrained_in_the_database(client, user_id, run_async):
    async def insert_system_message():
        async with get_session() as session:
            conv = await crud.create_conversation(session, user_id)
            session.add(Message(conversation_id=conv.id, user_id=user_id, role="system", content="be nice"))
            await session.flush()

    with pytest.raises(IntegrityError):
        run_async(insert_system_message)


def test_deleting_conversation_row_cascades_to_messages(client, user_id, run_async, db_path):
    async def create_with_messages():
        async with get_session() as session:
            conv = await crud.create_conversation(session, user_id)
            await crud.add_message(session, conv, "user", "hello")
            await crud.add_message(session, conv, "assistant", "hi there")
            return conv.id

    conversation_id = run_async(create_with_messages)

    async def delete_row_only():
        async with get_session() as session:
            conv = await session.get(Conversation, conversation_id)
            await session.delete(conv)

    run_async(delete_row_only)

    with sqlite3.connect(db_path) as conn:
        (count,) = conn.execute(
            "SELECT COUNT(*) FROM messages WHERE conversation_id = ?", (conversation_id,)
        ).fetchone()
    assert count == 0
