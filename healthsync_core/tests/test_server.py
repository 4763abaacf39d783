from fastapi.testclient import TestClient

from healthsync_core.server.app import create_app
from healthsync_core.server.knowledge_base import DEFAULT_ANSWER, get_health_advice


class SettingsStub:
    frontend_url = "http://localhost:8081"
    chat_model = "gpt-4o-mini"


def create_test_client() -> TestClient:
    return TestClient(create_app(SettingsStub()))


def test_health_endpoint():
    client = create_test_client()
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "OK", "message": "HealthSync API is running"}


def test_chat_answers_from_last_message():
    client = create_test_client()
    payload = {
        "messages": [
            {"role": "system", "content": "sys"},
            {"role": "user", "content": "I had a fever yesterday"},
            {"role": "assistant", "content": "..."},
            {"role": "user", "content": "Now I have a bad HEADACHE"},
        ],
        "model": "gpt-4o-mini",
        "temperature": 0.7,
        "max_tokens": 500,
    }
    resp = client.post("/api/chat", json=payload)
    assert resp.status_code == 200
    content = resp.json()["choices"][0]["message"]["content"]
    assert content.startswith("For a headache")


def test_chat_falls_back_to_default():
    client = create_test_client()
    resp = client.post("/api/chat", json={"messages": [{"role": "user", "content": "my knee hurts"}]})
    assert resp.status_code == 200
    assert resp.json()["choices"][0]["message"]["content"] == DEFAULT_ANSWER


def test_chat_requires_messages_array():
    client = create_test_client()
    for body in ({}, {"messages": "hello"}):
        resp = client.post("/api/chat", json=body)
        assert resp.status_code == 400
        assert resp.json() == {"error": {"message": "Invalid request: messages array is required."}}


def test_keyword_order_first_match_wins():
    # "cold" 在表中排在 "cough" 之前
    assert get_health_advice("a cold and a cough").startswith("For a cold")
    assert get_health_advice("SORE THROAT since monday").startswith("For a sore throat")
