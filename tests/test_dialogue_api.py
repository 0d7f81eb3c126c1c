from __future__ import annotations

import time
from typing import Any, Dict, Iterator

import pytest
from fastapi.testclient import TestClient

from apps.dialogue_api.app import create_app


def _agents() -> list[Dict[str, Any]]:
    return [
        {"id": "A", "name": "Analyst", "system_prompt": "You analyse."},
        {"id": "B", "name": "Builder <b>", "system_prompt": "You build."},
    ]


@pytest.fixture
def api_client(router_factory) -> Iterator[TestClient]:
    app = create_app(router=router_factory())
    # Entering the client keeps one event loop alive across requests so
    # background turns keep running between calls.
    with TestClient(app) as client:
        yield client


def _create(client: TestClient, **config: Any) -> Dict[str, Any]:
    body = {
        "api_key": "AIza-test",
        "agents": _agents(),
        "topic": "Launch plan",
        "max_turns": 1,
        "turn_delay_seconds": 0,
    }
    body.update(config)
    response = client.post("/api/conversations", json={"config": body})
    assert response.status_code == 200
    return response.json()


def _wait_for_status(client: TestClient, conversation_id: str, status: str) -> Dict[str, Any]:
    deadline = time.monotonic() + 5
    while time.monotonic() < deadline:
        payload = client.get(f"/api/conversations/{conversation_id}").json()
        if payload["status"] == status and (status != "completed" or payload["messages"][-1]["sender_id"] == "SUMMARY"):
            return payload
        time.sleep(0.02)
    raise AssertionError(f"conversation never reached {status}")


def test_presets_and_providers_are_listed(api_client: TestClient) -> None:
    presets = api_client.get("/api/presets").json()
    assert [preset["id"] for preset in presets] == ["saas-planning", "product-dev", "love-advice", "user-custom"]

    providers = api_client.get("/api/providers").json()
    assert {provider["provider"] for provider in providers} >= {"gemini", "openai", "groq"}

    resolved = api_client.get("/api/providers/resolve", params={"api_key": "pplx-abc"}).json()
    assert resolved["provider"] == "perplexity"
    assert resolved["default_model"] == resolved["models"][0]["id"]


def test_create_from_preset_redacts_key(api_client: TestClient) -> None:
    response = api_client.post("/api/conversations", json={"preset_id": "product-dev", "api_key": "sk-secret"})

    payload = response.json()
    assert payload["status"] == "idle"
    assert payload["config"]["api_key"] == "********"
    assert payload["config"]["provider"] == "openai"
    assert len(payload["config"]["agents"]) == 5


def test_full_conversation_runs_to_summary(api_client: TestClient) -> None:
    conversation_id = _create(api_client)["conversation_id"]

    started = api_client.post(f"/api/conversations/{conversation_id}/start").json()
    assert started["status"] in {"active", "completed"}
    assert started["messages"][0]["text"] == 'Discussion started: "Launch plan"'

    finished = _wait_for_status(api_client, conversation_id, "completed")
    assert finished["turn_count"] == 2
    assert finished["summarized"] is True
    assert [message["sender_id"] for message in finished["messages"]][:3] == ["SYSTEM", "A", "B"]


def test_start_without_key_reports_error(api_client: TestClient) -> None:
    conversation_id = _create(api_client, api_key=None)["conversation_id"]

    payload = api_client.post(f"/api/conversations/{conversation_id}/start").json()

    assert payload["status"] == "error"
    assert payload["messages"][-1]["sender_id"] == "SYSTEM"


def test_blank_message_is_rejected(api_client: TestClient) -> None:
    conversation_id = _create(api_client)["conversation_id"]

    response = api_client.post(f"/api/conversations/{conversation_id}/messages", json={"text": "  "})

    assert response.status_code == 400


def test_unknown_conversation_is_404(api_client: TestClient) -> None:
    assert api_client.get("/api/conversations/missing").status_code == 404
    assert api_client.post("/api/conversations/missing/start").status_code == 404


def test_config_update_rejected_while_active(api_client: TestClient) -> None:
    conversation_id = _create(api_client, turn_delay_seconds=30)["conversation_id"]
    api_client.post(f"/api/conversations/{conversation_id}/start")

    body = {"api_key": "AIza-test", "agents": _agents(), "topic": "New topic"}
    response = api_client.put(f"/api/conversations/{conversation_id}/config", json=body)
    assert response.status_code == 400

    stopped = api_client.post(f"/api/conversations/{conversation_id}/stop").json()
    assert stopped["status"] == "paused"
    response = api_client.put(f"/api/conversations/{conversation_id}/config", json=body)
    assert response.status_code == 200
    assert response.json()["config"]["topic"] == "New topic"

    reset = api_client.post(f"/api/conversations/{conversation_id}/reset").json()
    assert reset["status"] == "idle"
    assert reset["messages"] == []


def test_logs_are_exported_as_text_and_escaped_html(api_client: TestClient) -> None:
    conversation_id = _create(api_client)["conversation_id"]
    api_client.post(f"/api/conversations/{conversation_id}/start")
    _wait_for_status(api_client, conversation_id, "completed")

    text_log = api_client.get(f"/api/conversations/{conversation_id}/log.txt")
    assert text_log.status_code == 200
    assert text_log.text.startswith("Topic: Launch plan")
    assert "Analyst: A reply 1" in text_log.text
    assert "Summary Agent:" in text_log.text

    html_log = api_client.get(f"/api/conversations/{conversation_id}/log.html")
    assert html_log.headers["content-type"].startswith("text/html")
    assert "Builder &lt;b&gt;" in html_log.text
    assert "Builder <b>" not in html_log.text


def test_config_read_edit_write_keeps_api_key(api_client: TestClient) -> None:
    created = _create(api_client)
    conversation_id = created["conversation_id"]

    config = dict(created["config"])
    assert config["api_key"] == "********"
    config["topic"] = "Edited topic"
    response = api_client.put(f"/api/conversations/{conversation_id}/config", json=config)
    assert response.status_code == 200

    orchestrator = api_client.app.state.registry.get(conversation_id)
    assert orchestrator.config.effective_api_key() == "AIza-test"

    resolved = api_client.post(f"/api/conversations/{conversation_id}/start").json()
    assert resolved["messages"][0]["text"] == 'Discussion started: "Edited topic"'


def test_conversations_can_be_listed_and_deleted(api_client: TestClient) -> None:
    conversation_id = _create(api_client, turn_delay_seconds=30)["conversation_id"]
    api_client.post(f"/api/conversations/{conversation_id}/start")

    listed = api_client.get("/api/conversations").json()
    assert [item["conversation_id"] for item in listed] == [conversation_id]

    assert api_client.delete(f"/api/conversations/{conversation_id}").status_code == 204
    assert api_client.get(f"/api/conversations/{conversation_id}").status_code == 404
    assert api_client.get("/api/conversations").json() == []
    assert api_client.delete(f"/api/conversations/{conversation_id}").status_code == 404
