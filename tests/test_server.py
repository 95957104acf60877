import json

import pytest
from starlette.testclient import TestClient

from movie_agent.agent_card import build_agent_card
from movie_agent.request_handler import RequestHandler
from movie_agent.server import create_app
from movie_agent.task_store import InMemoryTaskStore

from conftest import FakeLLM, completion, rpc, send_params


@pytest.fixture
def make_client(config, make_expert):
    def factory(responses):
        expert = make_expert(FakeLLM(responses))
        handler = RequestHandler(expert, InMemoryTaskStore(), build_agent_card(config))
        return TestClient(create_app(handler))

    return factory


def test_health(make_client):
    response = make_client([]).get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_agent_card(make_client, config):
    response = make_client([]).get("/.well-known/agent.json")

    assert response.status_code == 200
    card = response.json()
    assert card["name"] == "Movie Agent"
    assert card["url"] == config.public_url
    assert card["capabilities"]["streaming"] is True


def test_message_send(make_client):
    client = make_client([completion("Heat came out in 1995.\nCOMPLETED")])

    response = client.post("/", json=rpc("message/send", send_params("When did Heat come out?")))

    assert response.status_code == 200
    body = response.json()
    assert body["result"]["status"]["state"] == "completed"


def test_invalid_json_is_a_parse_error(make_client):
    response = make_client([]).post(
        "/", content=b"{not json", headers={"content-type": "application/json"}
    )

    assert response.status_code == 400
    assert response.json()["error"]["code"] == -32700


def test_message_stream_is_server_sent_events(make_client):
    client = make_client([completion("Alien is from 1979.\nCOMPLETED")])

    with client.stream(
        "POST", "/", json=rpc("message/stream", send_params("When is Alien from?"))
    ) as response:
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/event-stream")
        body = "".join(response.iter_text())

    frames = [f for f in body.split("\n\n") if f.strip()]
    assert len(frames) == 3
    assert all(f.startswith("id: ") for f in frames)
    payloads = [json.loads(f.split("data: ", 1)[1]) for f in frames]
    assert payloads[-1]["result"]["final"] is True
    assert payloads[-1]["result"]["status"]["state"] == "completed"


def test_stream_rejection_is_a_single_response(make_client):
    client = make_client([])

    response = client.post(
        "/", json=rpc("message/stream", send_params("Hi", task_id="missing"))
    )

    assert response.status_code == 200
    assert response.json()["error"]["code"] == -32001
