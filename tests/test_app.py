from fastapi.testclient import TestClient
from chainport.server import app
from chainport.config import Settings
from chainport.chains.store import ChainStore
from chainport.errors import StoreUnavailableError
from unittest.mock import AsyncMock, MagicMock, patch
import pytest
from langchain_core.messages import AIMessage
from conftest import FakeProviderError

USER_INFO = {"uid": "user-1", "email": "alice@example.com", "displayName": "Alice"}

CHAIN_DATA = {
    "steps": [
        {"id": 1, "instructions": "uppercase the input", "requiredOutput": "uppercased text", "inputStatement": "hi"},
    ]
}


@pytest.fixture
def llm():
    # Mock chat model so no API key or network is needed
    mock_llm = MagicMock()
    mock_llm.ainvoke = AsyncMock(return_value=AIMessage(content="HELLO"))
    return mock_llm


@pytest.fixture
def llm_factory(llm):
    return MagicMock(return_value=llm)


@pytest.fixture
def settings(tmp_path):
    return Settings(db_path=str(tmp_path / "chains.db"), openai_api_key="sk-server")


@pytest.fixture
def client(settings, llm_factory):
    with patch("chainport.server.get_settings", return_value=settings), \
         patch("chainport.server.get_llm", llm_factory):
        with TestClient(app) as c:
            yield c


def create_chain(client, chain_data=CHAIN_DATA, user_info=USER_INFO):
    response = client.post(
        "/api/create-endpoint",
        json={"chainData": chain_data, "apiKey": "sk-chain", "userInfo": user_info},
    )
    assert response.status_code == 200
    return response.json()


def test_root(client):
    response = client.get("/")
    assert response.status_code == 200
    assert response.json() == {"status": "ok", "service": "chainport"}


def test_health(client):
    response = client.get("/health")
    assert response.json() == {"status": "healthy", "durableStore": True}


def test_create_endpoint(client):
    data = create_chain(client)
    assert data["message"] == "Chain endpoint created successfully"
    assert data["userName"] == "alice"
    assert data["endpointUrl"] == f"https://testserver/api/chains/alice/{data['portNumber']}/{data['id']}"
    assert "warning" not in data or data["warning"] is None


@pytest.mark.parametrize("body, status", [
    ({"chainData": CHAIN_DATA, "apiKey": "sk-chain"}, 401),
    ({"chainData": CHAIN_DATA, "apiKey": "sk-chain", "userInfo": {"uid": "user-1"}}, 401),
    ({"chainData": {"steps": []}, "apiKey": "sk-chain", "userInfo": USER_INFO}, 400),
    ({"chainData": CHAIN_DATA, "userInfo": USER_INFO}, 400),
])
def test_create_endpoint_rejects_bad_requests(client, body, status):
    response = client.post("/api/create-endpoint", json=body)
    assert response.status_code == status
    assert "error" in response.json()


def test_process(client, llm_factory):
    chain_id = create_chain(client)["id"]

    response = client.post(f"/api/process/{chain_id}", json={"input": "hello"})

    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert data["finalResult"] == "HELLO"
    assert data["stepResults"] == ["HELLO"]
    assert data["steps"] == [
        {"stepId": 1, "stepInstructions": "uppercase the input", "input": "hello", "result": "HELLO"}
    ]
    # the chain's own key is used, not the server's
    assert llm_factory.call_args.args[1] == "sk-chain"


def test_process_requires_input(client):
    chain_id = create_chain(client)["id"]

    response = client.post(f"/api/process/{chain_id}", json={})

    assert response.status_code == 400
    assert response.json() == {"error": "Input is required"}


def test_process_unknown_chain(client):
    response = client.post("/api/process/1700000000000-unknown0", json={"input": "hello"})
    assert response.status_code == 404
    assert "error" in response.json()


def test_process_returns_partial_results(client, llm):
    chain_data = {"steps": [
        {"id": 1, "instructions": "double the number", "requiredOutput": "a number"},
        {"id": 2, "instructions": "add 1", "requiredOutput": "a number"},
    ]}
    chain_id = create_chain(client, chain_data)["id"]
    llm.ainvoke.side_effect = [AIMessage(content="8"), FakeProviderError(500, "boom")]

    response = client.post(f"/api/process/{chain_id}", json={"input": "4"})

    assert response.status_code == 500
    data = response.json()
    assert data["error"].startswith("Error processing step 2:")
    assert len(data["partialResults"]) == 1
    assert data["partialResults"][0]["result"] == "8"


def test_get_chain_hides_credential(client):
    created = create_chain(client)

    response = client.get(f"/api/chains/alice/{created['portNumber']}/{created['id']}")

    assert response.status_code == 200
    chain = response.json()["chain"]
    assert chain["id"] == created["id"]
    assert chain["hasApiKey"] is True
    assert "credential" not in chain


def test_process_via_endpoint_url(client, llm):
    created = create_chain(client)

    response = client.post(f"/api/chains/alice/{created['portNumber']}/{created['id']}", json={"input": "hello"})

    assert response.status_code == 200
    assert response.json()["finalResult"] == "HELLO"
    system = llm.ainvoke.await_args.args[0][0]
    assert "VERIFICATION STEP" not in system.content


def test_chain_direct_lookup(client):
    chain_id = create_chain(client)["id"]
    slug = chain_id.split("-")[1]

    response = client.get(f"/api/chain-direct/{slug}")

    assert response.status_code == 200
    data = response.json()
    assert data["chainId"] == chain_id
    assert data["simpleEndpoint"] == f"https://testserver/api/process/{chain_id}"


def test_chain_direct_process(client):
    chain_id = create_chain(client)["id"]
    slug = chain_id.split("-")[1]

    response = client.post(f"/api/chain-direct/{slug}", json={"input": "hello"})

    assert response.status_code == 200
    assert response.json()["chainId"] == chain_id


def test_chain_direct_errors(client):
    assert client.get("/api/chain-direct/abc").status_code == 400
    assert client.get("/api/chain-direct/no-such-chain").status_code == 404


def test_user_chains(client):
    first = create_chain(client)["id"]
    second = create_chain(client)["id"]

    response = client.post("/api/user-chains", json={"userId": "user-1"})

    data = response.json()
    assert data["success"] is True
    assert {c["id"] for c in data["chains"]} == {first, second}
    assert all("credential" not in c for c in data["chains"])

    assert client.post("/api/user-chains", json={}).status_code == 400


def test_debug_chain(client):
    chain_id = create_chain(client)["id"]

    data = client.get(f"/api/debug-chain/{chain_id}").json()

    assert data["existsInMemory"] is True
    assert data["existsInStore"] is True
    assert data["userOwner"] == "user-1"


def test_step_tester(client, llm_factory):
    response = client.post("/api/chain-process", json={
        "inputStatement": "hi", "instructions": "uppercase", "requiredOutput": "text",
    })

    assert response.status_code == 200
    assert response.json() == {"result": "HELLO"}
    assert llm_factory.call_args.args[1] == "sk-server"


def test_step_tester_rejects_unknown_model(client):
    response = client.post("/api/chain-process", json={"instructions": "x", "model": "text-davinci-003"})
    assert response.status_code == 400


def test_step_tester_maps_provider_errors(client, llm):
    llm.ainvoke.side_effect = FakeProviderError(429)

    response = client.post("/api/chain-process", json={"instructions": "x", "apiKey": "sk-client"})

    assert response.status_code == 429
    assert response.json() == {"error": "Rate limit exceeded. Please try again later."}


def test_store_outage_keeps_chains_usable(settings, llm_factory):
    with patch("chainport.server.get_settings", return_value=settings), \
         patch("chainport.server.get_llm", llm_factory), \
         patch.object(ChainStore, "open", AsyncMock(side_effect=StoreUnavailableError("down"))):
        with TestClient(app) as c:
            assert c.get("/health").json()["durableStore"] is False

            created = c.post(
                "/api/create-endpoint",
                json={"chainData": CHAIN_DATA, "apiKey": "sk-chain", "userInfo": USER_INFO},
            ).json()
            assert created["warning"]
            assert "only stored in memory" in created["message"]

            response = c.post(f"/api/process/{created['id']}", json={"input": "hello"})
            assert response.json()["finalResult"] == "HELLO"


def test_process_without_body(client):
    chain_id = create_chain(client)["id"]

    response = client.post(f"/api/process/{chain_id}")

    assert response.status_code == 400
    assert "error" in response.json()


@pytest.mark.parametrize("kwargs", [
    {"content": b"{not json", "headers": {"Content-Type": "application/json"}},
    {"json": {"input": ["not", "a", "string"]}},
])
def test_process_rejects_malformed_body(client, kwargs):
    chain_id = create_chain(client)["id"]

    response = client.post(f"/api/process/{chain_id}", **kwargs)

    assert response.status_code == 400
    assert response.json()["error"].startswith("Invalid request")


def test_create_endpoint_without_body(client):
    response = client.post("/api/create-endpoint")

    assert response.status_code == 400
    assert "error" in response.json()


def test_model_construction_failure_names_first_step(client, llm_factory):
    chain_id = create_chain(client)["id"]
    llm_factory.side_effect = FakeProviderError(500, "boom")

    response = client.post(f"/api/process/{chain_id}", json={"input": "hello"})

    assert response.status_code == 500
    data = response.json()
    assert data["error"].startswith("Error processing step 1:")
    assert data["partialResults"] == []
