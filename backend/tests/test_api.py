import pytest
from fastapi.testclient import TestClient

from helpers import CHAT_HOST, VISION_HOST, RecordingTransport, briefing_json, chat_response, user_message, vision_response
from stockdesk.core.constants import ERR_EMPTY_SELECTION, ERR_NO_HOLDINGS
from stockdesk.core.storage import MemoryStore
from stockdesk.deps import DashboardState, get_state
from stockdesk.main import app


def default_handler(request):
    if request.url.host == VISION_HOST:
        return vision_response('[{"symbol": "AVGO", "qty": 12, "cost": 3621.02, "gain_pct": "+15.91%"}]')
    if "AMD" in user_message(request):
        return chat_response("not json at all")
    if "NVDA" in user_message(request):
        return chat_response(briefing_json("NVDA"))
    return chat_response("## 📊 report")


@pytest.fixture
def transport():
    return RecordingTransport(default_handler)


@pytest.fixture
def state(config, transport):
    return DashboardState(config, MemoryStore(), transport=transport)


@pytest.fixture
def client(state):
    app.dependency_overrides[get_state] = lambda: state
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def test_health(client):
    assert client.get("/health").json() == {"status": "healthy"}


def test_watchlist_flow(client):
    body = client.get("/api/v1/watchlist").json()
    assert body["selected"] == ["NVDA"]
    assert "SPY" in body["tickers"]

    body = client.post("/api/v1/watchlist", json={"symbol": "msft"}).json()
    assert body["tickers"][-1] == "MSFT"

    toggled = client.post("/api/v1/watchlist/msft/toggle").json()
    assert toggled["symbol"] == "MSFT"
    assert toggled["selected"] is True
    assert toggled["watchlist"]["selected"] == ["NVDA", "MSFT"]

    body = client.delete("/api/v1/watchlist/MSFT").json()
    assert "MSFT" not in body["tickers"]
    assert body["selected"] == ["NVDA"]


def test_unknown_ticker_is_404(client):
    assert client.delete("/api/v1/watchlist/GME").status_code == 404
    assert client.post("/api/v1/watchlist/GME/toggle").status_code == 404


def test_credentials_are_masked(client):
    assert client.get("/api/v1/credentials").json()["chat_api_key_set"] is False

    body = client.put("/api/v1/credentials", json={"chat_api_key": "pplx-abcd1234"}).json()

    assert body["chat_api_key_set"] is True
    assert body["chat_api_key_hint"] == "...1234"
    assert "pplx-abcd1234" not in str(body)


def test_preferences_update(client):
    body = client.put("/api/v1/preferences", json={"language": "en", "dark_mode": True}).json()

    assert body == {"language": "EN", "dark_mode": True}
    assert client.get("/api/v1/chart/nvda").json()["theme"] == "dark"
    assert client.get("/api/v1/chart/nvda?dark_mode=false").json()["theme"] == "light"


def test_briefing_requires_key_and_selection(client, transport):
    response = client.post("/api/v1/briefing")
    assert response.status_code == 400

    client.put("/api/v1/credentials", json={"chat_api_key": "pplx-test"})
    client.post("/api/v1/watchlist/NVDA/toggle")
    response = client.post("/api/v1/briefing")

    assert response.status_code == 400
    assert response.json()["detail"] == ERR_EMPTY_SELECTION["ZH"]
    assert transport.requests == []


def test_briefing_partial_results(client, transport):
    client.put("/api/v1/credentials", json={"chat_api_key": "pplx-test"})

    response = client.post("/api/v1/briefing", json={"tickers": ["NVDA", "amd"], "language": "EN"})

    assert response.status_code == 200
    reports = response.json()["reports"]
    assert reports["NVDA"]["sentiment_score"] == 7
    assert reports["AMD"]["error"]
    assert len(transport.hits(CHAT_HOST)) == 2
    assert client.get("/api/v1/briefing").json()["reports"].keys() == reports.keys()


def test_portfolio_flow(client, transport):
    client.put("/api/v1/credentials", json={"chat_api_key": "pplx-test", "vision_api_key": "AIza-test"})
    assert client.post("/api/v1/portfolio/analyze").status_code == 400

    files = [("files", ("a.png", b"png-bytes", "image/png")), ("files", ("b.jpg", b"jpg", "image/jpeg"))]
    images = client.post("/api/v1/portfolio/images", files=files).json()["images"]
    assert [i["filename"] for i in images] == ["a.png", "b.jpg"]

    images = client.delete("/api/v1/portfolio/images/1").json()["images"]
    assert len(images) == 1
    assert client.delete("/api/v1/portfolio/images/7").status_code == 404

    response = client.post("/api/v1/portfolio/analyze", json={"language": "ZH"})

    assert response.status_code == 200
    body = response.json()
    assert body["report"] == "## 📊 report"
    assert body["positions"][0]["symbol"] == "AVGO"
    assert len(transport.hits(VISION_HOST)) == 1
    assert client.get("/api/v1/portfolio/status").json()["stage"] == "done"


def test_portfolio_failure_is_502(config):
    transport = RecordingTransport(lambda r: vision_response("[]"))
    state = DashboardState(config, MemoryStore(), transport=transport)
    state.credentials.set(chat_api_key="pplx", vision_api_key="AIza")
    state.images.add(b"img")
    app.dependency_overrides[get_state] = lambda: state
    try:
        with TestClient(app) as client:
            response = client.post("/api/v1/portfolio/analyze")
            status = client.get("/api/v1/portfolio/status").json()
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 502
    assert response.json()["detail"] == ERR_NO_HOLDINGS["ZH"]
    assert status["stage"] == "failed"
    assert transport.hits(CHAT_HOST) == []
