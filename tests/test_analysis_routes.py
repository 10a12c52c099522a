import base64

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from controllers.analysis_controller import AnalysisContext, AnalysisController
from models.errors import DiagnosisError
from routes.analysis_route import router

from conftest import StubDiagnoser, make_fields, make_record

PNG_BYTES = b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR"
RECORD_ID = "2024-01-01T00:00:00.000000+00:00"


@pytest.fixture
def diagnoser():
    return StubDiagnoser()


@pytest.fixture
def controller(diagnoser, history_store):
    record = make_record(RECORD_ID, language="en")
    record.image_url = "data:image/png;base64," + base64.b64encode(PNG_BYTES).decode("ascii")
    context = AnalysisContext(display_language="en", history=[record])
    return AnalysisController(diagnoser, history_store, context)


@pytest.fixture
def client(controller):
    app = FastAPI()
    app.include_router(router)
    app.state.analysis_controller = controller
    with TestClient(app) as test_client:
        yield test_client


def upload(client):
    return client.post("/api/image", files={"file": ("leaf.png", PNG_BYTES, "image/png")})


def test_state_starts_empty(client):
    state = client.get("/api/state").json()

    assert state["pendingImage"] is None
    assert state["currentResult"] is None
    assert state["isBusy"] is False
    assert state["displayLanguage"] == "en"
    assert state["historyCount"] == 1


def test_upload_then_analyze(client, diagnoser):
    diagnoser.outcomes.append(make_fields("Blight"))

    state = upload(client).json()
    assert state["pendingImage"]["mimeType"] == "image/png"

    state = client.post("/api/analyze").json()

    assert state["currentResult"]["disease"] == "Blight"
    assert state["currentResult"]["language"] == "en"
    assert state["historyCount"] == 2
    history = client.get("/api/history").json()
    assert history[0]["id"] == state["currentResult"]["id"]
    assert history[1]["id"] == RECORD_ID


def test_analyze_failure_is_reported_in_state(client, diagnoser):
    diagnoser.outcomes.append(DiagnosisError("The diagnosis service timed out. Please try again."))
    upload(client)

    response = client.post("/api/analyze")

    assert response.status_code == 200
    assert response.json()["lastError"] == "The diagnosis service timed out. Please try again."


def test_upload_rejects_non_image(client):
    response = client.post("/api/image", files={"file": ("notes.txt", b"hello", "text/plain")})
    assert response.status_code == 415


def test_clear_resets_displayed_state(client):
    upload(client)

    state = client.delete("/api/image").json()

    assert state["pendingImage"] is None
    assert state["historyCount"] == 1


def test_select_history_record(client):
    state = client.post(f"/api/history/{RECORD_ID}/select").json()
    assert state["currentResult"]["id"] == RECORD_ID


def test_select_unknown_history_record_is_404(client):
    assert client.post("/api/history/missing/select").status_code == 404


def test_language_change_retranslates_selected_record(client, diagnoser):
    diagnoser.outcomes.append(make_fields("Mildiou"))
    client.post(f"/api/history/{RECORD_ID}/select")

    state = client.put("/api/language", json={"language": "fr-FR"}).json()

    assert state["displayLanguage"] == "fr"
    assert state["currentResult"]["disease"] == "Mildiou"
    assert state["currentResult"]["language"] == "fr"
    assert client.get("/api/history").json()[0]["language"] == "fr"


def test_unsupported_language_is_400(client):
    assert client.put("/api/language", json={"language": "klingon"}).status_code == 400


def test_history_image_returns_stored_bytes(client):
    response = client.get(f"/api/history/{RECORD_ID}/image")

    assert response.status_code == 200
    assert response.headers["content-type"] == "image/png"
    assert response.content == PNG_BYTES


def test_history_image_unparsable_payload_is_422(client, controller):
    controller.find_record(RECORD_ID).image_url = "garbage"
    assert client.get(f"/api/history/{RECORD_ID}/image").status_code == 422


def test_languages_lists_direction(client):
    languages = {entry["code"]: entry for entry in client.get("/api/languages").json()}
    assert languages["ar"]["direction"] == "rtl"
    assert languages["en"]["direction"] == "ltr"
