"""
Tests for the web page helpers that pin a saved visit to the preview.

Run: pytest tests/test_frontend.py -v
"""
import pytest
from fastapi.testclient import TestClient

from frontend import current_analysis, visit_payload
from main import app, get_store

PATIENT = {"name": "Asha", "age": 41, "gender": "F", "contact": ""}


@pytest.fixture
def client(store):
    app.dependency_overrides[get_store] = lambda: store
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_edited_symptoms_drop_the_preview():
    state = {"analysis": {"candidates": []}, "previewed": "fever, cough"}
    assert current_analysis(state, "fever, cough") == {"candidates": []}
    assert current_analysis(state, "fever, cough, headache") is None
    assert current_analysis({"analysis": None, "previewed": None}, "") is None


def test_payload_uses_previewed_text_and_ids():
    flu = {"disease_id": 1, "disease_name": "Flu", "specialization": "General Physician"}
    pl = visit_payload(PATIENT, "fever, cough", 1, flu, 2, "rest", False)
    assert pl["symptoms"] == "fever, cough"
    assert pl["expected_disease_id"] == 1
    assert (pl["doctor_pick"], pl["manual_doctor_id"]) == (0, 2)
    assert "expected_disease_id" not in visit_payload(PATIENT, "fever", 0, None, 0, "", False)


def test_previewed_pick_is_what_gets_recorded(client):
    preview = client.post("/analyze/diseases", json={"description": "fever, cough"}).json()
    cold = preview["candidates"][1]
    pl = visit_payload(PATIENT, "fever, cough", 2, cold, 2, "fluids", False)
    data = client.post("/visits", json=pl).json()
    assert data["status"] == "recorded"
    assert data["chosen"]["disease_name"] == "Cold"
    assert data["doctor_id"] == 2


def test_stale_pick_is_refused(client):
    preview = client.post("/analyze/diseases", json={"description": "fever, cough"}).json()
    flu = preview["candidates"][0]
    # the text sent no longer matches the preview the pick came from
    pl = visit_payload(PATIENT, "fever, cough, headache", 1, flu, 1, "", False)
    data = client.post("/visits", json=pl).json()
    assert data["status"] == "candidate_changed"
    assert data["prescription_id"] is None
