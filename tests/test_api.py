import json
import threading

import pytest
from fastapi.testclient import TestClient

from caregiver_card import main
from caregiver_card.models.requests import PatientContacts

TRANSCRIPTS = {
    "audio_patientfree": "My name is Jane Doe, call me at 555-123-4567",
    "audio_statusfree": (
        "I take Metformin 500 mg twice a day. I am allergic to penicillin and latex. "
        "History of diabetes. Blood pressure 140 over 90, weight 80 kg."
    ),
    "audio_classic": "Contact John Smith at john.smith@example.com",
}


@pytest.fixture
def fake_ai(monkeypatch):
    calls = {"translate": [], "contacts": []}

    async def transcribe(request_id, file_path, part="audio"):
        return TRANSCRIPTS[part]

    async def detect_language(text):
        return "en", "English"

    async def translate(text, target_lang, request_id="-"):
        calls["translate"].append((text, target_lang))
        return f"[{target_lang}] {text}"

    async def extract_contacts(text, request_id="-"):
        calls["contacts"].append(text)
        return PatientContacts(name="Jane Doe", emer_phone="call 555-123-4567")

    monkeypatch.setattr(main.stt_service, "transcribe", transcribe)
    monkeypatch.setattr(main.llm_service, "detect_language", detect_language)
    monkeypatch.setattr(main.llm_service, "translate", translate)
    monkeypatch.setattr(main.llm_service, "extract_contacts", extract_contacts)
    return calls


@pytest.fixture
def client():
    with TestClient(main.app) as test_client:
        yield test_client


@pytest.fixture
def logged_in(client):
    response = client.post(
        "/login", data={"userId": "tester", "password": "secret-pass"}, follow_redirects=False
    )
    assert response.status_code == 303
    return client


def audio(part):
    return (part, (f"{part}.webm", b"fake audio bytes", "audio/webm"))


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
    assert "X-Request-ID" in response.headers


def test_pages_require_login(client):
    for path in ("/", "/reports", "/reports/abc", "/v1/reports/abc"):
        response = client.get(path, follow_redirects=False)
        assert response.status_code == 303
        assert response.headers["location"] == "/login"


def test_wrong_password_is_rejected(client):
    response = client.post("/login", data={"userId": "tester", "password": "nope"})
    assert response.status_code == 401
    assert "Invalid credentials" in response.text


def test_logout_clears_session(logged_in):
    assert logged_in.get("/", follow_redirects=False).status_code == 200
    logged_in.post("/logout", follow_redirects=False)
    assert logged_in.get("/", follow_redirects=False).status_code == 303


def test_report_from_typed_fields(logged_in, fake_ai):
    response = logged_in.post("/v1/reports", data={
        "name": "Jane Doe",
        "email": "jane at example dot com",
        "typed_meds": "Amlodipine 10 mg",
        "bp": "130/85",
    })
    assert response.status_code == 201
    body = response.json()
    assert body["ok"] is True
    assert body["url"] == f"https://card.example.org/reports/{body['id']}"

    detail = logged_in.get(f"/v1/reports/{body['id']}").json()
    assert detail["status"]["medications"] == ["Amlodipine 10 mg"]
    assert detail["status"]["bp"] == "130/85"
    assert detail["facts"]["medications"][0]["name"] == "Amlodipine"
    assert detail["facts"]["vitals"]["bloodPressure"] == {"systolic": 130, "diastolic": 85}
    assert detail["transcript"] == ""
    assert fake_ai["translate"] == []


def test_report_from_voice_notes_with_translation(logged_in, fake_ai):
    files = [audio("audio_patientfree"), audio("audio_statusfree"), audio("audio_classic")]
    response = logged_in.post("/v1/reports", data={"lang": "es"}, files=files)
    assert response.status_code == 201
    report_id = response.json()["id"]

    detail = logged_in.get(f"/v1/reports/{report_id}").json()
    facts = detail["facts"]
    assert [m["name"] for m in facts["medications"]] == ["Metformin"]
    assert facts["allergies"] == ["penicillin", "latex"]
    assert facts["conditions"] == ["diabetes"]
    assert facts["vitals"]["weight"] == {"value": 80.0, "unit": "kg"}
    assert detail["transcript"].splitlines()[0] == f"Patient/Contacts (free): {TRANSCRIPTS['audio_patientfree']}"
    assert "Medications: Metformin — 500 mg" in detail["summary_text"]
    assert detail["translated_summary"].startswith("[es] Medications:")
    assert detail["target_lang"] == "es"


def test_redacted_transcript(logged_in, fake_ai):
    response = logged_in.post("/v1/reports", files=[audio("audio_classic")])
    report_id = response.json()["id"]

    redacted = logged_in.get(f"/v1/reports/{report_id}", params={"redact": "true"}).json()
    assert "[email]" in redacted["transcript"]
    assert "john.smith@example.com" not in redacted["transcript"]
    assert "John Smith" not in redacted["transcript"]

    full = logged_in.get(f"/v1/reports/{report_id}").json()
    assert "john.smith@example.com" in full["transcript"]

    page = logged_in.get(f"/reports/{report_id}?redact=1")
    assert page.status_code == 200
    assert "john.smith@example.com" not in page.text


def test_empty_upload_is_rejected(logged_in, fake_ai):
    response = logged_in.post("/v1/reports", data={"lang": ""})
    assert response.status_code == 400


def test_unknown_target_language(logged_in, fake_ai):
    response = logged_in.post("/v1/reports", data={"name": "Jane", "lang": "xx"})
    assert response.status_code == 422


def test_unsupported_audio_type(logged_in, fake_ai):
    files = [("audio_classic", ("note.txt", b"hello", "text/plain"))]
    response = logged_in.post("/v1/reports", files=files)
    assert response.status_code == 415


def test_report_pages(logged_in, fake_ai):
    report_id = logged_in.post("/v1/reports", data={"name": "Pat Example", "blood_type": "O negative"}).json()["id"]

    listing = logged_in.get("/reports")
    assert listing.status_code == 200
    assert "Report for Pat Example" in listing.text

    page = logged_in.get(f"/reports/{report_id}")
    assert page.status_code == 200
    assert "O negative" in page.text
    assert 'src="data:image/png;base64,' in page.text


def test_unknown_report(logged_in):
    assert logged_in.get("/reports/does-not-exist").status_code == 404
    assert logged_in.get("/v1/reports/does-not-exist").status_code == 404


def test_detect_language(logged_in, fake_ai):
    assert logged_in.post("/detect-lang", json={"text": ""}).json() == {
        "ok": False, "code": None, "name": None, "error": "No text"
    }
    body = logged_in.post("/detect-lang", json={"text": "Hello there"}).json()
    assert body["ok"] is True
    assert body["code"] == "en"


def test_metrics(client):
    response = client.get("/metrics")
    assert response.status_code == 200
    assert "http_requests_total" in response.text


def test_spoken_contacts_fill_blank_patient_details(logged_in, fake_ai):
    response = logged_in.post("/v1/reports", files=[audio("audio_patientfree")])
    assert response.status_code == 201
    report_id = response.json()["id"]

    assert fake_ai["contacts"] == [TRANSCRIPTS["audio_patientfree"]]
    page = logged_in.get(f"/reports/{report_id}").text
    assert "<b>Name:</b> Jane Doe" in page
    assert "555-123-4567" in page


def test_typed_contacts_win_over_spoken_ones(logged_in, fake_ai):
    response = logged_in.post(
        "/v1/reports", data={"name": "Pat Example"}, files=[audio("audio_patientfree")]
    )
    page = logged_in.get(f"/reports/{response.json()['id']}").text
    assert "<b>Name:</b> Pat Example" in page
    assert "Jane Doe" not in page.split("<h2>Patient Details</h2>")[1].split("</section>")[0]


def test_no_contact_extraction_without_patient_audio(logged_in, fake_ai):
    logged_in.post("/v1/reports", data={"name": "Pat Example"})
    assert fake_ai["contacts"] == []


def test_store_runs_off_the_event_loop(logged_in, fake_ai, monkeypatch):
    threads = {}
    real_create = main.report_store.create

    async def transcribe(request_id, file_path, part="audio"):
        threads["loop"] = threading.get_ident()
        return TRANSCRIPTS[part]

    def create(report):
        threads["store"] = threading.get_ident()
        return real_create(report)

    monkeypatch.setattr(main.stt_service, "transcribe", transcribe)
    monkeypatch.setattr(main.report_store, "create", create)
    response = logged_in.post("/v1/reports", files=[audio("audio_classic")])
    assert response.status_code == 201
    assert threads["store"] != threads["loop"]


def test_upload_page_records_in_the_browser(logged_in):
    page = logged_in.get("/").text
    assert '<script src="/static/app.js" defer></script>' in page
    assert 'data-record="audio_patientfree"' in page
    assert logged_in.get("/static/app.js").status_code == 200


def test_internal_error_body():
    response = main._internal_error_response("req-1")
    body = json.loads(response.body)
    assert response.status_code == 500
    assert body["error"] == "internal_server_error"
    assert body["request_id"] == "req-1"
    assert "details" not in body
    assert response.headers["X-Request-ID"] == "req-1"
