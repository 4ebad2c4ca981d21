# tests/test_api.py
from fastapi.testclient import TestClient
from ranttrack.main import app

client = TestClient(app)

def extract(text):
    r = client.post("/api/extract", json={"text": text})
    assert r.status_code == 200
    return r.json()

def test_health():
    assert client.get("/health").json() == {"status": "ok"}

def test_metrics_exposed():
    extract("tired")
    r = client.get("/metrics")
    assert r.status_code == 200
    assert "ranttrack_requests_total" in r.text

def test_extract_pem_after_shopping():
    body = extract("crashed hard after grocery shopping")
    assert body["text"] == "crashed hard after grocery shopping"
    [pem] = [s for s in body["symptoms"] if s["symptom"] == "pem"]
    assert pem["severity"] == "severe"
    assert pem["trigger"]["timeframe"] == "after"
    assert "grocery shopping" in pem["trigger"]["activity"]

def test_extract_duration_is_tagged():
    [s] = extract("headache for 3 days")["symptoms"]
    assert s["duration"] == {"kind": "measured", "value": 3.0, "unit": "days"}

def test_extract_rejects_missing_text():
    assert client.post("/api/extract", json={}).status_code == 422

def test_segment_grouped_by_default():
    r = client.post("/api/segment", json={
        "text": "Yesterday I had a headache. Friday I woke up exhausted.",
        "reference_date": "2025-01-11T18:00:00",
    })
    assert r.status_code == 200
    [day] = r.json()
    assert day["timestamp"].startswith("2025-01-10T00:00")
    assert day["explicit"] is True
    assert day["date_string"] == "Yesterday"

def test_segment_ungrouped():
    r = client.post("/api/segment", json={
        "text": "Yesterday I had a headache. Friday I woke up exhausted.",
        "reference_date": "2025-01-11T18:00:00",
        "group": False,
    })
    assert len(r.json()) == 2

def test_catch_up():
    r = client.post("/api/catch-up", json={
        "text": "Monday I had a migraine. Today just tired.",
        "reference_date": "2025-01-08T10:00:00",
    })
    assert r.status_code == 200
    days = r.json()
    assert [d["segment"]["timestamp"][:10] for d in days] == ["2025-01-06", "2025-01-08"]
    assert days[0]["extraction"]["symptoms"][0]["symptom"] == "headache"
    assert days[1]["extraction"]["symptoms"][0]["symptom"] == "fatigue"

def test_custom_symptom_lifecycle():
    r = client.post("/api/custom-symptoms", json={"word": "Zorbly", "symptom": "Zorb Feeling"})
    assert r.status_code == 201
    assert r.json()["word"] == "zorbly"
    assert r.json()["symptom"] == "zorb_feeling"

    listing = client.get("/api/custom-symptoms").json()
    assert listing["entries"]["zorbly"] == "zorb_feeling"
    assert listing["version"] == r.json()["version"]

    assert [s["symptom"] for s in extract("so zorbly today")["symptoms"]] == ["zorb_feeling"]

    dup = client.post("/api/custom-symptoms", json={"word": "zorbish", "symptom": "zorb_feeling"})
    assert dup.status_code == 409

    assert client.delete("/api/custom-symptoms/zorbly").status_code == 204
    assert client.delete("/api/custom-symptoms/zorbly").status_code == 404
    assert "zorbly" not in client.get("/api/custom-symptoms").json()["entries"]

def test_custom_symptom_validation():
    assert client.post("/api/custom-symptoms", json={"word": "", "symptom": "x"}).status_code == 422
    assert client.post("/api/custom-symptoms", json={"word": "   ", "symptom": "x"}).status_code == 422
