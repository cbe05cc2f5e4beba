import pytest
from fastapi.testclient import TestClient

from analyzer.app.cache.store import InMemoryTTLStore
from analyzer.app.coordinator.coordinator import AnalysisCoordinator
from analyzer.app.errors import (
    AnalysisTimeoutError,
    ChunkingError,
    MalformedResponseError,
    TransportError,
)
from analyzer.app.main import app
from analyzer.app.orchestrator.orchestrator import AnalysisOrchestrator
from analyzer.app.orchestrator.polling import PollingPolicy
from analyzer.app.prescreen.scanner import RuleEngine
from analyzer.app.report.renderer import ReportRenderer
from analyzer.tests.fakes import FakeAssistantClient, RecordingSleep
from analyzer.tests.helpers import default_policy, sample_result

AGREEMENT = """1. The tenant shall pay rent of £950 per calendar month.
2. The deposit will be protected with the Deposit Protection Service.
"""

REPLY = {
    "insights": [
        {"title": "Rent Review Clause", "content": "Rent may be reviewed annually.", "type": "accent"},
    ],
    "complianceScore": 72,
}


class RaisingCoordinator:
    def __init__(self, error: Exception) -> None:
        self.error = error

    async def run_analysis(self, *, text, analysis_id, emitter=None):
        raise self.error


def _install(coordinator) -> None:
    app.state.coordinator = coordinator
    app.state.renderer = ReportRenderer()
    app.state.analysis_cache = InMemoryTTLStore()
    app.state.report_cache = InMemoryTTLStore()


@pytest.fixture
def client():
    fake = FakeAssistantClient(["in_progress", "completed"], reply=REPLY)
    _install(
        AnalysisCoordinator(
            orchestrator=AnalysisOrchestrator(
                client=fake,
                assistant_id="asst-test",
                policy=PollingPolicy(),
                sleep=RecordingSleep(),
            ),
            rule_engine=RuleEngine(),
            severity_policy=default_policy(),
            instructions="Analyse the agreement.",
        )
    )
    # The lifespan is not entered, so no OpenAI client is built
    return TestClient(app)


def test_health_check(client):
    resp = client.get("/health")

    assert resp.status_code == 200
    assert resp.json() == {"status": "ok", "service": "analyzer"}


def test_analyze_returns_camel_case_result(client):
    resp = client.post("/analyze", json={"text": AGREEMENT})

    assert resp.status_code == 200
    body = resp.json()
    assert body["complianceScore"] == 72
    assert body["compliance"]["level"] == "yellow"
    assert body["insights"][0]["type"] == "moderate"
    assert body["complianceChecklist"]
    assert body["validationPerformed"] is False


def test_analyze_rejects_unknown_fields(client):
    resp = client.post("/analyze", json={"text": AGREEMENT, "mode": "fast"})

    assert resp.status_code == 422


@pytest.mark.parametrize(
    "error,status",
    [
        (ChunkingError("document text is empty"), 400),
        (AnalysisTimeoutError("analysis timed out", reason="wall_clock"), 504),
        (TransportError("create_thread failed", operation="create_thread"), 502),
        (MalformedResponseError("no JSON object in reply"), 502),
    ],
)
def test_analyzer_errors_map_to_status_codes(error, status):
    _install(RaisingCoordinator(error))
    client = TestClient(app)

    resp = client.post("/analyze", json={"text": AGREEMENT})

    assert resp.status_code == status
    assert resp.json()["error"] == type(error).__name__


def test_stream_ends_with_completed_event(client):
    with client.stream("POST", "/analyze/stream", json={"text": AGREEMENT}) as resp:
        assert resp.status_code == 200
        assert resp.headers["content-type"].startswith("text/event-stream")
        assert resp.headers["x-analysis-id"]
        body = "".join(resp.iter_text())

    assert body.index("event: analysis_started") < body.index("event: run_started")
    assert body.rstrip().splitlines()[-2] == "event: analysis_completed"


def test_stream_reports_failure_event():
    _install(
        AnalysisCoordinator(
            orchestrator=AnalysisOrchestrator(
                client=FakeAssistantClient(),
                assistant_id="asst-test",
                policy=PollingPolicy(),
                sleep=RecordingSleep(),
            ),
            rule_engine=RuleEngine(),
            severity_policy=default_policy(),
        )
    )
    client = TestClient(app)

    with client.stream("POST", "/analyze/stream", json={"text": " "}) as resp:
        body = "".join(resp.iter_text())

    assert "event: analysis_failed" in body
    assert "ChunkingError" in body


def test_report_returns_pdf(client):
    payload = {
        "result": sample_result().model_dump(mode="json", by_alias=True),
        "documentName": "tenancy-agreement.pdf",
        "analysisDate": "2024-03-01",
    }

    resp = client.post("/report", json=payload)

    assert resp.status_code == 200
    assert resp.headers["content-type"] == "application/pdf"
    assert "attachment" in resp.headers["content-disposition"]
    assert resp.content.startswith(b"%PDF")

    again = client.post("/report", json=payload)
    assert again.content == resp.content
    assert len(app.state.report_cache) == 1


def test_report_requires_document_name(client):
    resp = client.post(
        "/report",
        json={"result": sample_result().model_dump(mode="json", by_alias=True)},
    )

    assert resp.status_code == 422
