import pytest

from analyzer.app.chunking.chunker import chunk_document
from analyzer.app.errors import AnalysisTimeoutError, MalformedResponseError
from analyzer.app.events import AnalysisEventType
from analyzer.app.orchestrator.orchestrator import AnalysisOrchestrator
from analyzer.app.orchestrator.polling import PollingPolicy
from analyzer.app.schemas.analysis import SeverityTier
from analyzer.tests.fakes import FakeAssistantClient, ListEmitter, RecordingSleep

pytestmark = pytest.mark.anyio

REPLY = """Here is my analysis.
{
  "propertyDetails": {"address": "Flat 3, 7 Mill Lane", "confidence": "High Confidence"},
  "insights": [
    {"title": "Deposit Protection", "content": "Protected with DPS.", "type": "primary"},
    {"title": "Early Termination Charge", "content": "A charge applies.", "type": "accent",
     "rating": {"value": 72.4, "label": "Fairness"}}
  ],
  "recommendations": ["Request the prescribed information."],
  "complianceScore": 78.6
}"""


def _orchestrator(client, **kwargs) -> AnalysisOrchestrator:
    kwargs.setdefault("sleep", RecordingSleep())
    return AnalysisOrchestrator(
        client=client,
        assistant_id="asst-test",
        policy=PollingPolicy(),
        **kwargs,
    )


async def test_runs_job_and_parses_result():
    client = FakeAssistantClient(["queued", "in_progress", "completed"], reply=REPLY)
    emitter = ListEmitter()

    result = await _orchestrator(client, run_instructions="Be thorough.").analyze(
        chunk_document("1. The tenant pays rent monthly.", 12_000),
        "Analyse the agreement.",
        analysis_id="a-1",
        emitter=emitter,
    )

    assert result.property_details.address == "Flat 3, 7 Mill Lane"
    assert [i.severity for i in result.insights] == [
        SeverityTier.INFORMATIONAL,
        SeverityTier.MODERATE,
    ]
    assert result.insights[1].rating.value == 72
    assert result.compliance_score == 79
    assert result.recommendations[0].content == "Request the prescribed information."

    assert client.runs_started[0]["assistant_id"] == "asst-test"
    assert client.runs_started[0]["instructions"] == "Be thorough."
    assert emitter.types[0] is AnalysisEventType.RUN_STARTED
    assert emitter.types[-1] is AnalysisEventType.RUN_COMPLETED


async def test_chunks_are_posted_in_order_before_run():
    client = FakeAssistantClient(["completed"], reply=REPLY)

    await _orchestrator(client).analyze(
        chunk_document("z" * 30_000, 12_000),
        "Analyse the agreement.",
    )

    assert len(client.posted) == 3
    assert "PART 1 OF 3" in client.posted[0]
    assert "FINAL PART 3 OF 3" in client.posted[2]
    assert len(client.runs_started) == 1


async def test_wall_clock_deadline_cancels_pending_poll():
    client = FakeAssistantClient(["in_progress"], poll_delay=0.01)
    orchestrator = AnalysisOrchestrator(
        client=client,
        assistant_id="asst-test",
        policy=PollingPolicy(base_seconds=0.05, cap_seconds=0.05),
        timeout_seconds=0.2,
    )

    with pytest.raises(AnalysisTimeoutError) as excinfo:
        await orchestrator.analyze(chunk_document("text", 100), "Analyse.")

    assert excinfo.value.reason == "wall_clock"
    assert isinstance(excinfo.value, TimeoutError)


async def test_reply_without_json_is_malformed():
    client = FakeAssistantClient(["completed"], reply="Sorry, I cannot help with that.")

    with pytest.raises(MalformedResponseError):
        await _orchestrator(client).analyze(chunk_document("text", 100), "Analyse.")


async def test_reply_with_wrong_shape_is_malformed():
    client = FakeAssistantClient(["completed"], reply={"insights": "not a list"})

    with pytest.raises(MalformedResponseError) as excinfo:
        await _orchestrator(client).analyze(chunk_document("text", 100), "Analyse.")

    assert "insights" in excinfo.value.excerpt
