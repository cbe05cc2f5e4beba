from analyzer.app.chunking.chunker import Chunk, chunk_document
from analyzer.app.orchestrator.messages import build_staged_messages, load_prompt


def test_single_chunk_is_one_message_with_instructions_and_annotation():
    chunks = [Chunk(index=0, total_count=1, text="The agreement text.")]

    messages = build_staged_messages(chunks, "ANALYSE THIS", annotation="DETECTED ISSUES")

    assert len(messages) == 1
    body = messages[0]
    assert body.index("ANALYSE THIS") < body.index("DETECTED ISSUES") < body.index("The agreement text.")


def test_multi_part_protocol_sends_instructions_only_with_final_part():
    chunks = chunk_document("y" * 30_000, 12_000)

    messages = build_staged_messages(chunks, "ANALYSE THIS", annotation="DETECTED ISSUES")

    assert len(messages) == 3
    assert "PART 1 OF 3" in messages[0]
    assert "acknowledge" in messages[0].lower()
    assert "PART 2 OF 3" in messages[1]
    assert "FINAL PART 3 OF 3" in messages[2]
    assert all("ANALYSE THIS" not in m for m in messages[:2])
    assert messages[2].rstrip().endswith("DETECTED ISSUES")


def test_bundled_prompts_load():
    assert load_prompt("analysis_request")
    assert load_prompt("run_instructions")
    assert load_prompt("secondary_validation")
