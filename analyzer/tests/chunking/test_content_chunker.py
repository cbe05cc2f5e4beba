import pytest

from analyzer.app.chunking.chunker import chunk_document, strip_part_label
from analyzer.app.errors import ChunkingError


def test_short_document_is_single_unlabelled_chunk():
    chunks = chunk_document("A short agreement.", 12_000)

    assert len(chunks) == 1
    assert chunks[0].total_count == 1
    assert chunks[0].labelled_text == "A short agreement."


def test_unbroken_text_splits_at_hard_limit():
    text = "x" * 30_000

    chunks = chunk_document(text, 12_000)

    assert len(chunks) == 3
    assert all(len(c.text) <= 14_400 for c in chunks)
    assert [c.label for c in chunks] == ["PART 1 OF 3", "PART 2 OF 3", "PART 3 OF 3"]
    assert chunks[1].labelled_text.startswith("[PART 2 OF 3]\n\n")


def test_chunks_reassemble_to_original_text():
    paragraph = "The tenant shall keep the property clean. " * 20
    text = "\n\n".join(f"{i}. {paragraph}" for i in range(40))

    chunks = chunk_document(text, 2_000)

    assert "".join(c.text for c in chunks) == text
    assert all(len(c.text) <= 2_400 for c in chunks)
    assert [c.index for c in chunks] == list(range(len(chunks)))
    assert "".join(strip_part_label(c.labelled_text) for c in chunks) == text


def test_prefers_paragraph_boundary_inside_window():
    first = "a" * 900 + "\n\n"
    text = first + "b" * 900

    chunks = chunk_document(text, 1_000)

    assert chunks[0].text == first
    assert chunks[1].text == "b" * 900


def test_falls_back_to_sentence_boundary():
    first = "a" * 850 + ". "
    text = first + "b" * 900

    chunks = chunk_document(text, 1_000)

    assert chunks[0].text == first


@pytest.mark.parametrize("max_chars", [0, -5])
def test_rejects_non_positive_chunk_size(max_chars):
    with pytest.raises(ChunkingError):
        chunk_document("text", max_chars)
