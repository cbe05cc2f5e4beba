from reportlab.pdfbase.pdfmetrics import stringWidth

from analyzer.app.report.text_layout import wrap_text

FONT = "Helvetica"
SIZE = 11


def test_short_text_is_one_line():
    assert wrap_text("Rent is due monthly.", FONT, SIZE, 400) == ["Rent is due monthly."]


def test_lines_fit_width_and_keep_all_words():
    text = "The tenant must keep the property in a clean and tidy condition " * 8
    width = 200

    lines = wrap_text(text, FONT, SIZE, width)

    assert len(lines) > 1
    assert all(stringWidth(line, FONT, SIZE) <= width for line in lines)
    assert " ".join(lines).split() == text.split()


def test_overlong_word_is_hyphenated():
    word = "Supercalifragilisticexpialidocious" * 3
    width = 80

    lines = wrap_text(word, FONT, SIZE, width)

    assert len(lines) > 1
    assert all(stringWidth(line, FONT, SIZE) <= width for line in lines)
    assert all(line.endswith("-") for line in lines[:-1])
    assert "".join(line.rstrip("-") for line in lines) == word


def test_paragraph_breaks_are_kept_with_blank_lines():
    lines = wrap_text("First paragraph.\n\nSecond paragraph.", FONT, SIZE, 400)

    assert lines == ["First paragraph.", "", "Second paragraph."]


def test_empty_text_has_no_lines():
    assert wrap_text("", FONT, SIZE, 400) == []
