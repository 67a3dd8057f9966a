"""Tests for exporting selected chat messages."""

import fitz
import pytest

from backend.docchat.errors import ValidationError
from backend.docchat.export import WRAP_COLUMNS, export_messages, font_options, wrap_message
from backend.docchat.models import Message


@pytest.fixture
def messages():
    return [
        Message(id="1", role="user", text="What is the policy?", timestamp="10:00:00"),
        Message(id="2", role="model", text="Remote work is allowed.", timestamp="10:00:02"),
        Message(id="3", role="user", text="Thanks", timestamp="10:00:05"),
    ]


@pytest.mark.parametrize("fmt", ["pdf", "docx"])
def test_empty_selection_rejected(messages, fmt):
    with pytest.raises(ValidationError) as exc:
        export_messages(messages, set(), fmt)
    assert exc.value.message == "Please select messages first!"


def test_selection_of_unknown_ids_rejected(messages):
    with pytest.raises(ValidationError):
        export_messages(messages, {"99"}, "docx")


def test_docx_is_plain_text(messages):
    result = export_messages(messages, {"3", "1"}, "docx")
    assert result.filename == "chat.docx"
    assert result.media_type == "application/msword"
    assert result.content.decode("utf-8") == "USER: What is the policy?\n\nUSER: Thanks"


def test_pdf(messages):
    result = export_messages(messages, {"1", "2"}, "pdf")
    assert result.filename == "chat.pdf"
    assert result.media_type == "application/pdf"
    assert result.content.startswith(b"%PDF")
    with fitz.open(stream=result.content, filetype="pdf") as doc:
        text = doc[0].get_text()
    assert "[user] What is the policy?" in text
    assert "[model] Remote work is allowed." in text
    assert text.index("[user]") < text.index("[model]")


def test_long_conversation_spans_pages():
    long_messages = [
        Message(id=str(i), role="user", text="word " * 200, timestamp="10:00:00")
        for i in range(10)
    ]
    result = export_messages(long_messages, {m.id for m in long_messages}, "pdf")
    with fitz.open(stream=result.content, filetype="pdf") as doc:
        assert doc.page_count > 1


def test_wrap_message_respects_width():
    msg = Message(id="1", role="model", text="lorem ipsum " * 40, timestamp="10:00:00")
    lines = wrap_message(msg)
    assert len(lines) > 1
    assert lines[0].startswith("[model] lorem")
    assert all(len(line) <= WRAP_COLUMNS for line in lines)


def test_unknown_format(messages):
    with pytest.raises(ValidationError):
        export_messages(messages, {"1"}, "odt")


def test_font_options_by_script(monkeypatch):
    monkeypatch.setattr("backend.docchat.config.EXPORT_FONT_FILE", None)
    assert font_options("[user] café") == {"fontname": "helv"}
    assert font_options("[model] 你好") == {"fontname": "china-s"}


def test_configured_font_file(monkeypatch):
    monkeypatch.setattr("backend.docchat.config.EXPORT_FONT_FILE", "/fonts/NotoSans.ttf")
    assert font_options("[user] hello") == {
        "fontname": "exportfont",
        "fontfile": "/fonts/NotoSans.ttf",
    }


def test_pdf_keeps_cjk_text(monkeypatch):
    monkeypatch.setattr("backend.docchat.config.EXPORT_FONT_FILE", None)
    messages = [Message(id="1", role="model", text="你好世界", timestamp="10:00:00")]
    result = export_messages(messages, {"1"}, "pdf")
    with fitz.open(stream=result.content, filetype="pdf") as doc:
        text = doc[0].get_text()
    assert "你好世界" in text
