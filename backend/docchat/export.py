import textwrap
from dataclasses import dataclass
from typing import Iterable, List

import fitz  # PyMuPDF

from . import config
from .errors import ValidationError
from .logger import get_logger
from .models import Message

logger = get_logger(__name__)

# Page layout in points
MARGIN = 56
FONT_SIZE = 11
LINE_HEIGHT = 20
BLOCK_GAP = 14
WRAP_COLUMNS = 85


@dataclass
class ExportFile:
    filename: str
    media_type: str
    content: bytes


def wrap_message(msg: Message) -> List[str]:
    lines = []
    for paragraph in f"[{msg.role}] {msg.text}".splitlines():
        lines.extend(textwrap.wrap(paragraph, width=WRAP_COLUMNS) or [""])
    return lines


def font_options(line: str) -> dict:
    """Font arguments for ``insert_text``.

    Helvetica only covers Latin-1. Other lines use the CJK font bundled with
    MuPDF unless a font file is configured.
    """
    if config.EXPORT_FONT_FILE:
        return {"fontname": "exportfont", "fontfile": config.EXPORT_FONT_FILE}
    try:
        line.encode("latin-1")
    except UnicodeEncodeError:
        return {"fontname": "china-s"}
    return {"fontname": "helv"}


def render_pdf(messages: List[Message]) -> bytes:
    doc = fitz.open()
    page = doc.new_page()
    y = MARGIN
    for msg in messages:
        lines = wrap_message(msg)
        for line in lines:
            if y > page.rect.height - MARGIN:
                page = doc.new_page()
                y = MARGIN
            page.insert_text((MARGIN, y), line, fontsize=FONT_SIZE, **font_options(line))
            y += LINE_HEIGHT
        y += BLOCK_GAP
    data = doc.tobytes()
    doc.close()
    return data


def render_text(messages: List[Message]) -> bytes:
    return "\n\n".join(f"{m.role.upper()}: {m.text}" for m in messages).encode("utf-8")


def export_messages(messages: Iterable[Message], selected_ids, fmt: str) -> ExportFile:
    """Build a download from the selected messages, in log order."""
    selected = set(selected_ids)
    chosen = [m for m in messages if m.id in selected]
    if not chosen:
        raise ValidationError("Please select messages first!")

    if fmt == "pdf":
        result = ExportFile("chat.pdf", "application/pdf", render_pdf(chosen))
    elif fmt == "docx":
        # Plain text under a word-processor media type
        result = ExportFile("chat.docx", "application/msword", render_text(chosen))
    else:
        raise ValidationError(f"Unsupported export format '{fmt}'")

    logger.info(
        "Exported chat",
        extra={"extra_data": {"format": fmt, "messages": len(chosen), "bytes": len(result.content)}},
    )
    return result
