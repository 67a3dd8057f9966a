from datetime import date
from io import BytesIO
from typing import List
from uuid import uuid4

import fitz  # PyMuPDF
from docx import Document as DocxDocument

from . import config
from .errors import IngestionError
from .logger import get_logger
from .models import Document
from .store import Storage

logger = get_logger(__name__)

DOCX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
GENERIC_MEDIA_TYPES = ("", "application/octet-stream")


def is_pdf(media_type: str, filename: str) -> bool:
    media_type = (media_type or "").lower()
    if "pdf" in media_type:
        return True
    return media_type in GENERIC_MEDIA_TYPES and filename.lower().endswith(".pdf")


def is_docx(media_type: str, filename: str) -> bool:
    media_type = (media_type or "").lower()
    if media_type == DOCX_MEDIA_TYPE:
        return True
    return media_type in GENERIC_MEDIA_TYPES and filename.lower().endswith(".docx")


def extract_pdf_fragments(data: bytes) -> List[List[str]]:
    """Positioned word fragments of every page, in page order."""
    pages = []
    with fitz.open(stream=data, filetype="pdf") as doc:
        for page in doc:
            # (x0, y0, x1, y1, word, block_no, line_no, word_no)
            pages.append([w[4] for w in page.get_text("words")])
    return pages


def extract_text_from_pdf(data: bytes) -> str:
    return " ".join(
        fragment for page in extract_pdf_fragments(data) for fragment in page
    )


def extract_text_from_docx(data: bytes) -> str:
    d = DocxDocument(BytesIO(data))
    return "\n".join(p.text for p in d.paragraphs if p.text.strip())


def extract_text(data: bytes, media_type: str, filename: str) -> str:
    if is_pdf(media_type, filename):
        return extract_text_from_pdf(data)
    if is_docx(media_type, filename):
        return extract_text_from_docx(data)
    return data.decode("utf-8", errors="replace")


def ingest(storage: Storage, data: bytes, media_type: str, filename: str) -> Document:
    """Turn an uploaded file into a stored document record."""
    try:
        content = extract_text(data, media_type, filename)
    except Exception as e:
        logger.warning(f"Could not extract text from '{filename}': {e}")
        raise IngestionError(f"Could not read '{filename}': {e}") from e

    doc = Document(
        id=uuid4().hex,
        name=filename,
        content=content,
        instruction=config.DEFAULT_INSTRUCTION,
        upload_date=date.today().isoformat(),
        type="pdf" if is_pdf(media_type, filename) else "text",
    )
    docs = storage.get_documents()
    docs.append(doc)
    storage.save_documents(docs)
    logger.info(
        f"Ingested '{filename}'",
        extra={"extra_data": {"doc_id": doc.id, "type": doc.type, "chars": len(content)}},
    )
    return doc
