"""
Text extraction from uploaded file bytes.
Dispatches on the declared MIME type; images are returned as base64 data URLs.
"""
import base64
import io
from typing import List

from docx import Document as DocxDocument
from pypdf import PdfReader

from .errors import ExtractionError
from .logging_config import logger

PDF_TYPE = "application/pdf"
DOCX_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
DOC_TYPE = "application/msword"
TEXT_TYPE = "text/plain"

SUPPORTED_IMAGE_TYPES = [
    "image/png", "image/jpeg", "image/jpg", "image/gif",
    "image/webp", "image/bmp", "image/svg+xml", "image/tiff", "image/tif",
]
SUPPORTED_DOC_TYPES = [PDF_TYPE, DOCX_TYPE, DOC_TYPE, TEXT_TYPE]

MAX_IMAGE_BYTES = 10 * 1024 * 1024


def is_image_type(mime_type: str) -> bool:
    return mime_type in SUPPORTED_IMAGE_TYPES or mime_type.startswith("image/")


def is_supported_type(mime_type: str) -> bool:
    return is_image_type(mime_type) or mime_type in SUPPORTED_DOC_TYPES


def supported_types() -> List[str]:
    return SUPPORTED_IMAGE_TYPES + SUPPORTED_DOC_TYPES


def read_text_from_pdf(data: bytes) -> str:
    try:
        pdf = PdfReader(io.BytesIO(data))
        parts = [page.extract_text() or "" for page in pdf.pages]
    except Exception as e:
        raise ExtractionError(f"Failed to extract text from PDF: {e}") from e
    return "\n".join(parts).strip()


def read_text_from_docx(data: bytes) -> str:
    """
    Extract text from DOCX file including both paragraphs and tables.
    Tables are converted to readable text format.
    """
    try:
        doc = DocxDocument(io.BytesIO(data))
    except Exception as e:
        raise ExtractionError(f"Failed to extract text from DOCX: {e}") from e

    parts = []
    for para in doc.paragraphs:
        text = para.text.strip()
        if text:
            parts.append(text)

    for table in doc.tables:
        table_text = extract_table_text(table)
        if table_text:
            parts.append("\n" + table_text)

    return "\n\n".join(parts).strip()


def extract_table_text(table) -> str:
    """
    Convert a DOCX table to readable text format.
    Each row is preserved with clear separators.
    """
    lines = []
    for row in table.rows:
        cells = [cell.text.strip() for cell in row.cells]
        # Skip completely empty rows
        if not any(cells):
            continue
        lines.append(" | ".join(cells))
    return "\n".join(lines)


def read_text_from_txt(data: bytes) -> str:
    try:
        text = data.decode("utf-8")
    except UnicodeDecodeError:
        logger.warning("UTF-8 decoding failed, trying latin-1")
        try:
            text = data.decode("latin-1")
        except UnicodeDecodeError:
            logger.warning("latin-1 decoding failed, falling back to ascii")
            text = data.decode("ascii", errors="replace")
    return text.strip()


def encode_image(data: bytes, mime_type: str, max_bytes: int = MAX_IMAGE_BYTES) -> str:
    """Return the image as a ``data:<mime>;base64,...`` URL."""
    if not mime_type.startswith("image/"):
        raise ExtractionError(f"Invalid MIME type for image: {mime_type}")
    if len(data) > max_bytes:
        raise ExtractionError(
            f"Image too large: {len(data)} bytes (max {max_bytes} bytes)"
        )
    encoded = base64.b64encode(data).decode("ascii")
    return f"data:{mime_type};base64,{encoded}"


def extract(data: bytes, mime_type: str, max_image_bytes: int = MAX_IMAGE_BYTES) -> str:
    """
    Convert raw file bytes into plain text (or a data URL for images).

    Blank output is not an error here; callers decide what to do with it.

    Raises:
        ExtractionError: empty payload, unsupported type, or unparseable file
    """
    if not data:
        raise ExtractionError("Empty file provided for extraction")

    if is_image_type(mime_type):
        return encode_image(data, mime_type, max_bytes=max_image_bytes)
    if mime_type == PDF_TYPE:
        text = read_text_from_pdf(data)
    elif mime_type in (DOCX_TYPE, DOC_TYPE):
        text = read_text_from_docx(data)
    elif mime_type == TEXT_TYPE:
        text = read_text_from_txt(data)
    else:
        raise ExtractionError(f"Unsupported MIME type: {mime_type}")

    logger.info("Text extracted", mime_type=mime_type, chars=len(text))
    return text
