"""Tests for MIME-dispatched text extraction."""

from __future__ import annotations

import base64
import io

import pytest
from docx import Document as DocxDocument

from ragchat.errors import ExtractionError
from ragchat.text_extraction import (
    DOC_TYPE,
    DOCX_TYPE,
    MAX_IMAGE_BYTES,
    encode_image,
    extract,
    is_supported_type,
    read_text_from_txt,
    supported_types,
)


def _docx_bytes() -> bytes:
    doc = DocxDocument()
    doc.add_paragraph("Quarterly report")
    doc.add_paragraph("   ")
    table = doc.add_table(rows=2, cols=2)
    table.cell(0, 0).text = "Region"
    table.cell(0, 1).text = "Revenue"
    table.cell(1, 0).text = "EMEA"
    table.cell(1, 1).text = "42"
    buf = io.BytesIO()
    doc.save(buf)
    return buf.getvalue()


# ------------------------------------------------------------------
# Plain text
# ------------------------------------------------------------------


def test_txt_utf8_is_decoded_and_trimmed():
    assert extract("  naïve café \n".encode("utf-8"), "text/plain") == "naïve café"


def test_txt_falls_back_to_latin1():
    assert read_text_from_txt(b"caf\xe9 au lait") == "café au lait"


def test_whitespace_only_text_is_not_an_error():
    assert extract(b"   \n\t ", "text/plain") == ""


def test_empty_payload_raises():
    with pytest.raises(ExtractionError, match="Empty file"):
        extract(b"", "text/plain")


# ------------------------------------------------------------------
# DOCX / DOC
# ------------------------------------------------------------------


@pytest.mark.parametrize("mime", [DOCX_TYPE, DOC_TYPE])
def test_docx_paragraphs_and_tables(mime):
    text = extract(_docx_bytes(), mime)
    assert text.startswith("Quarterly report")
    assert "Region | Revenue" in text
    assert "EMEA | 42" in text


def test_corrupt_docx_raises_with_cause():
    with pytest.raises(ExtractionError) as exc_info:
        extract(b"definitely not a zip archive", DOCX_TYPE)
    assert exc_info.value.__cause__ is not None


# ------------------------------------------------------------------
# PDF
# ------------------------------------------------------------------


def test_corrupt_pdf_raises_with_cause():
    with pytest.raises(ExtractionError, match="PDF") as exc_info:
        extract(b"%PDF-broken", "application/pdf")
    assert exc_info.value.__cause__ is not None


# ------------------------------------------------------------------
# Images
# ------------------------------------------------------------------


def test_image_becomes_data_url():
    data = b"\x89PNG\r\n\x1a\nfake"
    url = extract(data, "image/png")
    assert url == "data:image/png;base64," + base64.b64encode(data).decode()


def test_image_over_cap_rejected():
    with pytest.raises(ExtractionError, match="too large"):
        extract(b"x" * (MAX_IMAGE_BYTES + 1), "image/jpeg")


def test_image_at_cap_accepted():
    assert encode_image(b"x" * 10, "image/gif", max_bytes=10).startswith("data:image/gif;base64,")


def test_encode_image_rejects_non_image_mime():
    with pytest.raises(ExtractionError, match="Invalid MIME type"):
        encode_image(b"abc", "text/plain")


# ------------------------------------------------------------------
# Dispatch
# ------------------------------------------------------------------


def test_unsupported_type_raises():
    with pytest.raises(ExtractionError, match="Unsupported"):
        extract(b"a,b,c", "text/csv")


def test_supported_types_enumeration():
    types = supported_types()
    assert "application/pdf" in types
    assert "image/png" in types
    assert is_supported_type("image/x-icon")
    assert not is_supported_type("application/zip")
