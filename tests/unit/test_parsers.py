import pytest
from docx import Document as DocxDocument

from supportbot.core.exceptions import ExtractionError, UnsupportedTypeError
from supportbot.knowledge.ingestion.parsers import DocumentParser
from supportbot.models import MimeCategory


@pytest.mark.asyncio
async def test_plain_text_is_decoded_as_utf8(tmp_path):
    path = tmp_path / "notes.txt"
    path.write_bytes("\ufeffCafé hours are 9 to 5.".encode("utf-8"))

    text = await DocumentParser().extract(path, "text/plain")

    assert text == "Café hours are 9 to 5."


@pytest.mark.asyncio
async def test_undecodable_text_is_an_extraction_error(tmp_path):
    path = tmp_path / "latin.txt"
    path.write_bytes(b"caf\xe9 \xff\xfe")

    with pytest.raises(ExtractionError):
        await DocumentParser().extract(path, MimeCategory.TEXT)


@pytest.mark.asyncio
async def test_docx_paragraphs_are_joined_by_newlines(tmp_path):
    path = tmp_path / "guide.docx"
    doc = DocxDocument()
    doc.add_paragraph("First paragraph.")
    doc.add_paragraph("")
    doc.add_paragraph("Second paragraph.")
    doc.save(str(path))

    text = await DocumentParser().extract(path, MimeCategory.DOCX)

    assert text == "First paragraph.\nSecond paragraph."


@pytest.mark.asyncio
async def test_corrupt_pdf_is_an_extraction_error(tmp_path):
    path = tmp_path / "broken.pdf"
    path.write_bytes(b"not really a pdf")

    with pytest.raises(ExtractionError):
        await DocumentParser().extract(path, MimeCategory.PDF)


@pytest.mark.asyncio
async def test_missing_file_is_an_extraction_error(tmp_path):
    with pytest.raises(ExtractionError):
        await DocumentParser().extract(tmp_path / "gone.txt", MimeCategory.TEXT)


@pytest.mark.asyncio
async def test_unsupported_type_is_rejected(tmp_path):
    path = tmp_path / "image.png"
    path.write_bytes(b"\x89PNG")

    with pytest.raises(UnsupportedTypeError):
        await DocumentParser().extract(path, "image/png")
