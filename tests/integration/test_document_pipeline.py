import asyncio

import pytest

from conftest import handbook_text
from supportbot.core.exceptions import NotFoundError, UnsupportedTypeError, ValidationError
from supportbot.knowledge.ingestion.pipeline import DocumentProcessor, ProcessingQueue
from supportbot.knowledge.ingestion.service import DocumentService
from supportbot.knowledge.ingestion.storage import FileStorage
from supportbot.knowledge.retrieval.engine import RetrievalEngine
from supportbot.models import Document, DocumentStatus, MimeCategory

HANDBOOK = (
    "Refunds are issued within five business days. "
    "Contact support to start a refund.\n\n"
    "Shipping is free on orders over fifty dollars."
)


class BlockingParser:
    """Parser whose first call waits until released, so a second run can overtake it."""

    def __init__(self):
        self.release = asyncio.Event()
        self.calls = 0

    async def extract(self, file_path, mime_type):
        self.calls += 1
        if self.calls == 1:
            await self.release.wait()
            return "Stale text from the first run."
        return "Fresh text from the second run."


class GatedParser:
    """Parser that holds each extraction until the test releases it."""

    def __init__(self, text):
        self.text = text
        self.started = asyncio.Event()
        self.release = asyncio.Event()

    async def extract(self, file_path, mime_type):
        self.started.set()
        await self.release.wait()
        return self.text


def _pending_document(stored_file):
    return Document(
        title="Race",
        filename=stored_file.filename,
        original_name="race.txt",
        mime_type=MimeCategory.TEXT,
        file_size=stored_file.size,
        file_path=stored_file.path,
        uploaded_by="admin-1",
    )


async def _service(document_store, tmp_path, parser=None, max_upload_bytes=None):
    processor = DocumentProcessor(documents=document_store, parser=parser, chunk_size=500, chunk_overlap=100)
    queue = ProcessingQueue(processor)
    await queue.start()
    service = DocumentService(
        documents=document_store,
        storage=FileStorage(tmp_path),
        queue=queue,
        max_upload_bytes=max_upload_bytes,
    )
    return service, queue


@pytest.mark.asyncio
async def test_upload_processes_text_document_to_ready(document_store, tmp_path):
    service, queue = await _service(document_store, tmp_path)
    try:
        document = await service.upload(
            HANDBOOK.encode("utf-8"),
            original_name="handbook.txt",
            mime_type="text/plain",
            uploaded_by="admin-1",
        )
        assert document.status == DocumentStatus.PENDING
        assert document.title == "handbook.txt"
        assert document.filename.startswith("doc-") and document.filename.endswith(".txt")

        await queue.join()
    finally:
        await queue.stop()

    stored = await service.get(document.id)
    assert stored.status == DocumentStatus.READY
    assert stored.processing_error is None
    assert stored.raw_content == HANDBOOK
    assert stored.total_chunks == 1
    assert stored.word_count == len(HANDBOOK.split())
    assert stored.chunks[0].content.startswith("Refunds are issued within five business days.")

    results = await RetrievalEngine(document_store).retrieve("refund")
    assert results[0].document_id == document.id


@pytest.mark.asyncio
async def test_upload_moves_through_processing_into_three_chunks(document_store, tmp_path):
    text = handbook_text()
    parser = GatedParser(text)
    service, queue = await _service(document_store, tmp_path, parser=parser)
    try:
        document = await service.upload(
            text.encode("utf-8"), original_name="handbook.txt", mime_type="text/plain", uploaded_by="admin-1"
        )
        assert document.status == DocumentStatus.PENDING

        await asyncio.wait_for(parser.started.wait(), timeout=1)
        assert (await service.get(document.id)).status == DocumentStatus.PROCESSING

        parser.release.set()
        await queue.join()
    finally:
        await queue.stop()

    stored = await service.get(document.id)
    assert stored.status == DocumentStatus.READY
    assert stored.total_chunks == 3
    assert [chunk.chunk_index for chunk in stored.chunks] == [0, 1, 2]
    assert all(len(chunk.content) <= 500 for chunk in stored.chunks)


@pytest.mark.asyncio
async def test_extraction_failure_marks_document_as_error(document_store, tmp_path):
    service, queue = await _service(document_store, tmp_path)
    try:
        document = await service.upload(
            b"caf\xe9 \xff",
            original_name="latin1.txt",
            mime_type="text/plain",
            uploaded_by="admin-1",
            title="Legacy notes",
        )
        await queue.join()
    finally:
        await queue.stop()

    stored = await service.get(document.id)
    assert stored.title == "Legacy notes"
    assert stored.status == DocumentStatus.ERROR
    assert "encoding" in stored.processing_error
    assert stored.chunks == []


@pytest.mark.asyncio
async def test_upload_validation(document_store, tmp_path):
    service, queue = await _service(document_store, tmp_path, max_upload_bytes=16)
    try:
        with pytest.raises(UnsupportedTypeError):
            await service.upload(b"\x89PNG", original_name="logo.png", mime_type="image/png", uploaded_by="admin-1")
        with pytest.raises(ValidationError):
            await service.upload(b"x" * 17, original_name="big.txt", mime_type="text/plain", uploaded_by="admin-1")
    finally:
        await queue.stop()

    assert await service.list() == []
    assert list(tmp_path.iterdir()) == []


@pytest.mark.asyncio
async def test_stale_processing_run_does_not_overwrite_newer_result(document_store, tmp_path):
    parser = BlockingParser()
    processor = DocumentProcessor(documents=document_store, parser=parser, chunk_size=500, chunk_overlap=100)
    stored_file = await FileStorage(tmp_path).write(b"anything", extension=".txt")
    document = await document_store.save(_pending_document(stored_file))

    first = asyncio.create_task(processor.process(document.id))
    while parser.calls == 0:
        await asyncio.sleep(0)
    second = await processor.process(document.id)
    parser.release.set()
    stale = await first

    assert second.applied is True
    assert stale.applied is False
    assert stale.document is None
    stored = await document_store.get(document.id)
    assert stored.status == DocumentStatus.READY
    assert stored.raw_content == "Fresh text from the second run."
    assert stored.processing_generation == 2


@pytest.mark.asyncio
async def test_reprocess_and_delete(document_store, tmp_path):
    service, queue = await _service(document_store, tmp_path)
    try:
        document = await service.upload(
            HANDBOOK.encode("utf-8"), original_name="handbook.txt", mime_type="text/plain", uploaded_by="admin-1"
        )
        await queue.join()

        job = await service.reprocess(document.id)
        outcome = await job.wait()
        assert outcome.status == DocumentStatus.READY
        assert outcome.generation == 2

        updated = await service.update(document.id, title="Customer handbook", is_active=False)
        assert updated.title == "Customer handbook"
        assert await RetrievalEngine(document_store).retrieve("refund") == []

        await service.delete(document.id)
    finally:
        await queue.stop()

    assert list(tmp_path.iterdir()) == []
    with pytest.raises(NotFoundError):
        await service.get(document.id)
    with pytest.raises(NotFoundError):
        await service.reprocess(document.id)


@pytest.mark.asyncio
async def test_completion_callbacks_receive_terminal_document(document_store, tmp_path):
    outcomes = []

    async def record(outcome):
        outcomes.append(outcome)

    service, queue = await _service(document_store, tmp_path)
    queue.add_callback(record)
    try:
        document = await service.upload(
            HANDBOOK.encode("utf-8"), original_name="handbook.txt", mime_type="text/plain", uploaded_by="admin-1"
        )
        await queue.join()
    finally:
        await queue.stop()

    assert [(outcome.document_id, outcome.status) for outcome in outcomes] == [(document.id, DocumentStatus.READY)]
    terminal = outcomes[0].document
    assert terminal.status == DocumentStatus.READY
    assert terminal.total_chunks == 1
    assert terminal.raw_content == HANDBOOK


@pytest.mark.asyncio
async def test_file_storage_round_trip_and_missing_delete(tmp_path):
    storage = FileStorage(tmp_path)

    stored = await storage.write(b"Refund policy", extension=".txt")

    assert stored.filename.startswith("doc-") and stored.filename.endswith(".txt")
    assert await storage.read(stored.path) == b"Refund policy"
    assert await storage.delete(stored.path) is True
    assert await storage.delete(stored.path) is False
