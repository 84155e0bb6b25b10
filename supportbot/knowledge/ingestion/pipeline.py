"""Document processing pipeline: extract, chunk and record the outcome."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, List, Optional

from supportbot.core.config import settings
from supportbot.core.exceptions import ExtractionError, NotFoundError
from supportbot.knowledge.ingestion.chunkers import TextChunker
from supportbot.knowledge.ingestion.parsers import DocumentParser
from supportbot.knowledge.stores.base import DocumentStore
from supportbot.models import Chunk, Document, DocumentStatus

logger = logging.getLogger(__name__)


@dataclass
class ProcessingOutcome:
    document_id: str
    generation: int
    status: DocumentStatus
    error: Optional[str] = None
    total_chunks: int = 0
    # False when a newer run superseded this one, or the document was deleted mid-run.
    applied: bool = True
    # The stored terminal document; None when the result was not applied.
    document: Optional[Document] = None


CompletionCallback = Callable[[ProcessingOutcome], Awaitable[None]]


class DocumentProcessor:
    """Run one extraction pass for a document and write its terminal status."""

    def __init__(
        self,
        *,
        documents: DocumentStore,
        parser: Optional[DocumentParser] = None,
        chunker: Optional[TextChunker] = None,
        chunk_size: Optional[int] = None,
        chunk_overlap: Optional[int] = None,
    ) -> None:
        self.documents = documents
        self.parser = parser or DocumentParser()
        self.chunker = chunker or TextChunker()
        self.chunk_size = chunk_size or settings.CHUNK_SIZE
        self.chunk_overlap = settings.CHUNK_OVERLAP if chunk_overlap is None else chunk_overlap

    async def process(self, document_id: str) -> ProcessingOutcome:
        document = await self.documents.get(document_id)
        if document is None:
            raise NotFoundError(f"Document {document_id} not found")

        generation = document.begin_processing()
        await self.documents.save(document)

        try:
            raw_text = await self.parser.extract(document.file_path, document.mime_type)
            chunks = self.chunker.chunk(raw_text, chunk_size=self.chunk_size, overlap=self.chunk_overlap)
        except ExtractionError as exc:
            logger.error("Extraction failed for document %s: %s", document_id, exc.message)
            return await self._finish(document_id, generation, error=exc.message)
        except Exception as exc:
            logger.exception("Processing failed for document %s", document_id)
            return await self._finish(document_id, generation, error=str(exc) or exc.__class__.__name__)

        return await self._finish(document_id, generation, raw_text=raw_text, chunks=chunks)

    async def _finish(
        self,
        document_id: str,
        generation: int,
        *,
        raw_text: Optional[str] = None,
        chunks: Optional[List[Chunk]] = None,
        error: Optional[str] = None,
    ) -> ProcessingOutcome:
        terminal = DocumentStatus.ERROR if error is not None else DocumentStatus.READY
        current = await self.documents.get(document_id)

        if current is None:
            logger.warning("Document %s was deleted while processing; discarding result", document_id)
            return ProcessingOutcome(document_id, generation, terminal, error=error, applied=False)

        if current.processing_generation != generation:
            logger.info(
                "Discarding stale processing result for document %s (run %d, current %d)",
                document_id,
                generation,
                current.processing_generation,
            )
            return ProcessingOutcome(document_id, generation, terminal, error=error, applied=False)

        if error is not None:
            current.transition_to(DocumentStatus.ERROR)
            current.processing_error = error
        else:
            current.raw_content = raw_text or ""
            current.chunks = list(chunks or [])
            current.word_count = len(current.raw_content.split())
            current.processing_error = None
            current.transition_to(DocumentStatus.READY)

        await self.documents.save(current)
        return ProcessingOutcome(
            document_id,
            generation,
            current.status,
            error=error,
            total_chunks=current.total_chunks,
            document=current,
        )


@dataclass
class ProcessingJob:
    document_id: str
    done: asyncio.Future = field(repr=False)

    async def wait(self) -> ProcessingOutcome:
        return await asyncio.shield(self.done)


class ProcessingQueue:
    """Background workers draining document processing jobs.

    Uploads enqueue and return immediately; callers that need the result
    (tests, the CLI) await the returned job instead of polling status.
    """

    def __init__(
        self,
        processor: DocumentProcessor,
        *,
        workers: int = 1,
        on_complete: Optional[CompletionCallback] = None,
    ) -> None:
        self.processor = processor
        self.workers = max(1, workers)
        self._callbacks: List[CompletionCallback] = [on_complete] if on_complete else []
        self._queue: asyncio.Queue[ProcessingJob] = asyncio.Queue()
        self._tasks: List[asyncio.Task] = []

    @property
    def running(self) -> bool:
        return any(not task.done() for task in self._tasks)

    def add_callback(self, callback: CompletionCallback) -> None:
        self._callbacks.append(callback)

    async def start(self) -> None:
        if self.running:
            return
        self._tasks = [asyncio.create_task(self._consume(index)) for index in range(self.workers)]
        logger.info("Document processing queue started with %d worker(s)", self.workers)

    async def stop(self) -> None:
        for task in self._tasks:
            task.cancel()
        for task in self._tasks:
            with contextlib.suppress(asyncio.CancelledError):
                await task
        self._tasks = []

    def enqueue(self, document_id: str) -> ProcessingJob:
        job = ProcessingJob(document_id=document_id, done=asyncio.get_running_loop().create_future())
        self._queue.put_nowait(job)
        logger.debug("Queued processing job for document %s (depth=%d)", document_id, self._queue.qsize())
        return job

    async def join(self) -> None:
        """Wait until every queued job has finished."""

        await self._queue.join()

    async def _consume(self, worker_index: int) -> None:
        while True:
            job = await self._queue.get()
            try:
                await self._run(job)
            finally:
                self._queue.task_done()

    async def _run(self, job: ProcessingJob) -> None:
        try:
            outcome = await self.processor.process(job.document_id)
        except asyncio.CancelledError:
            job.done.cancel()
            raise
        except Exception as exc:
            logger.exception("Processing job for document %s failed", job.document_id)
            if not job.done.done():
                job.done.set_exception(exc)
            return

        if outcome.applied:
            logger.info(
                "Document %s processed: status=%s chunks=%d",
                outcome.document_id,
                outcome.status.value,
                outcome.total_chunks,
            )
        if not job.done.done():
            job.done.set_result(outcome)

        for callback in self._callbacks:
            try:
                await callback(outcome)
            except Exception:
                logger.exception("Processing completion callback failed for document %s", job.document_id)
