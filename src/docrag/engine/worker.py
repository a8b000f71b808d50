"""Background dispatch of indexing work."""

from __future__ import annotations

import logging
import queue
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import TYPE_CHECKING, Callable, Optional

from docrag.models import ProcessResult

if TYPE_CHECKING:
    from docrag.engine.pipeline import CancellationToken, IndexingPipeline

logger = logging.getLogger(__name__)

_STOP = object()


class IndexingWorker:
    """Runs indexing off the caller's thread.

    Saved documents go through a bounded queue drained by one worker
    thread, so a save never waits on the embedding provider. Full reindexes
    run on a separate single-thread executor and report through a Future.
    """

    def __init__(self, pipeline: IndexingPipeline, maxsize: int = 256):
        self.pipeline = pipeline
        self._queue: queue.Queue = queue.Queue(maxsize=maxsize)
        self._thread: Optional[threading.Thread] = None
        self._executor: Optional[ThreadPoolExecutor] = None
        self._reindex: Optional[Future] = None
        self._reindex_lock = threading.Lock()

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    @property
    def pending(self) -> int:
        """Documents waiting in the queue."""
        return self._queue.qsize()

    def start(self) -> None:
        """Start the worker thread."""
        if self.running:
            return
        self._thread = threading.Thread(
            target=self._run, name="docrag-indexer", daemon=True
        )
        self._thread.start()
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="docrag-reindex")
        logger.debug("Indexing worker started")

    def submit(self, path: str, content: str) -> bool:
        """Queue a document for indexing without blocking.

        The document's version is stamped now, so an older copy indexed
        later by a full reindex cannot replace it.

        Returns:
            False if the worker is not running or the queue is full.
        """
        if not self.running:
            logger.warning(f"Indexing worker not running, dropping update of {path}")
            return False
        try:
            self._queue.put_nowait((path, content, self.pipeline.clock()))
        except queue.Full:
            logger.warning(f"Indexing queue full, dropping update of {path}")
            return False
        return True

    def submit_reindex(
        self,
        cancel: Optional[CancellationToken] = None,
        on_complete: Optional[Callable[[Optional[ProcessResult]], None]] = None,
    ) -> Future:
        """Run a full reindex in the background.

        While a reindex is queued or running, further requests resolve to
        None immediately instead of queueing a second pass.
        """
        if self._executor is None:
            raise RuntimeError("Indexing worker is not started")

        with self._reindex_lock:
            if self._reindex is not None and not self._reindex.done():
                ignored: Future = Future()
                ignored.set_result(None)
                return ignored
            future = self._executor.submit(self.pipeline.process_all_documents, cancel)
            self._reindex = future

        if on_complete is not None:
            def _notify(done: Future) -> None:
                if done.cancelled() or done.exception() is not None:
                    return
                on_complete(done.result())

            future.add_done_callback(_notify)
        return future

    def join(self) -> None:
        """Block until every queued document has been processed."""
        self._queue.join()

    def stop(self, drain: bool = True, timeout: Optional[float] = None) -> None:
        """Stop the worker.

        Args:
            drain: Process queued documents first; otherwise discard them
            timeout: Seconds to wait for the worker thread
        """
        if not drain:
            self._discard_pending()
        if self.running:
            self._queue.put(_STOP)
            self._thread.join(timeout)
        self._thread = None
        if self._executor is not None:
            self._executor.shutdown(wait=drain)
            self._executor = None
        logger.debug("Indexing worker stopped")

    def _discard_pending(self) -> None:
        while True:
            try:
                self._queue.get_nowait()
            except queue.Empty:
                return
            self._queue.task_done()

    def _run(self) -> None:
        while True:
            item = self._queue.get()
            try:
                if item is _STOP:
                    return
                path, content, updated_at = item
                self.pipeline.process_document(path, content, updated_at)
            except Exception:
                logger.exception("Indexing worker task failed")
            finally:
                self._queue.task_done()
