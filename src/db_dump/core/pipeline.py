"""Bounded producer/consumer pipeline between row rendering and the output sink."""

import logging
import queue
import threading
from typing import Optional, TextIO

logger = logging.getLogger(__name__)

# Marks the end of input for the writer thread
_END_OF_INPUT = object()


class OutputPipeline:
    """Hands rendered fragments to a single writer thread through a bounded queue.

    The writer thread is the only code touching the sink while the pipeline is
    open. put() blocks while the queue is full. close() signals end of input,
    waits for the queue to drain and flushes the sink.
    """

    def __init__(self, sink: TextIO, max_size: int = 200):
        """
        Initialize output pipeline.

        Args:
            sink: Text stream written by the writer thread
            max_size: Maximum fragments waiting in the queue
        """
        if max_size < 1:
            raise ValueError(f"max_size must be at least 1, got {max_size}")
        self.sink = sink
        self.max_size = max_size
        self._queue: "queue.Queue[object]" = queue.Queue(maxsize=max_size)
        self._thread: Optional[threading.Thread] = None
        self._error: Optional[BaseException] = None
        self._closed = False

    def start(self) -> None:
        """Start the writer thread."""
        if self._thread is not None:
            return  # Already started

        self._thread = threading.Thread(
            target=self._drain, name="db-dump-writer", daemon=True
        )
        self._thread.start()

    def put(self, fragment: str) -> None:
        """
        Queue a fragment for writing, blocking while the queue is full.

        Raises:
            RuntimeError: If the pipeline is closed or not started
            OSError: If the writer thread failed writing to the sink
        """
        if self._closed or self._thread is None:
            raise RuntimeError("OutputPipeline is not running")
        self._raise_writer_error()

        while True:
            try:
                self._queue.put(fragment, timeout=0.1)
                return
            except queue.Full:
                # A dead writer would never free a slot
                if not self._thread.is_alive():
                    self._raise_writer_error()
                    raise RuntimeError("Writer thread stopped unexpectedly")

    def close(self) -> None:
        """
        Signal end of input, wait for the writer to drain and flush the sink.

        Raises:
            OSError: If the writer thread failed writing to the sink
        """
        if self._closed:
            return
        self._closed = True

        if self._thread is not None:
            if self._thread.is_alive():
                self._queue.put(_END_OF_INPUT)
            self._thread.join()
            self._thread = None

        self._raise_writer_error()

    def _drain(self) -> None:
        """Writer thread body."""
        try:
            while True:
                fragment = self._queue.get()
                if fragment is _END_OF_INPUT:
                    break
                self.sink.write(fragment)  # type: ignore[arg-type]
            self.sink.flush()
        except BaseException as e:
            logger.error(f"Output writer failed: {e}")
            self._error = e
            # Keep consuming so a blocked producer can reach close()
            while self._queue.get() is not _END_OF_INPUT:
                pass

    def _raise_writer_error(self) -> None:
        if self._error is not None:
            raise self._error

    def __enter__(self) -> "OutputPipeline":
        """Context manager entry."""
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Context manager exit."""
        self.close()
