"""
Odds Stream
===========

Bounded producer/consumer channel for quote updates.

Producers call submit(); a single consumer thread applies each quote to the
OddsEngine in arrival order. submit() blocks while the queue is full.

Stop semantics:
    stop()            - quotes queued before the stop are discarded
    stop(drain=True)  - quotes queued before the stop are processed first

Quotes submitted after a stop wait in the queue and are processed after
the next start().
"""

from __future__ import annotations

import queue
import threading
from typing import TYPE_CHECKING, Any, Callable, Mapping, Optional, Union
import logging

from .schemas import OddsQuote

if TYPE_CHECKING:
    from houseedge.strategy.ev import OddsEngine

logger = logging.getLogger(__name__)

_STOP = object()


class OddsStream:
    """Single-consumer quote ingestion loop."""

    def __init__(
        self,
        engine: "OddsEngine",
        maxsize: int = 100,
        on_quote: Optional[Callable[[OddsQuote], None]] = None,
    ):
        self.engine = engine
        self.on_quote = on_quote
        self._queue: "queue.Queue[Any]" = queue.Queue(maxsize=maxsize)
        self._thread: Optional[threading.Thread] = None
        self._running = False
        self._drain = False
        self._discarded = 0
        self._lock = threading.Lock()
        self.processed = 0
        self.failed = 0

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    def submit(self, quote: Union[OddsQuote, Mapping[str, Any]]) -> None:
        """Enqueue a quote. Blocks while the queue is full."""
        self._queue.put(quote)

    def start(self) -> None:
        with self._lock:
            if self._running:
                return
            self._running = True
            self._drain = False
            self._discarded = 0
            self._thread = threading.Thread(target=self._run_loop, name="odds-stream", daemon=True)
            self._thread.start()
        logger.info("Odds stream started")

    def stop(self, drain: bool = False) -> int:
        """
        Stop the consumer and wait for it to exit.

        Returns the number of queued quotes discarded (0 when draining).
        """
        with self._lock:
            if not self._running:
                return 0
            self._drain = drain
            self._running = False
            thread = self._thread
            self._thread = None

        # Marks the stop point in the queue
        self._queue.put(_STOP)
        if thread is not None:
            thread.join()

        if self._discarded:
            logger.warning(f"Odds stream stopped, discarded {self._discarded} queued quotes")
        logger.info(f"Odds stream stopped ({self.processed} processed)")
        return self._discarded

    def _run_loop(self) -> None:
        try:
            while True:
                item = self._queue.get()

                if item is _STOP:
                    return

                if not self._running and not self._drain:
                    self._discarded += 1
                    continue

                self._process(item)
        finally:
            self._running = False

    def _process(self, item: Any) -> None:
        try:
            quote = self.engine.ingest(item)
        except ValueError as e:
            # pydantic.ValidationError subclasses ValueError
            self.failed += 1
            logger.error(f"Rejected quote from stream: {e}")
            return

        self.processed += 1
        if self.on_quote is None:
            return
        try:
            self.on_quote(quote)
        except Exception:
            # The quote is already stored; only the callback failed
            self.failed += 1
            logger.exception(f"on_quote callback failed for {quote.bookmaker}/{quote.match_id}")
