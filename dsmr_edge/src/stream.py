"""
Async driver that turns a continuous P1 byte stream into decoded telegrams.

Runs one background task per byte source that reads lines, frames them,
and runs each frame through checksum, splitting and decoding. Designed to
be robust:

- A bad telegram (framing, CRC, malformed line, I/O failure) is logged and
  discarded; the loop moves on to the next telegram. After an I/O failure
  it first waits a retry delay (or until stopped).
- Decoded telegrams are published to a channel of depth 1. Publishing
  waits until the previous telegram was taken, so a slow consumer pauses
  reading instead of growing a backlog.
- Stopping is cooperative: a stop event is checked before every telegram
  and :meth:`TelegramStream.stop` cancels a pending read or publish.
- End of input stops the loop and closes the channel.

Usage::

    async with TelegramStream(reader) as stream:
        async for result in stream:
            print(result.telegram.model_dump_json(by_alias=True))

CHANGELOG:
- 2026-10-19: Initial creation
- 2026-10-20: Back off after read failures so a dead port cannot starve the
  event loop

TODO:
- None
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import TYPE_CHECKING, Protocol

from dsmr_edge.src.decoder import parse_frame
from dsmr_edge.src.exceptions import (
    SourceExhausted,
    TelegramError,
    TelegramReadError,
)
from dsmr_edge.src.framer import TelegramFramer

if TYPE_CHECKING:
    from dsmr_edge.src.framer import Frame
    from dsmr_edge.src.health import HealthWriter
    from dsmr_edge.src.models import DecodeResult

logger = logging.getLogger(__name__)

DEFAULT_RETRY_DELAY_S = 1.0
"""Pause after a failed read, so a dead port is not polled in a tight loop."""


class LineSource(Protocol):
    """Anything with an ``asyncio.StreamReader``-style ``readline()``."""

    async def readline(self) -> bytes: ...


# ---------------------------------------------------------------------------
# Single-telegram read (shared by the loop and direct callers)
# ---------------------------------------------------------------------------


async def read_frame(source: LineSource, framer: TelegramFramer) -> Frame:
    """Read lines from *source* until *framer* completes a telegram.

    Raises:
        SourceExhausted: If the source hits end of input.
        TelegramReadError: If the source fails.
        FramingError: If the telegram layout is broken.
    """
    while True:
        try:
            line = await source.readline()
        except (OSError, ValueError) as err:
            framer.reset()
            raise TelegramReadError(f"read failed: {err}") from err

        if not line:
            framer.reset()
            raise SourceExhausted("end of input")

        frame = framer.feed(line)
        if frame is not None:
            return frame


async def read_telegram(source: LineSource, framer: TelegramFramer) -> DecodeResult:
    """Read, verify, split and decode the next telegram from *source*.

    Raises:
        TelegramError: On any telegram-level failure.
    """
    frame = await read_frame(source, framer)
    return parse_frame(frame)


# ---------------------------------------------------------------------------
# Stream driver
# ---------------------------------------------------------------------------


class TelegramStream:
    """Background reader publishing decoded telegrams from one byte source.

    The stream is either running (background task alive) or stopped.
    Consumers take results with :meth:`get` or ``async for``; both end
    once the stream has stopped and the channel is drained.

    Args:
        source: Byte source with an async ``readline()``.
        health: Optional HealthWriter updated on every telegram and error.
        retry_delay_s: Seconds to wait after a failed read before reading
            again. The wait ends early when the stream is stopped.
    """

    def __init__(
        self,
        source: LineSource,
        *,
        health: HealthWriter | None = None,
        retry_delay_s: float = DEFAULT_RETRY_DELAY_S,
    ) -> None:
        self._source = source
        self._health = health
        self._retry_delay_s = retry_delay_s
        self._framer = TelegramFramer()
        self._queue: asyncio.Queue[DecodeResult] = asyncio.Queue(maxsize=1)
        self._stop_event = asyncio.Event()
        self._closed = asyncio.Event()
        self._task: asyncio.Task[None] | None = None
        self.decoded: int = 0
        self.discarded: int = 0

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def running(self) -> bool:
        """``True`` while the background task is alive."""
        return self._task is not None and not self._task.done()

    @property
    def closed(self) -> bool:
        """``True`` once the loop has ended and no more results will come."""
        return self._closed.is_set()

    def start(self) -> None:
        """Spawn the background read loop. Calling it twice is an error."""
        if self._task is not None:
            raise RuntimeError("TelegramStream already started")
        self._task = asyncio.create_task(self._run(), name="p1-telegram-stream")

    async def stop(self) -> None:
        """Stop reading and close the channel.

        Cancels a read or publish in progress; a telegram that was still
        being read is dropped. Safe to call more than once.
        """
        self._stop_event.set()
        if self._task is not None:
            if not self._task.done():
                self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
        # A task cancelled before its first step never runs its finally.
        self._closed.set()

    async def __aenter__(self) -> TelegramStream:
        """Enter async context manager: start the stream."""
        self.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        """Exit async context manager: stop the stream."""
        await self.stop()

    # ------------------------------------------------------------------
    # Consumer API
    # ------------------------------------------------------------------

    async def get(self) -> DecodeResult | None:
        """Wait for the next decoded telegram.

        Returns:
            The next :class:`DecodeResult`, or ``None`` once the stream is
            closed and every published result has been taken.
        """
        while True:
            with contextlib.suppress(asyncio.QueueEmpty):
                return self._queue.get_nowait()
            if self._closed.is_set():
                return None

            getter = asyncio.ensure_future(self._queue.get())
            closer = asyncio.ensure_future(self._closed.wait())
            try:
                await asyncio.wait(
                    {getter, closer}, return_when=asyncio.FIRST_COMPLETED
                )
            finally:
                closer.cancel()
                if not getter.done():
                    getter.cancel()
            if getter.done() and not getter.cancelled():
                return getter.result()

    def __aiter__(self) -> TelegramStream:
        return self

    async def __anext__(self) -> DecodeResult:
        result = await self.get()
        if result is None:
            raise StopAsyncIteration
        return result

    # ------------------------------------------------------------------
    # Read loop
    # ------------------------------------------------------------------

    async def _run(self) -> None:
        logger.info("Telegram stream started")
        try:
            while not self._stop_event.is_set():
                try:
                    result = await read_telegram(self._source, self._framer)
                except SourceExhausted:
                    logger.info("Byte source exhausted, stopping telegram stream")
                    break
                except TelegramReadError as err:
                    self._record_discard(err)
                    await self._wait_before_retry()
                    continue
                except TelegramError as err:
                    self._record_discard(err)
                    # Yield so a source that never blocks cannot starve the loop.
                    await asyncio.sleep(0)
                    continue

                self._record_decode(result)
                await self._queue.put(result)
        finally:
            self._stop_event.set()
            self._closed.set()
            logger.info(
                "Telegram stream stopped (decoded=%d, discarded=%d)",
                self.decoded,
                self.discarded,
            )

    async def _wait_before_retry(self) -> None:
        # A failed source usually fails again at once; back off until stopped.
        with contextlib.suppress(TimeoutError):
            await asyncio.wait_for(
                self._stop_event.wait(),
                timeout=self._retry_delay_s,
            )

    def _record_discard(self, err: TelegramError) -> None:
        self.discarded += 1
        logger.warning("Discarding telegram: %s", err)
        if self._health is not None:
            try:
                self._health.record_error(str(err))
            except OSError:
                logger.warning("Failed to write health file", exc_info=True)

    def _record_decode(self, result: DecodeResult) -> None:
        self.decoded += 1
        for error in result.errors:
            logger.warning("Telegram field error: %s", error)
        if self._health is not None:
            try:
                self._health.record_telegram(field_errors=len(result.errors))
            except OSError:
                logger.warning("Failed to write health file", exc_info=True)
