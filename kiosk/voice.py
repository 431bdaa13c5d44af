from __future__ import annotations

import asyncio
import logging
from typing import Callable, Optional, Protocol

logger = logging.getLogger(__name__)

ResultCallback = Callable[[str], None]
StatusCallback = Callable[[bool], None]


class CaptureService(Protocol):
    """Speech-to-text facility that owns the microphone.

    Implementations may call the bound callbacks from any thread.
    """

    @property
    def is_listening(self) -> bool: ...

    def start(self) -> None: ...

    def stop(self) -> None: ...

    def bind(self, on_result: ResultCallback, on_status: StatusCallback) -> None: ...


class BrowserCapture:
    """Capture driven by the kiosk page's own speech recognition.

    ``start``/``stop`` only flip the microphone flag the page polls; the page
    reports back through ``push_result`` / ``push_end``. One recognition per
    start, like the browser API.
    """

    def __init__(self) -> None:
        self._listening = False
        self._on_result: Optional[ResultCallback] = None
        self._on_status: Optional[StatusCallback] = None

    @property
    def is_listening(self) -> bool:
        return self._listening

    def bind(self, on_result: ResultCallback, on_status: StatusCallback) -> None:
        self._on_result = on_result
        self._on_status = on_status

    def start(self) -> None:
        self._set_listening(True)

    def stop(self) -> None:
        self._set_listening(False)

    def push_result(self, text: str) -> None:
        was_listening = self._listening
        self._listening = False
        # 결과가 상태 변경보다 먼저 전달되어야 함
        if self._on_result:
            self._on_result(text)
        if was_listening and self._on_status:
            self._on_status(False)

    def push_end(self) -> None:
        self._set_listening(False)

    def _set_listening(self, value: bool) -> None:
        if self._listening == value:
            return
        self._listening = value
        if self._on_status:
            self._on_status(value)


class VoiceChannel:
    """Capability surface over a capture service.

    Results and status changes are re-posted onto the kiosk event loop so the
    state machine only ever sees them from its own thread.
    """

    def __init__(self, capture: CaptureService, loop: asyncio.AbstractEventLoop) -> None:
        self._capture = capture
        self._loop = loop
        self._handler: Optional[ResultCallback] = None
        self._status_listener: Optional[StatusCallback] = None
        capture.bind(self._on_capture_result, self._on_capture_status)

    @property
    def capture(self) -> CaptureService:
        return self._capture

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        return self._loop

    @property
    def is_listening(self) -> bool:
        return self._capture.is_listening

    def set_handler(self, handler: ResultCallback) -> None:
        if self._handler is not None and self._handler is not handler:
            logger.warning("Replacing voice result handler %r", self._handler)
        self._handler = handler

    def set_status_listener(self, listener: StatusCallback) -> None:
        self._status_listener = listener

    # ------------------------------------------------------------------
    def start_listening(self) -> None:
        if self._capture.is_listening:
            return
        logger.debug("Arming microphone")
        self._capture.start()

    def stop_listening(self) -> None:
        if not self._capture.is_listening:
            return
        logger.debug("Disarming microphone")
        self._capture.stop()

    # ------------------------------------------------------------------
    def _on_capture_result(self, text: str) -> None:
        self._loop.call_soon_threadsafe(self._deliver, text)

    def _on_capture_status(self, listening: bool) -> None:
        self._loop.call_soon_threadsafe(self._notify_status, listening)

    def _deliver(self, text: str) -> None:
        if self._handler is None:
            logger.warning("Dropping recognized text with no handler: %s", text)
            return
        self._handler(text)

    def _notify_status(self, listening: bool) -> None:
        if self._status_listener:
            self._status_listener(listening)


__all__ = ["CaptureService", "BrowserCapture", "VoiceChannel"]
