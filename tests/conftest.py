import asyncio
import os
import sys
from typing import Any, Dict, List, Optional

# 프로젝트 루트를 PYTHONPATH에 추가
ROOT_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT_DIR not in sys.path:
    sys.path.insert(0, ROOT_DIR)

import pytest

from kiosk import (
    BrowserCapture,
    ConversationStateMachine,
    InterpreterReply,
    KioskConfig,
    KioskSession,
    MenuCatalog,
    ModalNotifier,
    VoiceChannel,
)


MENU = {
    "돼지국밥": 9000,
    "순대국밥": 9000,
    "내장국밥": 9500,
    "섞어국밥": 9500,
    "수육 반접시": 15000,
    "수육 한접시": 28000,
}


class FakeInterpreter:
    """Scripted interpreter; set ``gate`` to hold replies until it is set."""

    def __init__(
        self,
        replies: Optional[List[Any]] = None,
        menu: Optional[Dict[str, int]] = None,
        menu_error: Optional[Exception] = None,
    ) -> None:
        self.replies = list(replies or [])
        self.menu = dict(MENU if menu is None else menu)
        self.menu_error = menu_error
        self.calls: List[str] = []
        self.gate: Optional[asyncio.Event] = None

    def fetch_menu(self) -> Dict[str, int]:
        if self.menu_error is not None:
            raise self.menu_error
        return dict(self.menu)

    async def process_voice_command(self, text: str) -> InterpreterReply:
        self.calls.append(text)
        if self.gate is not None:
            await self.gate.wait()
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return InterpreterReply.model_validate(reply)


class RecordingCapture(BrowserCapture):
    def __init__(self) -> None:
        super().__init__()
        self.starts = 0
        self.stops = 0

    def start(self) -> None:
        self.starts += 1
        super().start()

    def stop(self) -> None:
        self.stops += 1
        super().stop()


class CountingModal(ModalNotifier):
    def __init__(self) -> None:
        super().__init__()
        self.opened: List[str] = []

    def open(self, title: str, message: str) -> None:
        self.opened.append(title)
        super().open(title, message)


async def settle(seconds: float = 0.01) -> None:
    """Let call_soon_threadsafe callbacks and resolver tasks run."""
    await asyncio.sleep(seconds)


@pytest.fixture
def fast_config() -> KioskConfig:
    return KioskConfig(greeting_delay=0.05, staff_call_delay=0.3, follow_up_close_delay=0.1)


@pytest.fixture
def catalog() -> MenuCatalog:
    c = MenuCatalog()
    c.load(MENU)
    return c


@pytest.fixture
def make_kiosk(catalog, fast_config):
    """Build a state machine on the running loop (call inside a coroutine)."""

    def _make(interpreter=None, config=None, capture=None, session=None):
        channel = VoiceChannel(capture or RecordingCapture(), asyncio.get_running_loop())
        return ConversationStateMachine(
            catalog,
            interpreter or FakeInterpreter(),
            channel,
            config=config or fast_config,
            session=session or KioskSession(modal=CountingModal()),
        )

    return _make
