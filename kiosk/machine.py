from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Dict, Optional, Set

from .config import KioskConfig
from .interpreter import CommandInterpreterClient
from .menus import MenuCatalog
from .resolver import CommandResolver
from .session import KioskSession
from .state import ConversationState
from .voice import VoiceChannel

logger = logging.getLogger(__name__)

GREETING_TITLE = "음성 주문"
GREETING_MESSAGE = "안녕하세요, 손님, 오늘은 무엇을 주문하실건가요?"
EMPTY_ORDER_TITLE = "주문 오류"
EMPTY_ORDER_MESSAGE = "주문할 메뉴를 선택해주세요."
COMPLETE_TITLE = "주문 완료"
COMPLETE_FMT = "주문이 완료되었습니다! 감사합니다.\n\n주문 내역:\n{summary}\n\n총 금액: {total:,}원"
LISTENING_INDICATOR = "음성 인식 중..."
PROCESSING_INDICATOR = "주문 처리 중..."


class ConversationStateMachine:
    """Single writer of the conversation state.

    Everything runs on one asyncio loop: user actions and timer callbacks are
    plain synchronous calls, and each recognized utterance becomes a resolver
    task. State-owned timers die with the state that scheduled them.
    """

    def __init__(
        self,
        catalog: MenuCatalog,
        interpreter: CommandInterpreterClient,
        channel: VoiceChannel,
        config: Optional[KioskConfig] = None,
        session: Optional[KioskSession] = None,
    ) -> None:
        self.config = config or KioskConfig()
        self.session = session or KioskSession()
        self.catalog = catalog
        self.channel = channel
        self.resolver = CommandResolver(
            self,
            catalog,
            interpreter,
            follow_up_close_delay=self.config.follow_up_close_delay,
        )
        self._loop = channel.loop
        self._state_timer: Optional[asyncio.TimerHandle] = None
        self._auto_close: Optional[asyncio.TimerHandle] = None
        self._tasks: Set[asyncio.Task] = set()
        self._closed = False

        channel.set_handler(self._on_voice_result)
        channel.set_status_listener(self._on_listening_changed)

    @property
    def state(self) -> ConversationState:
        return self.session.state

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------
    def transition(self, new_state: ConversationState) -> None:
        old_state = self.session.state
        if new_state == old_state:
            self.sync_channel()
            return
        self._cancel_timers()
        self.session.state = new_state
        logger.info("Conversation state: %s -> %s", old_state.value, new_state.value)
        self._enter(new_state)
        self.sync_channel()

    def _enter(self, state: ConversationState) -> None:
        if state == ConversationState.GREETING:
            self.session.modal.open(GREETING_TITLE, GREETING_MESSAGE)
            self._state_timer = self._later(self.config.greeting_delay, self._finish_greeting)
        elif state == ConversationState.CALLING_STAFF:
            self._state_timer = self._later(self.config.staff_call_delay, self._finish_staff_call)

    def _finish_greeting(self) -> None:
        self._state_timer = None
        self.close_modal()
        self.transition(ConversationState.LISTENING)

    def _finish_staff_call(self) -> None:
        self._state_timer = None
        self.close_modal()

    def sync_channel(self) -> None:
        """Arm the microphone in the ready states, disarm it everywhere else."""
        if self._closed:
            return
        if self.session.ready_for_speech:
            if not self.channel.is_listening and not self.session.is_processing_voice:
                self.channel.start_listening()
        else:
            self.channel.stop_listening()

    # ------------------------------------------------------------------
    # Modal
    # ------------------------------------------------------------------
    def close_modal(self) -> None:
        self._cancel_auto_close()
        cascade = self.session.modal.close(self.session.state)
        if cascade is None:
            return
        if cascade.clear_ledger:
            self.session.ledger.clear()
        self.transition(cascade.next_state)

    def schedule_modal_auto_close(self, delay: float) -> None:
        self._cancel(self._auto_close)
        self._auto_close = self._later(delay, self._auto_close_modal)

    def _auto_close_modal(self) -> None:
        self._auto_close = None
        if self.session.modal.is_open:
            self.close_modal()

    # ------------------------------------------------------------------
    # User actions
    # ------------------------------------------------------------------
    def toggle_voice_mode(self) -> bool:
        if not self.voice_button_enabled:
            logger.info("Voice mode toggle ignored in %s", self.session.state.value)
            return False
        self.transition(ConversationState.GREETING)
        return True

    def tap_menu_item(self, menu_id: int) -> None:
        item = self.catalog.get(menu_id)
        if item is None:
            raise KeyError(menu_id)
        self.session.ledger.add(item)

    def complete_order(self) -> bool:
        ledger = self.session.ledger
        if ledger.is_empty:
            # 대기 중인 자동 닫기가 이 안내를 닫지 않도록
            self._cancel_auto_close()
            self.session.modal.open(EMPTY_ORDER_TITLE, EMPTY_ORDER_MESSAGE)
            return False
        message = COMPLETE_FMT.format(summary=ledger.summary(), total=ledger.total())
        self.transition(ConversationState.FINALIZING)
        self.session.modal.open(COMPLETE_TITLE, message)
        return True

    # ------------------------------------------------------------------
    # Voice channel events
    # ------------------------------------------------------------------
    def _on_voice_result(self, text: str) -> None:
        task = self.resolver.submit(text)
        if task is not None:
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)

    def _on_listening_changed(self, listening: bool) -> None:
        logger.debug("Capture listening=%s", listening)
        self.sync_channel()

    # ------------------------------------------------------------------
    @property
    def voice_button_enabled(self) -> bool:
        return (
            self.session.state == ConversationState.IDLE
            and not self.channel.is_listening
            and not self.session.is_processing_voice
        )

    def snapshot(self) -> Dict[str, Any]:
        listening = self.channel.is_listening
        processing = self.session.is_processing_voice
        indicator = None
        if listening:
            indicator = LISTENING_INDICATOR
        elif processing:
            indicator = PROCESSING_INDICATOR
        return {
            **self.session.as_state(),
            "isListening": listening,
            "voiceButtonEnabled": self.voice_button_enabled,
            "indicator": indicator,
        }

    async def shutdown(self) -> None:
        self._closed = True
        self._cancel_timers()
        self.channel.stop_listening()
        for task in list(self._tasks):
            task.cancel()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)

    # ------------------------------------------------------------------
    def _later(self, delay: float, callback: Callable[[], None]) -> asyncio.TimerHandle:
        return self._loop.call_later(delay, callback)

    def _cancel_timers(self) -> None:
        self._cancel(self._state_timer)
        self._state_timer = None
        self._cancel_auto_close()

    def _cancel_auto_close(self) -> None:
        self._cancel(self._auto_close)
        self._auto_close = None

    @staticmethod
    def _cancel(handle: Optional[asyncio.TimerHandle]) -> None:
        if handle is not None:
            handle.cancel()


__all__ = ["ConversationStateMachine"]
