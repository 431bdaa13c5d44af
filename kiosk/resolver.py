from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, List, Optional

from .errors import TransportFailure
from .interpreter import CommandInterpreterClient, InterpreterReply
from .menus import MenuCatalog
from .state import ConversationState

if TYPE_CHECKING:  # pragma: no cover
    from .machine import ConversationStateMachine
    from .session import KioskSession

logger = logging.getLogger(__name__)

# 안내 문구
ORDER_ADDED_TITLE = "주문 추가 완료"
ORDER_ADDED_FMT = "네, 알겠습니다! {items} 주문목록에 추가되었습니다! 혹시 다른 메뉴는 필요 없으신가요?"
ANSWER_TITLE = "답변"
STAFF_TITLE = "직원 호출"
STAFF_DEFAULT = "직원을 호출했습니다. 잠시만 기다려 주세요."
COMPLETED_TITLE = "주문 완료"
COMPLETED_MESSAGE = "네 알겠습니다! 맛있게 준비해드리겠습니다"
CANCELLED_TITLE = "주문 취소"
CANCELLED_DEFAULT = "주문이 취소되었습니다. 처음 화면으로 돌아갑니다."
ERROR_TITLE = "오류"
NOT_UNDERSTOOD = "죄송합니다, 잘 이해하지 못했어요. 다시 말씀해주시겠어요?"
PROCESSING_ERROR = "요청 처리 중 오류가 발생했습니다."


class CommandResolver:
    """Turns one recognized utterance into ledger, modal and state changes.

    At most one interpreter call is in flight at a time; the session's
    ``is_processing_voice`` flag is the guard and is released on every exit.
    """

    def __init__(
        self,
        machine: "ConversationStateMachine",
        catalog: MenuCatalog,
        interpreter: CommandInterpreterClient,
        follow_up_close_delay: float = 3.0,
    ) -> None:
        self._machine = machine
        self._catalog = catalog
        self._interpreter = interpreter
        self._follow_up_close_delay = follow_up_close_delay

    @property
    def session(self) -> "KioskSession":
        return self._machine.session

    # ------------------------------------------------------------------
    def _accept(self, text: Optional[str]) -> bool:
        if not text or not text.strip():
            return False
        if self.session.is_processing_voice:
            logger.info("Voice request already in flight, ignoring: %s", text)
            return False
        self.session.is_processing_voice = True
        return True

    def submit(self, text: Optional[str]) -> Optional["asyncio.Task[None]"]:
        """Guard now, run the round trip as a task on the running loop."""
        if not self._accept(text):
            return None
        return asyncio.get_running_loop().create_task(self._round_trip(text))

    async def handle_voice_result(self, text: Optional[str]) -> None:
        if not self._accept(text):
            return
        await self._round_trip(text)

    async def _round_trip(self, text: str) -> None:
        logger.info("[%s] Recognized: %s", self.session.state.value, text)
        try:
            reply = await self._interpreter.process_voice_command(text)
            self._apply(reply)
        except TransportFailure as exc:
            logger.error("Voice processing error: %s", exc)
            self._fail()
        except Exception:
            logger.exception("Voice processing error")
            self._fail()
        finally:
            self.session.is_processing_voice = False
            self._machine.sync_channel()

    def _fail(self) -> None:
        self.session.modal.open(ERROR_TITLE, PROCESSING_ERROR)
        self._machine.transition(ConversationState.IDLE)

    # ------------------------------------------------------------------
    def _apply(self, reply: InterpreterReply) -> None:
        status = reply.status
        modal = self.session.modal

        if status == "order_processed":
            added = self._add_order(reply)
            modal.open(ORDER_ADDED_TITLE, ORDER_ADDED_FMT.format(items=", ".join(added)))
            self._machine.transition(ConversationState.AWAITING_FOLLOW_UP)
            self._machine.schedule_modal_auto_close(self._follow_up_close_delay)

        elif status == "answered":
            modal.open(ANSWER_TITLE, reply.message or "")
            self._machine.transition(ConversationState.SHOWING_ANSWER)

        elif status == "staff_called":
            modal.open(STAFF_TITLE, reply.message or STAFF_DEFAULT)
            self._machine.transition(ConversationState.CALLING_STAFF)

        elif status == "order_completed":
            self._machine.transition(ConversationState.FINALIZING)
            modal.open(COMPLETED_TITLE, COMPLETED_MESSAGE)

        elif status == "order_cancelled":
            self._machine.transition(ConversationState.IDLE)
            self.session.ledger.clear()
            modal.open(CANCELLED_TITLE, reply.message or CANCELLED_DEFAULT)

        else:
            logger.warning("Unrecognized interpreter status: %r", status)
            modal.open(ERROR_TITLE, NOT_UNDERSTOOD)
            self._machine.transition(ConversationState.LISTENING)

    def _add_order(self, reply: InterpreterReply) -> List[str]:
        added: List[str] = []
        for name, quantity in (reply.order or {}).items():
            item = self._catalog.find(name)
            if item is None or quantity <= 0:
                # 부분 적용은 사용자에게 따로 알리지 않음
                logger.warning("Skipping order entry %r x%s", name, quantity)
                continue
            self.session.ledger.add(item, quantity)
            added.append(f"{name} {quantity}개")
        return added


__all__ = ["CommandResolver"]
