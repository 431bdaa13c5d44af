from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional

from .state import ConversationState


@dataclass(frozen=True)
class CloseCascade:
    next_state: ConversationState
    clear_ledger: bool = False


# 모달을 닫을 때의 상태 -> 다음 상태 (+ 주문 목록 초기화 여부)
CLOSE_CASCADE: Dict[ConversationState, CloseCascade] = {
    ConversationState.SHOWING_ANSWER: CloseCascade(ConversationState.LISTENING),
    ConversationState.FINALIZING: CloseCascade(ConversationState.IDLE, clear_ledger=True),
    ConversationState.CALLING_STAFF: CloseCascade(ConversationState.IDLE),
}


class ModalNotifier:
    """Single on-screen notification. A new ``open`` replaces whatever is shown."""

    def __init__(self) -> None:
        self.is_open = False
        self.title = ""
        self.message = ""

    def open(self, title: str, message: str) -> None:
        self.title = title
        self.message = message
        self.is_open = True

    def close(self, state_at_close: ConversationState) -> Optional[CloseCascade]:
        self.is_open = False
        return CLOSE_CASCADE.get(state_at_close)

    def paragraphs(self) -> List[str]:
        return self.message.split("\n")

    def as_api(self) -> Dict[str, object]:
        return {
            "isOpen": self.is_open,
            "title": self.title,
            "message": self.message,
            "paragraphs": self.paragraphs() if self.message else [],
        }


__all__ = ["ModalNotifier", "CloseCascade", "CLOSE_CASCADE"]
