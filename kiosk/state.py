from __future__ import annotations

from enum import Enum


class ConversationState(str, Enum):
    IDLE = "IDLE"
    GREETING = "GREETING"
    LISTENING = "LISTENING"
    AWAITING_FOLLOW_UP = "AWAITING_FOLLOW_UP"
    SHOWING_ANSWER = "SHOWING_ANSWER"
    CALLING_STAFF = "CALLING_STAFF"
    FINALIZING = "FINALIZING"


# 음성 인식을 받을 준비가 된 상태
READY_STATES = frozenset({ConversationState.LISTENING, ConversationState.AWAITING_FOLLOW_UP})


__all__ = ["ConversationState", "READY_STATES"]
