from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict

from .ledger import OrderLedger
from .modal import ModalNotifier
from .state import READY_STATES, ConversationState


@dataclass
class KioskSession:
    """Everything one customer's visit shares between the core components."""

    state: ConversationState = ConversationState.IDLE
    ledger: OrderLedger = field(default_factory=OrderLedger)
    modal: ModalNotifier = field(default_factory=ModalNotifier)
    is_processing_voice: bool = False

    @property
    def ready_for_speech(self) -> bool:
        return self.state in READY_STATES

    def as_state(self) -> Dict[str, object]:
        return {
            "conversationState": self.state.value,
            "order": self.ledger.as_api(),
            "modal": self.modal.as_api(),
            "isProcessingVoice": self.is_processing_voice,
        }


__all__ = ["KioskSession"]
