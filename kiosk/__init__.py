"""Voice ordering kiosk core: conversation state machine and its collaborators."""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from .config import KioskConfig, setup_logging
from .errors import InvalidMenuItem, KioskError, TransportFailure
from .interpreter import CommandInterpreterClient, InterpreterReply
from .ledger import OrderLedger, OrderLine
from .machine import ConversationStateMachine
from .menus import MenuCatalog, MenuItem
from .modal import CLOSE_CASCADE, ModalNotifier
from .resolver import CommandResolver
from .session import KioskSession
from .state import ConversationState
from .voice import BrowserCapture, CaptureService, VoiceChannel

logger = logging.getLogger(__name__)


def build_capture(config: KioskConfig) -> CaptureService:
    if config.capture == "azure":
        from .speech import AzureSpeechCapture

        return AzureSpeechCapture(
            key=config.azure_speech_key,
            region=config.azure_speech_region,
            endpoint=config.azure_speech_endpoint,
            language=config.azure_speech_language,
        )
    if config.capture != "browser":
        raise ValueError(f"unknown capture service: {config.capture}")
    return BrowserCapture()


async def build_kiosk(
    config: Optional[KioskConfig] = None,
    interpreter: Optional[CommandInterpreterClient] = None,
    capture: Optional[CaptureService] = None,
) -> ConversationStateMachine:
    """Wire the kiosk on the running loop and load the menu once."""
    config = config or KioskConfig.from_env()
    interpreter = interpreter or CommandInterpreterClient(config.backend_url, timeout=config.request_timeout)
    catalog = MenuCatalog(image_base=config.image_base)
    try:
        menu_items = await asyncio.to_thread(interpreter.fetch_menu)
        catalog.load(menu_items)
        logger.info("Menu loaded: %d items from %s", len(catalog), config.backend_url)
    except TransportFailure as exc:
        # 메뉴 없이도 화면은 뜬다
        logger.error("Failed to fetch menu: %s", exc)

    channel = VoiceChannel(capture or build_capture(config), asyncio.get_running_loop())
    return ConversationStateMachine(catalog, interpreter, channel, config=config)


__all__ = [
    "build_kiosk",
    "build_capture",
    "KioskConfig",
    "setup_logging",
    "KioskError",
    "InvalidMenuItem",
    "TransportFailure",
    "CommandInterpreterClient",
    "InterpreterReply",
    "OrderLedger",
    "OrderLine",
    "ConversationStateMachine",
    "MenuCatalog",
    "MenuItem",
    "ModalNotifier",
    "CLOSE_CASCADE",
    "CommandResolver",
    "KioskSession",
    "ConversationState",
    "BrowserCapture",
    "CaptureService",
    "VoiceChannel",
]
