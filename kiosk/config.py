"""
Configuration for the kiosk core, read from the environment (and ``.env``).
"""

from __future__ import annotations

import logging
import os
import sys
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()


@dataclass
class KioskConfig:
    # === INTERPRETER ===
    backend_url: str = "http://localhost:8000"
    request_timeout: float = 10.0

    # === CONVERSATION TIMERS (seconds) ===
    greeting_delay: float = 1.5
    staff_call_delay: float = 3.0
    follow_up_close_delay: float = 3.0

    # === SPEECH CAPTURE ===
    capture: str = "browser"
    azure_speech_key: str = ""
    azure_speech_region: str = ""
    azure_speech_endpoint: str = ""
    azure_speech_language: str = "ko-KR"

    # === PRESENTATION ===
    image_base: str = "/static/img"

    # === LOGGING ===
    log_level: str = "INFO"
    log_file: str = ""

    @classmethod
    def from_env(cls) -> "KioskConfig":
        return cls(
            backend_url=os.getenv("KIOSK_BACKEND_URL", "http://localhost:8000").strip(),
            request_timeout=float(os.getenv("KIOSK_REQUEST_TIMEOUT", "10")),
            greeting_delay=float(os.getenv("KIOSK_GREETING_DELAY", "1.5")),
            staff_call_delay=float(os.getenv("KIOSK_STAFF_CALL_DELAY", "3.0")),
            follow_up_close_delay=float(os.getenv("KIOSK_FOLLOW_UP_CLOSE_DELAY", "3.0")),
            capture=os.getenv("KIOSK_CAPTURE", "browser").strip().lower(),
            azure_speech_key=(os.getenv("AZURE_SPEECH_KEY") or os.getenv("SPEECH_KEY") or "").strip(),
            azure_speech_region=(os.getenv("AZURE_SPEECH_REGION") or os.getenv("SPEECH_REGION") or "").strip(),
            azure_speech_endpoint=(os.getenv("AZURE_SPEECH_ENDPOINT") or os.getenv("SPEECH_ENDPOINT") or "").strip(),
            azure_speech_language=(os.getenv("AZURE_SPEECH_LANGUAGE") or "ko-KR").strip(),
            image_base=os.getenv("KIOSK_IMAGE_BASE", "/static/img").strip(),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_file=os.getenv("LOG_FILE", "").strip(),
        )


def setup_logging(config: KioskConfig) -> None:
    """Console logging, plus a UTF-8 file handler when LOG_FILE is set."""
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if config.log_file:
        handlers.append(logging.FileHandler(config.log_file, encoding="utf-8"))

    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=handlers,
        force=True,
    )
    # Reduce noise from third-party libraries
    logging.getLogger("urllib3").setLevel(logging.WARNING)


__all__ = ["KioskConfig", "setup_logging"]
