from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Optional

import requests
from pydantic import BaseModel, Field, ValidationError, ValidationInfo, field_validator

from .errors import TransportFailure

logger = logging.getLogger(__name__)


class InterpreterReply(BaseModel):
    """Structured intent returned by ``/process-voice-command``."""

    status: str = ""
    order: Dict[str, int] = Field(default_factory=dict)
    message: Optional[str] = None

    @field_validator("status", "order", mode="before")
    @classmethod
    def _null_as_default(cls, value: Any, info: ValidationInfo) -> Any:
        # Optional 필드를 null 로 보내는 백엔드가 있음
        if value is None:
            return "" if info.field_name == "status" else {}
        return value


class CommandInterpreterClient:
    """HTTP client for the remote command interpreter.

    ``requests`` is blocking; voice commands are pushed onto a worker thread so
    the kiosk loop keeps running timers while the call is in flight.
    """

    def __init__(self, base_url: str, timeout: float = 10.0, session: Optional[requests.Session] = None) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._http = session or requests.Session()

    # ------------------------------------------------------------------
    def fetch_menu(self) -> Dict[str, int]:
        data = self._request("GET", "/menu")
        menu_items = data.get("menu_items") if isinstance(data, dict) else None
        if not isinstance(menu_items, dict):
            raise TransportFailure("menu payload missing 'menu_items'")
        return menu_items

    async def process_voice_command(self, text: str) -> InterpreterReply:
        data = await asyncio.to_thread(self._request, "POST", "/process-voice-command", {"text": text})
        logger.info("Backend response: %s", data)
        if not isinstance(data, dict):
            raise TransportFailure("interpreter reply is not an object")
        try:
            return InterpreterReply.model_validate(data)
        except ValidationError as exc:
            raise TransportFailure(f"malformed interpreter reply: {exc}") from exc

    # ------------------------------------------------------------------
    def _request(self, method: str, path: str, payload: Optional[Dict[str, Any]] = None) -> Any:
        url = f"{self.base_url}{path}"
        try:
            resp = self._http.request(method, url, json=payload, timeout=self.timeout)
        except requests.RequestException as exc:
            raise TransportFailure(f"{method} {url} failed: {exc}") from exc
        if not resp.ok:
            raise TransportFailure(f"{method} {url} returned {resp.status_code}", status_code=resp.status_code)
        try:
            return resp.json()
        except ValueError as exc:
            raise TransportFailure(f"{method} {url} returned invalid JSON") from exc

    def close(self) -> None:
        self._http.close()


__all__ = ["CommandInterpreterClient", "InterpreterReply"]
