from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Dict, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from kiosk import (
    BrowserCapture,
    CaptureService,
    CommandInterpreterClient,
    ConversationStateMachine,
    KioskConfig,
    build_kiosk,
)


# ---------------------------------------------------------------------------
# Pydantic models
# ---------------------------------------------------------------------------
class TapBody(BaseModel):
    menuId: int


class VoiceResultBody(BaseModel):
    text: str


# ---------------------------------------------------------------------------
# App factory
# ---------------------------------------------------------------------------
def create_app(
    config: Optional[KioskConfig] = None,
    interpreter: Optional[CommandInterpreterClient] = None,
    capture: Optional[CaptureService] = None,
) -> FastAPI:
    config = config or KioskConfig.from_env()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        # 키오스크는 서버 이벤트 루프 위에서 동작해야 함
        app.state.kiosk = await build_kiosk(config, interpreter=interpreter, capture=capture)
        try:
            yield
        finally:
            await app.state.kiosk.shutdown()

    app = FastAPI(title="Voice Order Kiosk API", version="1.0.0", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    _register_routes(app)
    return app


def _kiosk(request: Request) -> ConversationStateMachine:
    return request.app.state.kiosk


def _browser_capture(kiosk: ConversationStateMachine) -> BrowserCapture:
    capture = kiosk.channel.capture
    if not isinstance(capture, BrowserCapture):
        raise HTTPException(status_code=409, detail="speech capture is not browser-driven")
    return capture


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------
def _register_routes(app: FastAPI) -> None:
    # 모든 핸들러는 async: 키오스크 루프에서 순서대로 실행된다

    @app.get("/health")
    async def health() -> Dict[str, Any]:
        return {"status": "ok", "time": datetime.now(timezone.utc).isoformat()}

    @app.get("/api/menu")
    async def get_menu(request: Request) -> Dict[str, Any]:
        kiosk = _kiosk(request)
        return {"menu": [item.to_api() for item in kiosk.catalog.list()]}

    @app.get("/api/kiosk/state")
    async def get_state(request: Request) -> Dict[str, Any]:
        return _kiosk(request).snapshot()

    @app.post("/api/order/items")
    async def tap_item(body: TapBody, request: Request) -> Dict[str, Any]:
        kiosk = _kiosk(request)
        try:
            kiosk.tap_menu_item(body.menuId)
        except KeyError:
            raise HTTPException(status_code=404, detail=f"unknown menu id: {body.menuId}")
        return kiosk.snapshot()

    @app.post("/api/order/complete")
    async def complete_order(request: Request) -> Dict[str, Any]:
        kiosk = _kiosk(request)
        completed = kiosk.complete_order()
        return {"completed": completed, **kiosk.snapshot()}

    @app.post("/api/voice/toggle")
    async def toggle_voice(request: Request) -> Dict[str, Any]:
        kiosk = _kiosk(request)
        started = kiosk.toggle_voice_mode()
        return {"started": started, **kiosk.snapshot()}

    @app.post("/api/modal/close")
    async def close_modal(request: Request) -> Dict[str, Any]:
        kiosk = _kiosk(request)
        kiosk.close_modal()
        return kiosk.snapshot()

    @app.post("/api/voice/result", status_code=202)
    async def voice_result(body: VoiceResultBody, request: Request) -> Dict[str, Any]:
        kiosk = _kiosk(request)
        capture = _browser_capture(kiosk)
        if not capture.is_listening:
            raise HTTPException(status_code=409, detail="microphone is not armed")
        capture.push_result(body.text)
        return {"accepted": True}

    @app.post("/api/voice/end")
    async def voice_end(request: Request) -> Dict[str, Any]:
        kiosk = _kiosk(request)
        _browser_capture(kiosk).push_end()
        return kiosk.snapshot()


app = create_app()

# Entry for local dev
# uvicorn fastapi_app.main:app --reload --port 8080
