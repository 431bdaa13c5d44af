import asyncio
import logging

import pytest

from kiosk import ConversationState, KioskConfig
from kiosk.machine import EMPTY_ORDER_MESSAGE, GREETING_MESSAGE

from conftest import FakeInterpreter, RecordingCapture, settle


def test_voice_toggle_greets_then_listens(make_kiosk):
    async def scenario():
        capture = RecordingCapture()
        kiosk = make_kiosk(capture=capture)

        assert kiosk.toggle_voice_mode()
        assert kiosk.state == ConversationState.GREETING
        assert kiosk.session.modal.is_open
        assert kiosk.session.modal.message == GREETING_MESSAGE
        assert not capture.is_listening

        await settle(0.15)

        assert kiosk.state == ConversationState.LISTENING
        assert not kiosk.session.modal.is_open
        assert capture.is_listening
        assert capture.starts == 1

    asyncio.run(scenario())


def test_voice_toggle_only_from_idle(make_kiosk):
    async def scenario():
        kiosk = make_kiosk()
        kiosk.transition(ConversationState.LISTENING)

        assert not kiosk.toggle_voice_mode()
        assert kiosk.state == ConversationState.LISTENING
        assert not kiosk.voice_button_enabled

    asyncio.run(scenario())


def test_greeting_timer_cancelled_when_state_changes_early(make_kiosk):
    async def scenario():
        kiosk = make_kiosk()
        kiosk.toggle_voice_mode()
        kiosk.transition(ConversationState.IDLE)

        await settle(0.15)

        assert kiosk.state == ConversationState.IDLE

    asyncio.run(scenario())


def test_manual_greeting_dismissal_still_advances(make_kiosk):
    async def scenario():
        kiosk = make_kiosk()
        kiosk.toggle_voice_mode()
        kiosk.close_modal()
        assert kiosk.state == ConversationState.GREETING

        await settle(0.15)
        assert kiosk.state == ConversationState.LISTENING

    asyncio.run(scenario())


def test_staff_call_times_out_to_idle(make_kiosk):
    async def scenario():
        interpreter = FakeInterpreter([{"status": "staff_called", "message": "직원을 불렀어요."}])
        kiosk = make_kiosk(interpreter)
        kiosk.transition(ConversationState.LISTENING)

        await kiosk.resolver.handle_voice_result("직원 호출")
        assert kiosk.state == ConversationState.CALLING_STAFF
        assert kiosk.session.modal.is_open

        await settle(0.45)

        assert kiosk.state == ConversationState.IDLE
        assert not kiosk.session.modal.is_open

    asyncio.run(scenario())


def test_staff_call_manual_dismissal_cancels_timer(make_kiosk, caplog):
    async def scenario():
        config = KioskConfig(greeting_delay=10, staff_call_delay=0.3, follow_up_close_delay=0.1)
        interpreter = FakeInterpreter([{"status": "staff_called", "message": "직원을 불렀어요."}])
        kiosk = make_kiosk(interpreter, config=config)
        kiosk.transition(ConversationState.LISTENING)
        await kiosk.resolver.handle_voice_result("직원 호출")

        await settle(0.1)
        kiosk.close_modal()
        assert kiosk.state == ConversationState.IDLE

        # 이전 타이머가 살아 있다면 새 인사 모달을 닫아버릴 것
        kiosk.toggle_voice_mode()
        await settle(0.45)

        assert kiosk.state == ConversationState.GREETING
        assert kiosk.session.modal.is_open
        assert kiosk.session.modal.message == GREETING_MESSAGE
        await kiosk.shutdown()

    with caplog.at_level(logging.INFO, logger="kiosk.machine"):
        asyncio.run(scenario())

    assert caplog.text.count("CALLING_STAFF -> IDLE") == 1


def test_follow_up_modal_auto_closes_and_keeps_listening(make_kiosk):
    async def scenario():
        capture = RecordingCapture()
        interpreter = FakeInterpreter([{"status": "order_processed", "order": {"돼지국밥": 1}}])
        kiosk = make_kiosk(interpreter, capture=capture)
        kiosk.transition(ConversationState.LISTENING)

        await kiosk.resolver.handle_voice_result("돼지국밥 하나")
        assert kiosk.session.modal.is_open

        await settle(0.2)

        assert not kiosk.session.modal.is_open
        assert kiosk.state == ConversationState.AWAITING_FOLLOW_UP
        assert capture.is_listening

    asyncio.run(scenario())


def test_full_voice_turn_through_the_capture_service(make_kiosk):
    async def scenario():
        capture = RecordingCapture()
        interpreter = FakeInterpreter([
            {"status": "order_processed", "order": {"돼지국밥": 2}},
            {"status": "order_completed"},
        ])
        interpreter.gate = asyncio.Event()
        kiosk = make_kiosk(interpreter, capture=capture)

        kiosk.toggle_voice_mode()
        await settle(0.15)
        assert capture.is_listening

        capture.push_result("돼지국밥 두 개 주세요")
        await settle()
        # 처리 중에는 마이크를 다시 켜지 않음
        assert kiosk.session.is_processing_voice
        assert not capture.is_listening
        assert kiosk.snapshot()["indicator"] == "주문 처리 중..."

        interpreter.gate.set()
        await settle()
        assert kiosk.state == ConversationState.AWAITING_FOLLOW_UP
        assert kiosk.session.ledger.total() == 18000
        assert capture.is_listening

        capture.push_result("이제 주문할게요")
        await settle()
        assert kiosk.state == ConversationState.FINALIZING
        assert not capture.is_listening

        kiosk.close_modal()
        assert kiosk.state == ConversationState.IDLE
        assert kiosk.session.ledger.is_empty
        assert kiosk.voice_button_enabled

    asyncio.run(scenario())


def test_capture_results_while_processing_are_dropped(make_kiosk):
    async def scenario():
        capture = RecordingCapture()
        interpreter = FakeInterpreter([{"status": "order_processed", "order": {"순대국밥": 1}}])
        interpreter.gate = asyncio.Event()
        kiosk = make_kiosk(interpreter, capture=capture)
        kiosk.transition(ConversationState.LISTENING)

        capture.push_result("순대국밥 하나")
        capture.push_result("수육 한접시")
        await settle()

        assert interpreter.calls == ["순대국밥 하나"]
        interpreter.gate.set()
        await settle()
        assert [l.item.name for l in kiosk.session.ledger.lines] == ["순대국밥"]
        await kiosk.shutdown()

    asyncio.run(scenario())


def test_complete_order_with_empty_ledger(make_kiosk):
    async def scenario():
        kiosk = make_kiosk()

        assert not kiosk.complete_order()
        assert kiosk.state == ConversationState.IDLE
        assert kiosk.session.modal.title == "주문 오류"
        assert kiosk.session.modal.message == EMPTY_ORDER_MESSAGE

    asyncio.run(scenario())


def test_complete_order_manually(make_kiosk):
    async def scenario():
        kiosk = make_kiosk()
        kiosk.tap_menu_item(1)
        kiosk.tap_menu_item(1)
        kiosk.tap_menu_item(6)

        assert kiosk.complete_order()
        assert kiosk.state == ConversationState.FINALIZING
        paragraphs = kiosk.session.modal.paragraphs()
        assert "돼지국밥 2개" in paragraphs
        assert "수육 한접시 1개" in paragraphs
        assert "총 금액: 46,000원" in paragraphs

        kiosk.close_modal()
        assert kiosk.state == ConversationState.IDLE
        assert kiosk.session.ledger.is_empty
        assert kiosk.session.ledger.total() == 0

    asyncio.run(scenario())


def test_tap_unknown_menu_id(make_kiosk):
    async def scenario():
        kiosk = make_kiosk()
        with pytest.raises(KeyError):
            kiosk.tap_menu_item(42)
        assert kiosk.session.ledger.is_empty

    asyncio.run(scenario())


def test_idle_disarms_microphone(make_kiosk):
    async def scenario():
        capture = RecordingCapture()
        kiosk = make_kiosk(capture=capture)
        kiosk.transition(ConversationState.AWAITING_FOLLOW_UP)
        assert capture.is_listening

        kiosk.transition(ConversationState.IDLE)
        assert not capture.is_listening
        await settle()
        # 상태 알림이 다시 켜지 않아야 함
        assert not capture.is_listening

    asyncio.run(scenario())


def test_follow_up_timer_cancelled_by_state_change(make_kiosk):
    async def scenario():
        interpreter = FakeInterpreter([
            {"status": "order_processed", "order": {"돼지국밥": 1}},
            {"status": "answered", "message": "네, 포장 됩니다."},
        ])
        kiosk = make_kiosk(interpreter)
        kiosk.transition(ConversationState.LISTENING)

        await kiosk.resolver.handle_voice_result("돼지국밥 하나")
        await kiosk.resolver.handle_voice_result("포장 되나요?")

        await settle(0.2)

        assert kiosk.state == ConversationState.SHOWING_ANSWER
        assert kiosk.session.modal.is_open
        assert kiosk.session.modal.title == "답변"

    asyncio.run(scenario())


def test_follow_up_timer_cancelled_by_manual_close(make_kiosk):
    async def scenario():
        interpreter = FakeInterpreter([{"status": "order_processed", "order": {"돼지국밥": 1}}])
        kiosk = make_kiosk(interpreter)
        kiosk.transition(ConversationState.LISTENING)

        await kiosk.resolver.handle_voice_result("돼지국밥 하나")
        kiosk.close_modal()
        kiosk.session.modal.open("안내", "잠시만 기다려 주세요.")

        await settle(0.2)

        assert kiosk.state == ConversationState.AWAITING_FOLLOW_UP
        assert kiosk.session.modal.is_open
        assert kiosk.session.modal.title == "안내"
        await kiosk.shutdown()

    asyncio.run(scenario())


def test_empty_order_warning_survives_pending_follow_up_timer(make_kiosk):
    async def scenario():
        interpreter = FakeInterpreter([{"status": "order_processed", "order": {"김치찌개": 1}}])
        kiosk = make_kiosk(interpreter)
        kiosk.transition(ConversationState.LISTENING)

        await kiosk.resolver.handle_voice_result("김치찌개 하나")
        assert kiosk.session.ledger.is_empty

        assert not kiosk.complete_order()
        await settle(0.2)

        assert kiosk.session.modal.is_open
        assert kiosk.session.modal.title == "주문 오류"
        await kiosk.shutdown()

    asyncio.run(scenario())
