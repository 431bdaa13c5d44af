from __future__ import annotations

import logging
from typing import Any, Optional

from .voice import ResultCallback, StatusCallback

logger = logging.getLogger(__name__)


class AzureSpeechCapture:
    """Microphone capture through the Azure Cognitive Services Speech SDK.

    Continuous recognition is started on ``start`` and stopped after the first
    non-empty phrase, so each arm of the microphone yields one utterance.
    SDK events arrive on SDK threads; the voice channel re-posts them.
    """

    def __init__(
        self,
        key: str,
        region: str = "",
        endpoint: str = "",
        language: str = "ko-KR",
    ) -> None:
        import azure.cognitiveservices.speech as speechsdk  # type: ignore

        if not key:
            raise ValueError("AZURE_SPEECH_KEY is required for azure capture")
        if endpoint:
            cfg = speechsdk.SpeechConfig(subscription=key, endpoint=endpoint)
        elif region:
            cfg = speechsdk.SpeechConfig(subscription=key, region=region)
        else:
            raise ValueError("AZURE_SPEECH_REGION or AZURE_SPEECH_ENDPOINT is required")
        cfg.speech_recognition_language = language

        self._sdk = speechsdk
        self._recognizer = speechsdk.SpeechRecognizer(
            speech_config=cfg,
            audio_config=speechsdk.audio.AudioConfig(use_default_microphone=True),
        )
        self._recognizer.recognized.connect(self._handle_recognized)
        self._recognizer.canceled.connect(self._handle_canceled)
        self._recognizer.session_stopped.connect(self._handle_stopped)

        self._listening = False
        self._on_result: Optional[ResultCallback] = None
        self._on_status: Optional[StatusCallback] = None

    @property
    def is_listening(self) -> bool:
        return self._listening

    def bind(self, on_result: ResultCallback, on_status: StatusCallback) -> None:
        self._on_result = on_result
        self._on_status = on_status

    def start(self) -> None:
        if self._listening:
            return
        self._set_listening(True)
        self._recognizer.start_continuous_recognition_async()

    def stop(self) -> None:
        if not self._listening:
            return
        self._set_listening(False)
        self._recognizer.stop_continuous_recognition_async()

    # SDK callbacks ------------------------------------------------------
    def _handle_recognized(self, evt: Any) -> None:
        result = evt.result
        if result.reason != self._sdk.ResultReason.RecognizedSpeech:
            logger.debug("No speech match: %s", getattr(result, "no_match_details", None))
            return
        text = (result.text or "").strip()
        if not text or not self._listening:
            return
        self._listening = False
        self._recognizer.stop_continuous_recognition_async()
        if self._on_result:
            self._on_result(text)
        if self._on_status:
            self._on_status(False)

    def _handle_canceled(self, evt: Any) -> None:
        details = evt.cancellation_details
        if details.reason == self._sdk.CancellationReason.Error:
            logger.error("Speech recognition canceled: %s", details.error_details)
        self._set_listening(False)

    def _handle_stopped(self, evt: Any) -> None:
        self._set_listening(False)

    def _set_listening(self, value: bool) -> None:
        if self._listening == value:
            return
        self._listening = value
        if self._on_status:
            self._on_status(value)


__all__ = ["AzureSpeechCapture"]
