from __future__ import annotations

from pathlib import Path

import openai
from loguru import logger
from openai import OpenAI

from ..errors import TranscriptionEmpty, TranscriptionFailed
from ..pipeline.models import Transcript


ERROR_BODY_LIMIT = 300


class OpenAICompatibleASR:
    """Whisper transcription over any OpenAI-compatible /audio/transcriptions endpoint."""

    def __init__(
        self,
        api_key: str,
        base_url: str,
        model: str,
        language: str | None = None,
        timeout: float = 180.0,
        client: OpenAI | None = None,
    ) -> None:
        self.api_key = api_key
        self.base_url = base_url
        self.model = model
        self.language = language
        self.timeout = timeout
        self._client = client

    @property
    def client(self) -> OpenAI:
        if self._client is None:
            if not self.api_key:
                raise TranscriptionFailed("Transcription API key not configured")
            self._client = OpenAI(
                api_key=self.api_key,
                base_url=self.base_url,
                timeout=self.timeout,
                max_retries=0,
            )
        return self._client

    def transcribe(self, audio_path: Path) -> Transcript:
        extra = {"language": self.language} if self.language else {}
        logger.debug("[asr] {} -> {} ({})", audio_path.name, self.base_url, self.model)
        try:
            with audio_path.open("rb") as audio_file:
                response = self.client.audio.transcriptions.create(
                    model=self.model,
                    file=audio_file,
                    response_format="json",
                    **extra,
                )
        except openai.APIStatusError as exc:
            body = (exc.response.text or "")[:ERROR_BODY_LIMIT]
            raise TranscriptionFailed(
                f"Transcription API error {exc.status_code}: {body}",
                status_code=exc.status_code,
                body=body,
            ) from exc
        except openai.APIConnectionError as exc:
            raise TranscriptionFailed(f"Transcription request failed: {exc}") from exc

        text = (getattr(response, "text", None) or "").strip()
        if not text:
            raise TranscriptionEmpty("No speech detected in audio")
        return Transcript(text=text)
