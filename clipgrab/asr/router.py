from __future__ import annotations

from pathlib import Path

from loguru import logger

from ..config import Settings
from ..errors import CommandFailed, TranscriptionEmpty, TranscriptionFailed
from ..pipeline.components import PostProcessor
from ..pipeline.models import ProgressCallback, Transcript
from ..utils.file import file_size, size_mb
from .providers import OpenAICompatibleASR


class ASRRouter:
    """Sends one audio file to the provider, splitting it first when it is over the upload ceiling."""

    def __init__(self, settings: Settings, provider: OpenAICompatibleASR, post_processor: PostProcessor) -> None:
        self.settings = settings
        self.provider = provider
        self.post_processor = post_processor

    def transcribe(self, audio_path: Path, on_progress: ProgressCallback | None = None) -> Transcript:
        size = file_size(audio_path)
        if size <= self.settings.transcribe_max_bytes:
            return self.provider.transcribe(audio_path)

        logger.info(
            "[asr] {} exceeds {}MB, chunking", size_mb(size), self.settings.transcribe_max_file_mb
        )
        try:
            chunks = self.post_processor.split_audio(audio_path, audio_path.parent / "chunks")
        except CommandFailed as exc:
            raise TranscriptionFailed(f"Audio chunking failed: {exc}") from exc

        if len(chunks) == 1:
            return self.provider.transcribe(chunks[0])

        texts: list[str] = []
        for index, chunk in enumerate(chunks, start=1):
            if on_progress:
                on_progress(f"Transcribing chunk {index}/{len(chunks)}...")
            try:
                texts.append(self.provider.transcribe(chunk).text)
            except TranscriptionEmpty:
                logger.warning("[asr] chunk {}/{} has no speech", index, len(chunks))

        if not texts:
            raise TranscriptionEmpty("No speech detected in audio")
        return Transcript(text=" ".join(texts), chunks=len(chunks))
