from types import SimpleNamespace
from unittest import mock

import httpx
import openai
import pytest

from clipgrab.asr.providers import OpenAICompatibleASR
from clipgrab.asr.router import ASRRouter
from clipgrab.errors import CommandFailed, TranscriptionEmpty, TranscriptionFailed
from clipgrab.pipeline.models import Transcript


ENDPOINT = "https://api.groq.com/openai/v1/audio/transcriptions"


def _provider(create) -> OpenAICompatibleASR:
    client = mock.Mock()
    client.audio.transcriptions.create.side_effect = create
    return OpenAICompatibleASR(
        api_key="k",
        base_url="https://api.groq.com/openai/v1",
        model="whisper-large-v3-turbo",
        language="en",
        client=client,
    )


def test_transcribe_sends_model_language_and_json_format(tmp_path, make_file):
    audio = make_file(tmp_path / "audio.mp3")
    provider = _provider(lambda **kwargs: SimpleNamespace(text="  hello world \n"))

    transcript = provider.transcribe(audio)

    assert transcript == Transcript(text="hello world")
    kwargs = provider.client.audio.transcriptions.create.call_args.kwargs
    assert kwargs["model"] == "whisper-large-v3-turbo"
    assert kwargs["language"] == "en"
    assert kwargs["response_format"] == "json"


def test_whitespace_only_text_is_empty(tmp_path, make_file):
    audio = make_file(tmp_path / "audio.mp3")
    provider = _provider(lambda **kwargs: SimpleNamespace(text="   "))
    with pytest.raises(TranscriptionEmpty):
        provider.transcribe(audio)


def test_status_error_carries_truncated_body(tmp_path, make_file):
    audio = make_file(tmp_path / "audio.mp3")
    response = httpx.Response(413, request=httpx.Request("POST", ENDPOINT), text="x" * 1000)
    error = openai.APIStatusError("Request Entity Too Large", response=response, body=None)
    provider = _provider(error)

    with pytest.raises(TranscriptionFailed) as exc_info:
        provider.transcribe(audio)

    assert exc_info.value.status_code == 413
    assert exc_info.value.body == "x" * 300
    assert "413" in str(exc_info.value)
    assert not isinstance(exc_info.value, TranscriptionEmpty)


def test_connection_error_is_transcription_failure(tmp_path, make_file):
    audio = make_file(tmp_path / "audio.mp3")
    provider = _provider(openai.APIConnectionError(request=httpx.Request("POST", ENDPOINT)))
    with pytest.raises(TranscriptionFailed):
        provider.transcribe(audio)


def test_missing_api_key_fails_before_request(tmp_path, make_file):
    audio = make_file(tmp_path / "audio.mp3")
    provider = OpenAICompatibleASR(api_key="", base_url="https://example.com/v1", model="m")
    with pytest.raises(TranscriptionFailed, match="API key"):
        provider.transcribe(audio)


class _FakeProvider:
    def __init__(self, texts):
        self.texts = dict(texts)
        self.seen = []

    def transcribe(self, path):
        self.seen.append(path.name)
        text = self.texts[path.name]
        if isinstance(text, Exception):
            raise text
        return Transcript(text=text)


def _router(settings, provider, chunks):
    post_processor = mock.Mock()
    post_processor.split_audio.return_value = chunks
    return ASRRouter(settings, provider, post_processor), post_processor


def test_small_file_is_sent_as_is(settings, tmp_path, make_file):
    audio = make_file(tmp_path / "audio.mp3", 1024)
    provider = _FakeProvider({"audio.mp3": "short clip"})
    router, post_processor = _router(settings, provider, [])

    assert router.transcribe(audio).text == "short clip"
    post_processor.split_audio.assert_not_called()


def test_large_file_is_chunked_and_joined_in_order(settings, tmp_path, make_file):
    audio = make_file(tmp_path / "audio.mp3", 2 * 1024 * 1024)
    chunks = [tmp_path / "chunks" / f"chunk_{i}.mp3" for i in range(3)]
    provider = _FakeProvider({"chunk_0.mp3": "one.", "chunk_1.mp3": "two", "chunk_2.mp3": "three"})
    router, post_processor = _router(settings, provider, chunks)
    messages = []

    transcript = router.transcribe(audio, messages.append)

    assert transcript.text == "one. two three"
    assert transcript.chunks == 3
    assert provider.seen == ["chunk_0.mp3", "chunk_1.mp3", "chunk_2.mp3"]
    assert messages == [
        "Transcribing chunk 1/3...",
        "Transcribing chunk 2/3...",
        "Transcribing chunk 3/3...",
    ]
    post_processor.split_audio.assert_called_once_with(audio, tmp_path / "chunks")


def test_single_chunk_transcribes_original(settings, tmp_path, make_file):
    audio = make_file(tmp_path / "audio.mp3", 2 * 1024 * 1024)
    provider = _FakeProvider({"audio.mp3": "whole"})
    router, _ = _router(settings, provider, [audio])
    assert router.transcribe(audio).text == "whole"


def test_chunk_failure_aborts_remaining_chunks(settings, tmp_path, make_file):
    audio = make_file(tmp_path / "audio.mp3", 2 * 1024 * 1024)
    chunks = [tmp_path / f"chunk_{i}.mp3" for i in range(3)]
    provider = _FakeProvider(
        {"chunk_0.mp3": "one", "chunk_1.mp3": TranscriptionFailed("boom", 500), "chunk_2.mp3": "three"}
    )
    router, _ = _router(settings, provider, chunks)

    with pytest.raises(TranscriptionFailed, match="boom"):
        router.transcribe(audio)
    assert provider.seen == ["chunk_0.mp3", "chunk_1.mp3"]


def test_silent_chunk_is_skipped(settings, tmp_path, make_file):
    audio = make_file(tmp_path / "audio.mp3", 2 * 1024 * 1024)
    chunks = [tmp_path / f"chunk_{i}.mp3" for i in range(2)]
    provider = _FakeProvider({"chunk_0.mp3": TranscriptionEmpty("silence"), "chunk_1.mp3": "words"})
    router, _ = _router(settings, provider, chunks)
    assert router.transcribe(audio).text == "words"


def test_all_silent_chunks_is_empty(settings, tmp_path, make_file):
    audio = make_file(tmp_path / "audio.mp3", 2 * 1024 * 1024)
    chunks = [tmp_path / f"chunk_{i}.mp3" for i in range(2)]
    provider = _FakeProvider({name.name: TranscriptionEmpty("silence") for name in chunks})
    router, _ = _router(settings, provider, chunks)
    with pytest.raises(TranscriptionEmpty):
        router.transcribe(audio)


def test_chunking_failure_is_transcription_failure(settings, tmp_path, make_file):
    audio = make_file(tmp_path / "audio.mp3", 2 * 1024 * 1024)
    router, post_processor = _router(settings, _FakeProvider({}), [])
    post_processor.split_audio.side_effect = CommandFailed("ffprobe", "Invalid duration: N/A")
    with pytest.raises(TranscriptionFailed, match="chunking"):
        router.transcribe(audio)
