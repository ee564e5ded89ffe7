from __future__ import annotations


STDERR_LIMIT = 500


def truncate(text: str, limit: int = STDERR_LIMIT) -> str:
    text = (text or "").strip()
    if len(text) <= limit:
        return text
    return text[:limit] + "..."


class ClipgrabError(RuntimeError):
    pass


class SourceNotFound(ClipgrabError):
    pass


class ProtocolRejected(ClipgrabError):
    pass


class ManifestError(ClipgrabError):
    pass


class ManifestTooLarge(ManifestError):
    pass


class ManifestMalformed(ManifestError):
    pass


class CommandFailed(ClipgrabError):
    def __init__(self, command: str, stderr: str = "", returncode: int | None = None, timed_out: bool = False):
        self.command = command
        self.stderr = truncate(stderr)
        self.returncode = returncode
        self.timed_out = timed_out
        if timed_out:
            detail = "timed out"
        else:
            detail = self.stderr or f"exit code {returncode}"
        super().__init__(f"{command} failed: {detail}")


class DownloadFailed(ClipgrabError):
    pass


class MergeFailed(ClipgrabError):
    pass


class CompressionFailed(ClipgrabError):
    pass


class SizeExceeded(CompressionFailed):
    pass


class TranscriptionFailed(ClipgrabError):
    def __init__(self, message: str, status_code: int | None = None, body: str | None = None):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class TranscriptionEmpty(TranscriptionFailed):
    pass
