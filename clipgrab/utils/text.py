import re


_TIMESTAMP_LINE = re.compile(r"^\d{2}:\d{2}")
_CUE_INDEX = re.compile(r"^\d+$")
_INLINE_TAG = re.compile(r"<[^>]+>")


def captions_to_text(content: str) -> str:
    lines: list[str] = []
    last = ""
    for raw in content.splitlines():
        line = raw.strip()
        if not line or line == "WEBVTT":
            continue
        if line.startswith("Kind:") or line.startswith("Language:"):
            continue
        if _TIMESTAMP_LINE.match(line) or _CUE_INDEX.match(line):
            continue
        line = _INLINE_TAG.sub("", line).strip()
        # auto-generated captions repeat the previous cue's line
        if not line or line == last:
            continue
        lines.append(line)
        last = line
    return "\n".join(lines)
