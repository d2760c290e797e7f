"""Incremental parser for the relayed ``data: <json>`` stream."""

import codecs
import json
from typing import Any, Dict, List, Optional

from utils.logging import logger

DATA_PREFIX = "data: "
DONE_SENTINEL = "[DONE]"


class StreamFrameParser:
    """Turns raw response chunks into decoded JSON payloads.

    Chunks may split anywhere, including inside a line or a multi-byte character.
    Complete lines are extracted on ``\\n``; lines without the ``data: `` prefix
    (blank keep-alives, ``: comment`` lines) are ignored, the ``[DONE]`` frame marks
    the end of the stream and payloads that are not valid JSON objects are skipped.
    """

    def __init__(self):
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer = ""
        self.done = False
        self.skipped = 0

    def feed(self, chunk: bytes) -> List[Dict[str, Any]]:
        """Consume a chunk and return the payloads of every line it completed."""
        self._buffer += self._decoder.decode(chunk)
        *lines, self._buffer = self._buffer.split("\n")
        return self._parse_lines(lines)

    def finish(self) -> List[Dict[str, Any]]:
        """Flush whatever is left once the stream has ended."""
        self._buffer += self._decoder.decode(b"", final=True)
        lines, self._buffer = [self._buffer], ""
        return self._parse_lines(lines)

    def _parse_lines(self, lines: List[str]) -> List[Dict[str, Any]]:
        payloads = []
        for line in lines:
            payload = self._parse_line(line)
            if payload is not None:
                payloads.append(payload)
        return payloads

    def _parse_line(self, line: str) -> Optional[Dict[str, Any]]:
        line = line.rstrip("\r")
        if not line.startswith(DATA_PREFIX):
            return None

        data = line[len(DATA_PREFIX) :].strip()
        if data == DONE_SENTINEL:
            self.done = True
            return None

        try:
            payload = json.loads(data)
        except ValueError:
            self.skipped += 1
            logger.debug(f"Skipping malformed frame: {data[:80]!r}")
            return None

        if not isinstance(payload, dict):
            self.skipped += 1
            return None
        return payload


def extract_delta(payload: Dict[str, Any]) -> str:
    """Return the text delta at ``choices[0].delta.content``, or an empty string."""
    choices = payload.get("choices")
    if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
        return ""
    delta = choices[0].get("delta")
    if not isinstance(delta, dict):
        return ""
    content = delta.get("content")
    return content if isinstance(content, str) else ""


def extract_error(payload: Dict[str, Any]) -> Optional[str]:
    """Return the provider's error message if the frame reports a mid-stream failure."""
    error = payload.get("error")
    if not error:
        return None
    if isinstance(error, dict):
        return str(error.get("message") or error)
    return str(error)
