"""
Decoding of ``data:``-prefixed event streams.

The server sends newline-delimited lines; lines that start with ``data:``
carry one JSON document each, and ``data: [DONE]`` ends the stream.
"""

from __future__ import annotations

import codecs
import json
from typing import Any, Callable, Iterable, Iterator, Optional, Union

DATA_PREFIX = "data:"
DONE_TOKEN = "[DONE]"


def iter_events(chunks: Iterable[Union[bytes, str]]) -> Iterator[Any]:
    """
    Yield one parsed JSON value per ``data:`` line found in ``chunks``.

    Line reassembly does not depend on where the chunk boundaries fall. A
    ``[DONE]`` payload stops the generator at once and whatever is still
    buffered is dropped. Invalid JSON raises ``json.JSONDecodeError`` at the
    pull that reaches it; errors raised by ``chunks`` propagate unchanged.
    """
    decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
    buffer = ""

    for chunk in chunks:
        buffer += decoder.decode(chunk) if isinstance(chunk, bytes) else chunk

        lines = buffer.split("\n")
        buffer = lines.pop()

        for line in lines:
            trimmed = line.strip()
            if not trimmed.startswith(DATA_PREFIX):
                continue
            # only "data: " (with the space) is removed; "data:x" stays as is
            payload = trimmed.replace("data: ", "", 1).strip()
            if payload == DONE_TOKEN:
                return
            yield json.loads(payload)


# =============================================================================
# Stream Wrapper
# =============================================================================

class Stream:
    """
    Single-pass iterator over the chunks of one streaming response.

    The stream owns the underlying connection: it is released when the
    stream is exhausted, when decoding fails, or when ``close()`` is called
    (also on leaving a ``with`` block). A closed stream yields nothing more.
    """

    def __init__(self, chunks: Iterable[Union[bytes, str]], on_close: Optional[Callable[[], None]] = None):
        self._iterator = iter_events(chunks)
        self._on_close = on_close
        self._closed = False

    def __iter__(self) -> Iterator[Any]:
        return self

    def __next__(self) -> Any:
        if self._closed:
            raise StopIteration
        try:
            return next(self._iterator)
        except BaseException:
            self.close()
            raise

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self):
        """Stop decoding and release the connection."""
        if self._closed:
            return
        self._closed = True
        self._iterator.close()
        if self._on_close is not None:
            self._on_close()
