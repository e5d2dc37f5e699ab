"""
API client with OpenAI-style resource namespaces.

Usage:
    from oaiclient import Client

    client = Client(api_key="sk-...")
    client.add_to_context({"role": "system", "content": "You are terse."})

    response = client.chat.completions.create(
        model="gpt-3.5-turbo",
        messages=[{"role": "user", "content": "Hello!"}],
    )
    print(response["choices"][0]["message"]["content"])

    with client.chat.completions.create(model="gpt-3.5-turbo", messages=[...], stream=True) as stream:
        for chunk in stream:
            print(chunk["choices"][0]["delta"].get("content", ""), end="")
"""

from __future__ import annotations

import logging
import os
import threading
from dataclasses import replace
from typing import Any, Callable, Dict, List, Sequence, Union

from ..config import ClientOptions
from ..utils.logger import build_logger
from .context import ContextBuffer, ContextEntry, EntryLike
from .errors import ErrorKind, error_for
from .streaming import Stream
from .transport import HTTPTransport, file_part, form_fields

logger = logging.getLogger(__name__)


def _compact(params: Dict[str, Any]) -> Dict[str, Any]:
    return {key: value for key, value in params.items() if value is not None}


# =============================================================================
# Resource Classes (Namespace Emulation)
# =============================================================================

class _Namespace:
    """Groups resources under one attribute (``client.chat``, ``client.audio``)."""


class _Resource(_Namespace):

    def __init__(self, transport: HTTPTransport):
        self._transport = transport

    def _stream(self, path: str, body: dict) -> Stream:
        response = self._transport.stream("POST", path, body=body)
        return Stream(self._transport.iter_bytes(response), on_close=response.close)

    def _multipart(self, path: str, fields: Dict[str, Any], files: Dict[str, Any]) -> dict:
        try:
            parts = {name: file_part(value, name) for name, value in files.items() if value is not None}
        except OSError as e:
            raise error_for(ErrorKind.GENERIC, f"Error: {e}") from e
        return self._transport.request("POST", path, files=parts, data=form_fields(fields))


class Models(_Resource):
    """models resource."""

    def list(self) -> dict:
        return self._transport.request("GET", "/models")

    def retrieve(self, model_id: str) -> dict:
        return self._transport.request("GET", f"/models/{model_id}")

    def delete(self, model_id: str) -> dict:
        """Delete a fine-tuned model. Requires the Owner role in the organization."""
        return self._transport.request("DELETE", f"/models/{model_id}")


class Completions(_Resource):
    """Legacy /completions endpoint."""

    def create(self, *, model: str, prompt: Union[str, List[str]] = None, stream: bool = False, **options) -> Union[dict, Stream]:
        body = _compact({"model": model, "prompt": prompt, **options})
        if stream:
            body["stream"] = True
            return self._stream("/completions", body)
        return self._transport.request("POST", "/completions", body=body)


class ChatCompletions(_Resource):
    """chat.completions resource; the client's context is sent ahead of ``messages``."""

    def __init__(self, transport: HTTPTransport, context: ContextBuffer):
        super().__init__(transport)
        self._context = context

    def create(self, *, model: str, messages: Sequence[dict], stream: bool = False, **options) -> Union[dict, Stream]:
        body = _compact({**options, "model": model})
        body["messages"] = self._context.as_messages() + list(messages)
        if stream:
            body["stream"] = True
            return self._stream("/chat/completions", body)
        return self._transport.request("POST", "/chat/completions", body=body)


class Chat(_Namespace):
    """chat resource namespace."""

    def __init__(self, transport: HTTPTransport, context: ContextBuffer):
        self.completions = ChatCompletions(transport, context)


class Embeddings(_Resource):

    def create(self, *, model: str, input: Union[str, List[str]], user: str = None, **options) -> dict:
        body = _compact({"model": model, "input": input, "user": user, **options})
        return self._transport.request("POST", "/embeddings", body=body)


class Moderations(_Resource):

    def create(self, *, input: Union[str, List[str]], model: str = None) -> dict:
        """Classify whether text violates the content policy."""
        return self._transport.request("POST", "/moderations", body=_compact({"input": input, "model": model}))


class Edits(_Resource):

    def create(self, *, model: str, instruction: str, input: str = None, **options) -> dict:
        body = _compact({"model": model, "input": input, "instruction": instruction, **options})
        return self._transport.request("POST", "/edits", body=body)


class Images(_Resource):
    """images resource. ``image`` and ``mask`` accept a path, bytes, a tuple or a file object."""

    def generate(self, *, prompt: str, n: int = None, size: str = None, response_format: str = None, user: str = None) -> dict:
        body = _compact({"prompt": prompt, "n": n, "size": size, "response_format": response_format, "user": user})
        return self._transport.request("POST", "/images/generations", body=body)

    def edit(
        self,
        *,
        image: Any,
        prompt: str,
        mask: Any = None,
        n: int = None,
        size: str = None,
        response_format: str = None,
        user: str = None,
    ) -> dict:
        fields = {"prompt": prompt, "n": n, "size": size, "response_format": response_format, "user": user}
        return self._multipart("/images/edits", fields, {"image": image, "mask": mask})

    def create_variation(
        self,
        *,
        image: Any,
        n: int = None,
        size: str = None,
        response_format: str = None,
        user: str = None,
    ) -> dict:
        fields = {"n": n, "size": size, "response_format": response_format, "user": user}
        return self._multipart("/images/variations", fields, {"image": image})


class _AudioResource(_Resource):
    path = ""

    def create(self, file: Any, *, model: str = "whisper-1", **options) -> dict:
        """
        Upload an audio file.

        Extra options (``prompt``, ``response_format``, ``temperature``,
        ``language``) are sent as form fields. Non-JSON response formats come
        back as ``{"text": ...}``.
        """
        return self._multipart(self.path, {"model": model, **options}, {"file": file})


class Transcriptions(_AudioResource):
    """Transcribe audio into the input language."""
    path = "/audio/transcriptions"


class Translations(_AudioResource):
    """Translate audio into English."""
    path = "/audio/translations"


class Audio(_Namespace):
    """audio resource namespace."""

    def __init__(self, transport: HTTPTransport):
        self.transcriptions = Transcriptions(transport)
        self.translations = Translations(transport)


class Files(_Resource):

    def list(self) -> dict:
        return self._transport.request("GET", "/files")

    def create(self, *, file: Any, purpose: str) -> dict:
        return self._multipart("/files", {"purpose": purpose}, {"file": file})

    def delete(self, file_id: str) -> dict:
        return self._transport.request("DELETE", f"/files/{file_id}")

    def retrieve(self, file_id: str) -> dict:
        return self._transport.request("GET", f"/files/{file_id}")

    def content(self, file_id: str) -> bytes:
        return self._transport.request_raw("GET", f"/files/{file_id}/content")


class FineTunes(_Resource):

    def create(self, *, training_file: str, **options) -> dict:
        body = _compact({"training_file": training_file, **options})
        return self._transport.request("POST", "/fine-tunes", body=body)

    def list(self) -> dict:
        return self._transport.request("GET", "/fine-tunes")

    def retrieve(self, fine_tune_id: str) -> dict:
        return self._transport.request("GET", f"/fine-tunes/{fine_tune_id}")

    def cancel(self, fine_tune_id: str) -> dict:
        return self._transport.request("POST", f"/fine-tunes/{fine_tune_id}/cancel")

    def list_events(self, fine_tune_id: str) -> dict:
        return self._transport.request("GET", f"/fine-tunes/{fine_tune_id}/events")


# =============================================================================
# Main Client
# =============================================================================

class Client:
    """
    Main API client.

    Each client owns its connection pool, its logger and its conversation
    context; nothing is shared between instances.
    """

    def __init__(self, api_key: str = None, options: ClientOptions = None, **overrides):
        self.api_key = api_key or os.environ.get("OPENAI_API_KEY", "")
        options = replace(options or ClientOptions(), **overrides)
        self.options = replace(
            options,
            default_headers=dict(options.default_headers),
            retry=replace(options.retry),
            logging=replace(options.logging),
        )
        self.logger = build_logger(self.options.logging)
        self.context = ContextBuffer()

        self._transport = HTTPTransport(
            base_url=self.options.base_url,
            api_key=self.api_key,
            timeout=self.options.timeout,
            proxy=self.options.proxy,
            http_adapter=self.options.http_adapter,
            default_headers=self.options.default_headers,
            verify_ssl=self.options.verify_ssl,
            retry=self.options.retry,
            logger=self.logger,
        )

        self.models = Models(self._transport)
        self.completions = Completions(self._transport)
        self.chat = Chat(self._transport, self.context)
        self.embeddings = Embeddings(self._transport)
        self.moderations = Moderations(self._transport)
        self.edits = Edits(self._transport)
        self.images = Images(self._transport)
        self.audio = Audio(self._transport)
        self.files = Files(self._transport)
        self.fine_tunes = FineTunes(self._transport)

    @classmethod
    def from_env(cls, api_key: str = None, dotenv_path: str = None) -> "Client":
        """Create a client configured from environment variables and ``.env``."""
        options = ClientOptions.from_env(dotenv_path)
        return cls(api_key=api_key, options=options)

    # === Context Management ===

    def add_to_context(self, entry: EntryLike) -> None:
        self.context.append(entry)

    def add_batch_to_context(self, entries: Sequence[EntryLike]) -> None:
        self.context.append_batch(entries)

    def get_context(self) -> List[ContextEntry]:
        return self.context.snapshot()

    def clear_context(self) -> None:
        self.context.clear()

    def __repr__(self):
        return f"Client(base_url={self.options.base_url!r}, api_key={'***' if self.api_key else None!r})"

    def close(self):
        """Release the connection pool."""
        self._transport.close()

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()


# =============================================================================
# Async Support (using threading)
# =============================================================================

class AsyncResult:
    """Result of a call running on a worker thread; wait with ``.result()`` or chain with ``.then()``."""

    def __init__(self):
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._result = None
        self._error = None
        self._callbacks: List[Callable] = []

    def _finish(self, result, error):
        with self._lock:
            self._result = result
            self._error = error
            self._event.set()
            callbacks = list(self._callbacks)
        for cb in callbacks:
            try:
                cb(result, error)
            except Exception:
                logger.exception("AsyncResult callback %r failed", cb)

    def result(self, timeout: float = None) -> Any:
        """Block until the result is available; re-raises the call's error."""
        if not self._event.wait(timeout=timeout):
            raise TimeoutError(f"Result not available after {timeout}s")
        if self._error is not None:
            raise self._error
        return self._result

    def then(self, callback: Callable) -> "AsyncResult":
        """Add a callback: callback(result, error)."""
        with self._lock:
            if not self._event.is_set():
                self._callbacks.append(callback)
                return self
        callback(self._result, self._error)
        return self

    @property
    def done(self) -> bool:
        return self._event.is_set()


def run_async(func: Callable, *args, **kwargs) -> AsyncResult:
    result = AsyncResult()

    def run():
        try:
            value = func(*args, **kwargs)
        except Exception as e:
            result._finish(None, e)
        else:
            result._finish(value, None)

    threading.Thread(target=run, name=f"oaiclient-{getattr(func, '__name__', 'call')}").start()
    return result


class _AsyncNamespace:
    """Mirrors a sync namespace; every method call runs on its own thread."""

    def __init__(self, target: _Namespace):
        self._target = target

    def __getattr__(self, name: str):
        attr = getattr(self._target, name)
        if isinstance(attr, _Namespace):
            return _AsyncNamespace(attr)
        if callable(attr):
            def call(*args, **kwargs) -> AsyncResult:
                return run_async(attr, *args, **kwargs)
            call.__name__ = name
            return call
        return attr


class AsyncClient:
    """
    Client whose endpoint calls return ``AsyncResult`` immediately.

    Calls are independent of each other. The conversation context is read
    when a chat request is built, on the worker thread.
    """

    def __init__(self, *args, **kwargs):
        self._sync_client = Client(*args, **kwargs)
        self.context = self._sync_client.context
        for name in ("models", "completions", "chat", "embeddings", "moderations",
                     "edits", "images", "audio", "files", "fine_tunes"):
            setattr(self, name, _AsyncNamespace(getattr(self._sync_client, name)))

    def add_to_context(self, entry: EntryLike) -> None:
        self._sync_client.add_to_context(entry)

    def add_batch_to_context(self, entries: Sequence[EntryLike]) -> None:
        self._sync_client.add_batch_to_context(entries)

    def get_context(self) -> List[ContextEntry]:
        return self._sync_client.get_context()

    def clear_context(self) -> None:
        self._sync_client.clear_context()

    def close(self):
        self._sync_client.close()

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()


# OpenAI-compatible alias
OpenAI = Client
