import json

import requests
from requests.adapters import BaseAdapter
from requests.structures import CaseInsensitiveDict


class FakeRaw:
    """File-like body that hands out one queued chunk per read."""

    def __init__(self, chunks):
        self._chunks = list(chunks)
        self.released = False

    def read(self, amt=None):
        if self.released or not self._chunks:
            return b""
        return self._chunks.pop(0)

    def close(self):
        self.released = True

    def release_conn(self):
        self.released = True


class FakeAdapter(BaseAdapter):
    """Answers requests from a queue of canned replies and records what was sent."""

    def __init__(self):
        super().__init__()
        self.replies = []
        self.requests = []
        self.responses = []
        self.closed = False

    def reply(self, status=200, json_body=None, body=None, chunks=None, headers=None):
        if chunks is None:
            if json_body is not None:
                body = json.dumps(json_body)
            chunks = [body.encode("utf-8") if isinstance(body, str) else (body or b"")]
        self.replies.append((status, chunks, headers or {}))
        return self

    def fail(self, exc):
        self.replies.append(exc)
        return self

    def send(self, request, stream=False, timeout=None, verify=True, cert=None, proxies=None):
        self.requests.append(request)
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply

        status, chunks, headers = reply
        response = requests.Response()
        response.status_code = status
        response.headers = CaseInsensitiveDict(headers)
        response.raw = FakeRaw(chunks)
        response.encoding = "utf-8"
        response.url = request.url
        response.request = request
        self.responses.append(response)
        return response

    def close(self):
        self.closed = True

    def sent_json(self, index=-1):
        return json.loads(self.requests[index].body)


def no_wait(attempt):
    return 0


