"""
In-memory stand-in for requests.Session, scripted per endpoint.
"""

import json


class FakeResponse:
    def __init__(self, status_code: int = 200, payload=None, text: str | None = None):
        self.status_code = status_code
        self._payload = payload
        if text is None:
            text = json.dumps(payload) if payload is not None else ""
        self.text = text

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 400

    def json(self):
        if self._payload is None:
            raise ValueError("No JSON object could be decoded")
        return self._payload


class FakeSession:
    """
    Routes AssemblyAI calls to scripted responses:
      POST /upload            -> upload_response
      POST /transcript        -> submit_response
      GET  /transcript/<id>   -> poll_responses, one per call (last repeats)
    """

    def __init__(self, upload_response=None, submit_response=None, poll_responses=None,
                 raise_on=None):
        self.upload_response = upload_response or FakeResponse(
            200, {"upload_url": "https://cdn.example/upload/abc"})
        self.submit_response = submit_response or FakeResponse(
            200, {"id": "job-1", "status": "queued"})
        self.poll_responses = list(poll_responses or [
            FakeResponse(200, {"id": "job-1", "status": "completed", "text": "hello world"}),
        ])
        self.raise_on = raise_on or {}
        self.calls = []
        self.uploaded_bytes = None

    def request(self, method, url, headers=None, timeout=None, **kwargs):
        self.calls.append({"method": method, "url": url, "headers": headers or {},
                           "timeout": timeout, **kwargs})

        if url.endswith("/upload"):
            endpoint = "upload"
        elif method == "POST":
            endpoint = "submit"
        else:
            endpoint = "poll"

        if endpoint in self.raise_on:
            raise self.raise_on[endpoint]

        if endpoint == "upload":
            _name, fileobj, _ctype = kwargs["files"]["file"]
            self.uploaded_bytes = fileobj.read()
            return self.upload_response
        if endpoint == "submit":
            return self.submit_response

        if len(self.poll_responses) > 1:
            return self.poll_responses.pop(0)
        return self.poll_responses[0]

    def calls_to(self, endpoint: str) -> list:
        if endpoint == "upload":
            return [c for c in self.calls if c["url"].endswith("/upload")]
        if endpoint == "submit":
            return [c for c in self.calls if c["method"] == "POST" and not c["url"].endswith("/upload")]
        return [c for c in self.calls if c["method"] == "GET"]


def status(state: str, **extra) -> FakeResponse:
    return FakeResponse(200, {"id": "job-1", "status": state, **extra})
