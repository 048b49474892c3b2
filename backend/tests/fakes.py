"""Stand-ins for the document analysis HTTP service."""

from __future__ import annotations

from typing import Any

import requests

OPERATION_URL = "https://analysis.test/operations/op-1"


class FakeResponse:
    def __init__(self, status_code: int = 200, payload: Any = None, headers: dict[str, str] | None = None) -> None:
        self.status_code = status_code
        self._payload = payload
        self.headers = headers or {}
        self.text = "" if payload is None else str(payload)

    @property
    def ok(self) -> bool:
        return self.status_code < 400

    def json(self) -> Any:
        if self._payload is None:
            raise ValueError("no JSON body")
        return self._payload


class FakeAnalysisService:
    """Mimics the submit/poll endpoints; replays ``polls`` in order, repeating the last."""

    def __init__(
        self,
        polls: list[dict[str, Any]] | None = None,
        *,
        submit_status: int = 202,
        submit_body: Any = None,
        operation_location: str | None = OPERATION_URL,
        raise_on_submit: bool = False,
    ) -> None:
        self.polls = list(polls or [])
        self.submit_status = submit_status
        self.submit_body = submit_body
        self.operation_location = operation_location
        self.raise_on_submit = raise_on_submit
        self.submissions: list[dict[str, Any]] = []
        self.poll_count = 0
        self.polled_urls: list[str] = []

    def post(self, url: str, data: bytes | None = None, headers: dict[str, str] | None = None, timeout: float | None = None):
        if self.raise_on_submit:
            raise requests.ConnectionError("connection refused")
        self.submissions.append({"url": url, "data": data, "headers": dict(headers or {})})
        if self.submit_status >= 400:
            return FakeResponse(self.submit_status, self.submit_body or {"error": {"message": "InvalidRequest"}})
        headers_out = {"Operation-Location": self.operation_location} if self.operation_location else {}
        return FakeResponse(self.submit_status, None, headers_out)

    def get(self, url: str, headers: dict[str, str] | None = None, timeout: float | None = None):
        self.poll_count += 1
        self.polled_urls.append(url)
        if not self.polls:
            return FakeResponse(200, {"status": "running"})
        payload = self.polls[min(self.poll_count, len(self.polls)) - 1]
        return FakeResponse(200, payload)


def succeeded(text: str, pages: int | None = 1) -> dict[str, Any]:
    result: dict[str, Any] = {"content": text}
    if pages is not None:
        result["pages"] = [{"pageNumber": number + 1} for number in range(pages)]
    return {"status": "succeeded", "analyzeResult": result}


def failed(message: str = "The file is corrupted or format is unsupported.") -> dict[str, Any]:
    return {"status": "failed", "error": {"code": "InvalidContent", "message": message}}


RUNNING = {"status": "running"}
