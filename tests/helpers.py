"""Shared test helpers for raindrop_shots tests."""

from __future__ import annotations

from typing import Any

import httpx


def user_payload(**overrides: Any) -> dict[str, Any]:
    """A /user response body."""
    user = {
        "_id": 42,
        "fullName": "Ada Lovelace",
        "email": "ada@example.com",
        "pro": False,
        "files": {"used": 50_000_000, "size": 100_000_000},
    }
    user.update(overrides)
    return {"result": True, "user": user}


def upload_payload(title: str = "Screenshot", link: str = "https://up.raindrop.io/raindrop/files/1.png") -> dict[str, Any]:
    """A PUT /raindrop/file response body."""
    return {
        "result": True,
        "item": {
            "_id": 1001,
            "link": link,
            "title": title,
            "excerpt": "Screenshot taken on 01/01/24",
            "collection": {"$id": -1},
        },
    }


class RecordingHandler:
    """MockTransport handler that replays queued responses and records requests."""

    def __init__(self, *responses: httpx.Response) -> None:
        self._responses = list(responses)
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        request.read()
        self.requests.append(request)
        if not self._responses:
            raise AssertionError(f"Unexpected request: {request.method} {request.url}")
        return self._responses.pop(0)

    def paths(self) -> list[str]:
        return [r.url.path for r in self.requests]
