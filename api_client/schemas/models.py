"""Request and response models."""

from __future__ import annotations

import json
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class APIRequest(BaseModel):
    """One outbound call: method, endpoint path, headers and optional JSON body."""

    model_config = ConfigDict(frozen=True)

    method: str = "GET"
    endpoint: str
    headers: dict[str, str] = Field(default_factory=dict)
    body: Any = None


class APIResponse(BaseModel):
    """Fully read response of a single attempt.

    Header names are lower-cased; repeated headers keep every value in the
    order the server sent them.
    """

    status_code: int
    headers: dict[str, list[str]] = Field(default_factory=dict)
    body: bytes = b""

    @property
    def text(self) -> str:
        return self.body.decode("utf-8", errors="replace")

    def json_body(self) -> Any:
        """Decode the body as JSON."""

        return json.loads(self.body)

    def header(self, name: str) -> str | None:
        """First value of a header, looked up case-insensitively."""

        values = self.headers.get(name.lower())
        return values[0] if values else None
