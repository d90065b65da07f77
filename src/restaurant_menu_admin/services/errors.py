"""Errors raised by the backend service boundary."""

from typing import Any

import httpx


class BackendError(RuntimeError):
    """A data or auth request to the hosted backend failed."""

    def __init__(self, message: str, status_code: int | None = None, code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.code = code

    @classmethod
    def from_response(cls, response: httpx.Response) -> "BackendError":
        """Build an error from a non-2xx backend response.

        PostgREST reports `message`/`code`, the auth service uses
        `error_description`, `msg` or `error`.
        """
        body: Any
        try:
            body = response.json()
        except ValueError:
            body = None

        message = None
        code = None
        if isinstance(body, dict):
            for key in ("message", "error_description", "msg", "error"):
                if body.get(key):
                    message = str(body[key])
                    break
            raw_code = body.get("code") or body.get("error_code")
            code = str(raw_code) if raw_code is not None else None

        if not message:
            message = response.reason_phrase or f"Request failed with status {response.status_code}"

        return cls(message, status_code=response.status_code, code=code)


class AuthError(BackendError):
    """An authentication request failed."""
