"""HTTP gateway to the bug persistence service.

Each call either returns canonical data or raises exactly one of
ValidationError, NotFoundError, NetworkError or UnexpectedError. Nothing is
retried here; retry policy belongs to the caller.
"""

import logging
import os
from typing import Any, Mapping

import httpx
from pydantic import ValidationError as PydanticValidationError

from ..core.errors import (
    FieldError,
    NetworkError,
    NotFoundError,
    UnexpectedError,
    ValidationError,
)
from ..models import Bug, BugDraft, BugUpdate

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "http://localhost:5000/api"
DEFAULT_TIMEOUT = 10.0


def _error_message(body: Any) -> str | None:
    """Pull a human-readable message out of an error body."""
    if not isinstance(body, dict):
        return None
    for key in ("message", "detail", "error"):
        value = body.get(key)
        if isinstance(value, str) and value:
            return value
        if isinstance(value, dict) and isinstance(value.get("message"), str):
            return value["message"]
    return None


def _field_errors(body: Any) -> dict[str, FieldError]:
    if not isinstance(body, dict) or not isinstance(body.get("errors"), dict):
        return {}
    errors = {}
    for field, value in body["errors"].items():
        if isinstance(value, dict):
            errors[field] = FieldError(
                code=str(value.get("code", "INVALID")),
                message=str(value.get("message", "")),
            )
        else:
            errors[field] = FieldError(code="INVALID", message=str(value))
    return errors


class BugGateway:
    """Async client for the ``/bugs`` endpoints."""

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = (base_url or os.getenv("BUGS_API_URL", DEFAULT_API_URL)).rstrip("/")
        if timeout is None:
            timeout = float(os.getenv("BUGS_API_TIMEOUT", DEFAULT_TIMEOUT))
        self._http_client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            transport=transport,
            headers={"Content-Type": "application/json"},
        )

    async def __aenter__(self) -> "BugGateway":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http_client.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        bug_id: str | None = None,
        **kwargs,
    ) -> httpx.Response:
        """Send a request and normalize every failure into the error taxonomy."""
        try:
            response = await self._http_client.request(method, path, **kwargs)
        except httpx.TransportError as e:
            logger.error(f"{method} {path} failed before a response arrived: {e!r}")
            raise NetworkError(str(e) or type(e).__name__) from e
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.error(f"{method} {path} failed: {e!r}")
            raise UnexpectedError(f"{type(e).__name__}: {e}") from e

        if response.is_success:
            return response

        try:
            body = response.json()
        except ValueError:
            body = None
        message = _error_message(body)
        logger.error(f"{method} {path} returned {response.status_code}: {message or response.text[:200]}")

        if response.status_code == 404:
            if bug_id is not None:
                raise NotFoundError(bug_id)
            raise UnexpectedError(f"Endpoint not found: {method} {path}")
        if response.status_code in (400, 422):
            raise ValidationError(_field_errors(body), message=message)
        raise UnexpectedError(f"HTTP {response.status_code}: {message or 'no details'}")

    @staticmethod
    def _json(response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError as e:
            raise UnexpectedError(f"Malformed response body: {e}") from e

    @staticmethod
    def _parse_bug(data: Any) -> Bug:
        if not isinstance(data, dict):
            raise UnexpectedError(f"Expected a bug object, got {type(data).__name__}")
        try:
            bug = Bug.model_validate(data)
        except PydanticValidationError as e:
            raise UnexpectedError(f"Malformed bug record: {e}") from e
        if not bug.is_persisted:
            raise UnexpectedError("Bug record is missing its id")
        return bug

    async def create(self, draft: BugDraft | Mapping[str, Any]) -> Bug:
        """Create a bug and return the canonical record."""
        payload = draft.to_payload() if isinstance(draft, BugDraft) else dict(draft)
        logger.info(f"Creating bug: {payload.get('title')!r}")
        response = await self._request("POST", "/bugs", json=payload)
        bug = self._parse_bug(self._json(response))
        logger.info(f"Bug created: {bug.id}")
        return bug

    async def list(self) -> list[Bug]:
        """Fetch every bug in server order."""
        response = await self._request("GET", "/bugs")
        data = self._json(response)
        if not isinstance(data, list):
            raise UnexpectedError(f"Expected a list of bugs, got {type(data).__name__}")
        bugs = [self._parse_bug(item) for item in data]
        logger.debug(f"Fetched {len(bugs)} bugs")
        return bugs

    async def update(self, bug_id: str, changes: BugUpdate | Mapping[str, Any]) -> Bug:
        """Send the changed fields of a bug and return the canonical record."""
        payload = changes.changes() if isinstance(changes, BugUpdate) else dict(changes)
        logger.info(f"Updating bug {bug_id}: {sorted(payload)}")
        response = await self._request("PUT", f"/bugs/{bug_id}", bug_id=bug_id, json=payload)
        bug = self._parse_bug(self._json(response))
        if bug.id != bug_id:
            raise UnexpectedError(f"Update of {bug_id} returned bug {bug.id}")
        return bug

    async def delete(self, bug_id: str) -> None:
        """Delete a bug."""
        logger.info(f"Deleting bug {bug_id}")
        await self._request("DELETE", f"/bugs/{bug_id}", bug_id=bug_id)
