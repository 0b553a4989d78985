"""HTTP gateway to the dashboard backend.

Every call returns an ``ApiResult``; transport failures, error statuses and
malformed bodies are classified instead of raised.  The gateway attaches the
bearer token from the credential slot and reports unauthorized responses to
a hook (normally ``SessionManager.invalidate``).  It never retries.

Classes
-------
- ApiGateway  — async JSON/multipart client returning ``ApiResult`` values
"""
from __future__ import annotations

import logging
from functools import lru_cache
from typing import Any, Callable

import httpx
from pydantic import TypeAdapter, ValidationError

from dashboard_sync.config import SyncConfig
from dashboard_sync.gateway.results import ApiResult, ErrorKind
from dashboard_sync.models import UploadFile
from dashboard_sync.storage.base import CredentialStore

logger = logging.getLogger(__name__)

UNAUTHORIZED = 401
_MESSAGE_KEYS = ("error", "message", "detail")

UnauthorizedHook = Callable[[], None]


@lru_cache(maxsize=64)
def _adapter(response_model: Any) -> TypeAdapter[Any]:
    return TypeAdapter(response_model)


def _error_message(response: httpx.Response) -> str | None:
    """Extract a server-supplied message from an error body, if any."""
    try:
        body = response.json()
    except ValueError:
        return None
    if not isinstance(body, dict):
        return None
    for key in _MESSAGE_KEYS:
        value = body.get(key)
        if isinstance(value, dict):
            value = value.get("message")
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


class ApiGateway:
    """Execute HTTP operations and normalise their outcome.

    The gateway owns one ``httpx.AsyncClient``, created on first use.  Use
    it as an async context manager, or call ``aclose`` when done.

    Parameters
    ----------
    config:
        Base URL, timeout and upload limit.
    credentials:
        Slot the bearer token is read from before each request.
    transport:
        Optional httpx transport, e.g. ``httpx.MockTransport`` in tests.
    on_unauthorized:
        Called once for every authenticated request answered with 401.
    """

    def __init__(
        self,
        config: SyncConfig,
        credentials: CredentialStore,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        on_unauthorized: UnauthorizedHook | None = None,
    ) -> None:
        self._config = config
        self._credentials = credentials
        self._transport = transport
        self._on_unauthorized = on_unauthorized
        self._client: httpx.AsyncClient | None = None

    @property
    def config(self) -> SyncConfig:
        return self._config

    @property
    def client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self._config.base_url,
                timeout=self._config.timeout_seconds,
                transport=self._transport,
                headers={"Accept": "application/json"},
            )
        return self._client

    def set_unauthorized_hook(self, hook: UnauthorizedHook | None) -> None:
        """Install the callback invoked on unauthorized responses."""
        self._on_unauthorized = hook

    async def aclose(self) -> None:
        """Close the HTTP client."""
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
        self._client = None

    async def __aenter__(self) -> ApiGateway:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def request(
        self,
        method: str,
        path: str,
        body: Any = None,
        *,
        response_model: Any = None,
        authenticate: bool = True,
    ) -> ApiResult[Any]:
        """Send a JSON request and classify the outcome.

        Parameters
        ----------
        method:
            HTTP method, e.g. ``"GET"`` or ``"PUT"``.
        path:
            Path relative to ``config.base_url``, e.g. ``"/tasks"``.
        body:
            JSON-serialisable request body, or None for no body.
        response_model:
            Type the success body is validated against (a model class or a
            typing construct such as ``list[Task]``).  None returns the
            decoded JSON unchanged.
        authenticate:
            When False no bearer token is attached and a 401 is reported
            as ``AuthError`` without invoking the unauthorized hook.  Used
            by the sign-in calls, where 401 means rejected credentials.

        Returns
        -------
        ApiResult
            Never raises for network, status or parsing failures.
        """
        kwargs: dict[str, Any] = {}
        if body is not None:
            kwargs["json"] = body
        return await self._send(
            method.upper(),
            path,
            response_model=response_model,
            authenticate=authenticate,
            **kwargs,
        )

    def check_upload(self, file: UploadFile) -> ApiResult[Any] | None:
        """Return a ``ValidationError`` result if ``file`` may not be uploaded.

        Returns None when the file passes the client-side checks.
        """
        limit = self._config.max_upload_bytes
        if file.size > limit:
            return ApiResult.fail(
                ErrorKind.VALIDATION,
                f"File {file.name!r} is {file.size} bytes; the limit is {limit} bytes.",
            )
        if file.size == 0:
            return ApiResult.fail(ErrorKind.VALIDATION, f"File {file.name!r} is empty.")
        return None

    async def upload(
        self,
        path: str,
        file: UploadFile,
        *,
        response_model: Any = None,
    ) -> ApiResult[Any]:
        """Send ``file`` as a multipart upload.

        Files rejected by ``check_upload`` produce a ``ValidationError``
        result and no request is issued.
        """
        rejected = self.check_upload(file)
        if rejected is not None:
            logger.info("ApiGateway: rejected upload of %r before sending", file.name)
            return rejected
        return await self._send(
            "POST",
            path,
            response_model=response_model,
            authenticate=True,
            files={"file": (file.name, file.content, file.mime_type)},
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _headers(self, authenticate: bool) -> dict[str, str]:
        headers: dict[str, str] = {}
        if authenticate:
            token = self._credentials.read()
            if token:
                headers["Authorization"] = f"Bearer {token}"
        return headers

    async def _send(
        self,
        method: str,
        path: str,
        *,
        response_model: Any,
        authenticate: bool,
        **kwargs: Any,
    ) -> ApiResult[Any]:
        try:
            headers = self._headers(authenticate)
        except OSError as exc:
            logger.error("ApiGateway: could not read the credential for %s %s: %s", method, path, exc)
            return ApiResult.fail(
                ErrorKind.VALIDATION,
                f"Could not read the stored credential: {exc.strerror or exc}",
            )
        try:
            response = await self.client.request(method, path, headers=headers, **kwargs)
        except httpx.TransportError as exc:
            logger.warning(
                "ApiGateway: %s %s failed without a response: %s: %s",
                method, path, type(exc).__name__, exc,
            )
            return ApiResult.fail(ErrorKind.NETWORK)
        logger.debug("ApiGateway: %s %s -> %d", method, path, response.status_code)
        return self._classify(response, response_model, authenticate)

    def _classify(
        self,
        response: httpx.Response,
        response_model: Any,
        authenticate: bool,
    ) -> ApiResult[Any]:
        status = response.status_code
        if status == UNAUTHORIZED:
            message = _error_message(response)
            if authenticate and self._on_unauthorized is not None:
                logger.warning("ApiGateway: unauthorized response; invalidating session")
                self._on_unauthorized()
            return ApiResult.fail(ErrorKind.AUTH, message, status_code=status)

        if not response.is_success:
            return ApiResult.fail(
                ErrorKind.SERVER, _error_message(response), status_code=status
            )

        try:
            payload = response.json() if response.content else None
            if response_model is None:
                return ApiResult.ok(payload)
            return ApiResult.ok(_adapter(response_model).validate_python(payload))
        except (ValueError, ValidationError) as exc:
            logger.warning(
                "ApiGateway: malformed response body from %s: %s",
                response.request.url, exc,
            )
            return ApiResult.fail(
                ErrorKind.SERVER,
                "The server returned an unexpected response.",
                status_code=status,
            )
