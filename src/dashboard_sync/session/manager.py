"""Session lifecycle management.

Provides ``SessionManager``, the single owner of the bearer token and the
``Session`` value.  It signs in and out, rebuilds a session from a
persisted token, and tears everything down when the backend reports the
token as unauthorized.

Classes
-------
- SessionManager  — login / logout / invalidate / restore facade
"""
from __future__ import annotations

import logging
from typing import Any, Callable

from dashboard_sync.gateway.client import ApiGateway
from dashboard_sync.gateway.endpoints import ApiKeyResponse, AuthEndpoints
from dashboard_sync.gateway.results import GENERIC_MESSAGES, ApiResult, ErrorKind
from dashboard_sync.models import Session
from dashboard_sync.storage.base import CredentialStore
from dashboard_sync.store.actions import ResetState, SetSession
from dashboard_sync.store.store import StateStore
from dashboard_sync.sync.notifications import NotificationChannel

logger = logging.getLogger(__name__)

LOGIN_ROUTE = "/login"

Navigator = Callable[[str], None]
TeardownListener = Callable[[], None]


def _log_navigation(route: str) -> None:
    logger.info("SessionManager: navigation requested to %s", route)


class SessionManager:
    """Own the ``Session`` and the credential slot.

    Creating a manager installs ``invalidate`` as the gateway's
    unauthorized hook, so any 401 on an authenticated request clears the
    credential, resets the store, and requests the login surface.

    Parameters
    ----------
    gateway:
        Gateway used for the ``/auth`` calls.
    store:
        Store that receives ``SetSession`` and ``ResetState``.
    credentials:
        The single persisted token slot.
    notifications:
        Channel for sign-in feedback.  A private channel is created when
        omitted.
    navigator:
        Callback receiving the route to show after teardown.  Defaults to
        logging the request.
    """

    def __init__(
        self,
        gateway: ApiGateway,
        store: StateStore,
        credentials: CredentialStore,
        *,
        notifications: NotificationChannel | None = None,
        navigator: Navigator | None = None,
    ) -> None:
        self._auth = AuthEndpoints(gateway)
        self._store = store
        self._credentials = credentials
        self._notifications = notifications or NotificationChannel()
        self._navigator: Navigator = navigator or _log_navigation
        self._session: Session | None = None
        self._teardown_listeners: list[TeardownListener] = []
        gateway.set_unauthorized_hook(self.invalidate)

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def session(self) -> Session | None:
        """The live session, or None when signed out."""
        return self._session

    @property
    def is_authenticated(self) -> bool:
        return self._session is not None and self._session.valid

    def add_teardown_listener(self, listener: TeardownListener) -> Callable[[], None]:
        """Call ``listener`` after every logout or invalidation.

        Returns a function that removes the listener.
        """
        self._teardown_listeners.append(listener)

        def remove() -> None:
            if listener in self._teardown_listeners:
                self._teardown_listeners.remove(listener)

        return remove

    # ------------------------------------------------------------------
    # Sign-in
    # ------------------------------------------------------------------

    async def login(self, email: str, password: str) -> ApiResult[Session]:
        """Sign in with e-mail and password.

        On success the token is written to the credential slot and the
        session is dispatched to the store.  On failure the current
        session, if any, is left untouched and the failure is published.

        Returns
        -------
        ApiResult[Session]
            The new session, or the classified failure.
        """
        email = email.strip()
        if not email or not password:
            result: ApiResult[Session] = ApiResult.fail(
                ErrorKind.VALIDATION, "E-mail and password are required."
            )
            self._notifications.report(result.error)  # type: ignore[arg-type]
            return result

        response = await self._auth.login(email, password)
        if not response.success:
            assert response.error is not None
            if response.error.kind is ErrorKind.AUTH:
                # A 401 here rejects the credentials; no session is involved.
                message = response.error.message
                if message == GENERIC_MESSAGES[ErrorKind.AUTH]:
                    message = "Invalid e-mail or password."
                self._notifications.error(message, ErrorKind.AUTH)
            else:
                self._notifications.report(response.error, "Sign-in failed")
            logger.info("SessionManager: login failed (%s)", response.error.kind.value)
            return ApiResult(success=False, error=response.error)

        session = Session(token=response.data.token, user=response.data.user)
        self._establish(session)
        self._notifications.success(f"Signed in as {session.user.email}")
        return ApiResult.ok(session)

    async def restore(self) -> ApiResult[Session]:
        """Rebuild the session from a token left in the credential slot.

        Fetches the profile for the stored token.  A 401 invalidates the
        token through the normal unauthorized path.
        """
        token = self._credentials.read()
        if token is None:
            return ApiResult.fail(ErrorKind.VALIDATION, "No stored credential.")
        response = await self._auth.profile()
        if not response.success:
            return ApiResult(success=False, error=response.error)
        session = Session(token=token, user=response.data)
        self._establish(session)
        logger.info("SessionManager: restored session for %s", session.user.email)
        return ApiResult.ok(session)

    # ------------------------------------------------------------------
    # Teardown
    # ------------------------------------------------------------------

    def logout(self) -> None:
        """Sign out: clear the credential and session, reset the store."""
        logger.info("SessionManager: logout")
        self._teardown(navigate=True)
        self._notifications.info("Signed out.")

    def invalidate(self) -> None:
        """Tear the session down after an unauthorized response.

        Safe to call repeatedly; navigation is requested only when there
        was a session or token to discard.
        """
        had_session = self._session is not None or self._credentials.has_token()
        if had_session:
            logger.warning("SessionManager: session invalidated by the server")
        self._teardown(navigate=had_session)

    def _teardown(self, *, navigate: bool) -> None:
        self._credentials.clear()
        self._session = None
        self._store.dispatch(ResetState())
        for listener in list(self._teardown_listeners):
            listener()
        if navigate:
            self._navigator(LOGIN_ROUTE)

    def _establish(self, session: Session) -> None:
        previous = self._session
        if previous is not None and previous.user.id != session.user.id:
            # A different user must not see the previous user's entities.
            self._store.dispatch(ResetState())
            for listener in list(self._teardown_listeners):
                listener()
        self._credentials.write(session.token)
        self._session = session
        self._store.dispatch(SetSession(session))

    # ------------------------------------------------------------------
    # Account operations
    # ------------------------------------------------------------------

    async def forgot_password(self, email: str) -> ApiResult[Any]:
        """Ask the backend to e-mail a password reset link."""
        if not email.strip():
            return ApiResult.fail(ErrorKind.VALIDATION, "E-mail is required.")
        result = await self._auth.forgot_password(email.strip())
        self._publish(result, "Password reset e-mail sent.", "Password reset failed")
        return result

    async def reset_password(self, token: str, password: str) -> ApiResult[Any]:
        """Set a new password using the token from a reset e-mail."""
        if not token or not password:
            return ApiResult.fail(ErrorKind.VALIDATION, "Token and password are required.")
        result = await self._auth.reset_password(token, password)
        self._publish(result, "Password updated.", "Password reset failed")
        return result

    async def change_password(
        self, current_password: str, new_password: str
    ) -> ApiResult[Any]:
        """Change the signed-in user's password."""
        if not current_password or not new_password:
            return ApiResult.fail(ErrorKind.VALIDATION, "Both passwords are required.")
        result = await self._auth.change_password(current_password, new_password)
        self._publish(result, "Password changed.", "Password change failed")
        return result

    async def regenerate_api_key(self) -> ApiResult[ApiKeyResponse]:
        """Issue a new API key for the signed-in user."""
        result = await self._auth.regenerate_api_key()
        self._publish(result, "New API key generated.", "API key generation failed")
        return result

    def _publish(self, result: ApiResult[Any], success: str, context: str) -> None:
        if result.success:
            self._notifications.success(success)
        elif result.error is not None:
            self._notifications.report(result.error, context)

    def __repr__(self) -> str:
        return f"SessionManager(authenticated={self.is_authenticated})"
