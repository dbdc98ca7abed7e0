from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable

from .auth_store import AuthStore
from .clients.auth import AuthClient
from .exceptions import AuthError, NotAuthenticatedError, ValidationError
from .http_client import HttpClient, JSONValue
from .logger import get_logger, log_action
from .models import AuthResponse, Session, SessionData, SessionStatus, User

logger = get_logger(__name__)

SessionListener = Callable[[Session, Session], None]

MIN_PASSWORD_LENGTH = 6


def _require_text(**values: object) -> None:
    missing = [name for name, value in values.items() if not isinstance(value, str) or not value.strip()]
    if missing:
        raise ValidationError(
            code="VALIDATION_ERROR",
            message=f"Champs obligatoires manquants : {', '.join(missing)}",
            details={"missing": missing},
            status_code=0,
        )


class SessionManager:
    """Owns the bearer token and the current user.

    Every backend call that needs a credential goes through
    :meth:`authenticated_request`, which is also the single place where a
    401/403 answer turns into a logout.
    """

    def __init__(
        self,
        http: HttpClient,
        store: AuthStore | None = None,
        auth_client: AuthClient | None = None,
    ) -> None:
        self.http = http
        self.store = store or AuthStore(app_name=http.config.session_app_name)
        self.auth_client = auth_client or AuthClient(http=http)
        self._session = Session.anonymous()
        self._listeners: list[SessionListener] = []

    @property
    def session(self) -> Session:
        return self._session

    @property
    def token(self) -> str | None:
        return self._session.token

    @property
    def user(self) -> User | None:
        return self._session.user

    @property
    def status(self) -> SessionStatus:
        return self._session.status

    @property
    def is_authenticated(self) -> bool:
        return self._session.is_authenticated

    @property
    def is_admin(self) -> bool:
        return bool(self._session.user and self._session.user.is_admin)

    def add_listener(self, listener: SessionListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _remove

    async def login(self, email: str, password: str) -> Session:
        _require_text(email=email, password=password)
        return await self._authenticate("login", lambda: self.auth_client.login(email.strip(), password))

    async def register(self, name: str, email: str, password: str) -> Session:
        _require_text(name=name, email=email, password=password)
        if len(password) < MIN_PASSWORD_LENGTH:
            raise ValidationError(
                code="VALIDATION_ERROR",
                message=f"Le mot de passe doit contenir au moins {MIN_PASSWORD_LENGTH} caractères",
                details={"field": "password"},
                status_code=0,
            )
        return await self._authenticate(
            "register",
            lambda: self.auth_client.register(name.strip(), email.strip(), password),
        )

    def logout(self, reason: str = "user") -> None:
        try:
            self.store.clear()
        except OSError:
            logger.warning("could not remove the persisted session file")
        changed = self._replace(Session.anonymous())
        if changed:
            log_action(logger, "session", "logout", "success", reason=reason)

    def restore(self) -> Session:
        try:
            stored = self.store.load()
        except OSError:
            log_action(logger, "session", "restore", "store_unreadable", level=logging.WARNING)
            return self._session
        if stored is None:
            return self._session
        if stored.base_url and stored.base_url != self.http.base_url:
            log_action(logger, "session", "restore", "ignored", reason="base_url_mismatch")
            self.store.clear()
            return self._session
        self._replace(Session.authenticated(stored.token, stored.user))
        log_action(logger, "session", "restore", "success", user_id=stored.user.id)
        return self._session

    async def authenticated_request(
        self,
        method: str,
        path: str,
        *,
        json_body: JSONValue | None = None,
        params: dict[str, Any] | None = None,
        files: dict[str, Any] | None = None,
    ) -> JSONValue:
        token = self._require_token()
        return await self._guarded(
            token,
            self.http.request(method, path, token=token, json_body=json_body, params=params, files=files),
        )

    async def authenticated_download(self, path: str) -> bytes:
        token = self._require_token()
        return await self._guarded(token, self.http.request_bytes("GET", path, token=token))

    async def public_request(
        self,
        method: str,
        path: str,
        *,
        json_body: JSONValue | None = None,
        params: dict[str, Any] | None = None,
    ) -> JSONValue:
        """Send the bearer token when one is held, without requiring it."""
        if self.token:
            return await self.authenticated_request(method, path, json_body=json_body, params=params)
        return await self.http.request(method, path, json_body=json_body, params=params)

    def _require_token(self) -> str:
        token = self.token
        if not token:
            raise NotAuthenticatedError(
                code="NOT_AUTHENTICATED",
                message="Vous devez être connecté pour effectuer cette action.",
            )
        return token

    async def _guarded(self, token: str, call: Awaitable[Any]) -> Any:
        try:
            return await call
        except AuthError as exc:
            # a rejection for a token that was already replaced must not end the new session
            if self.token == token:
                log_action(
                    logger,
                    "session",
                    "forced_logout",
                    "auth_rejected",
                    level=logging.WARNING,
                    status_code=exc.status_code,
                )
                self.logout(reason="auth_rejected")
            raise

    async def _authenticate(self, action: str, call: Callable[[], Awaitable[AuthResponse]]) -> Session:
        previous = self._session
        placeholder = previous
        if not previous.is_authenticated:
            placeholder = Session.anonymous(SessionStatus.AUTHENTICATING)
            self._replace(placeholder)
        try:
            response = await call()
        except BaseException as exc:
            # cancellation included; a logout that happened meanwhile wins
            if self._session == placeholder:
                self._replace(previous)
            log_action(logger, "session", action, "error", error=type(exc).__name__)
            raise

        try:
            self.store.save(SessionData(token=response.token, user=response.user, base_url=self.http.base_url))
        except OSError:
            logger.warning("could not persist the session; it will not survive a restart")
        self._replace(Session.authenticated(response.token, response.user))
        log_action(logger, "session", action, "success", user_id=response.user.id, role=response.user.role.name)
        return self._session

    def _replace(self, session: Session) -> bool:
        previous = self._session
        if previous == session:
            return False
        self._session = session
        for listener in list(self._listeners):
            listener(previous, session)
        return True
