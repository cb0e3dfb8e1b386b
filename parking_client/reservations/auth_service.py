import logging
from typing import Optional

from .api_client import ApiClient
from .session import Session, SessionHolder, SessionStore

logger = logging.getLogger(__name__)


class AuthService:
    """
    Login, registration and logout against /api/auth.

    A successful login or registration persists the session through the SessionStore and
    publishes it on the SessionHolder. Failures propagate as ApiError / TransportError.
    """

    def __init__(self, api: ApiClient, session_holder: SessionHolder, store: SessionStore):
        self._api = api
        self._session_holder = session_holder
        self._store = store

    @property
    def current_user(self) -> Optional[Session]:
        return self._session_holder.current

    def login(self, credentials: dict) -> Session:
        """
        Route: POST /api/auth/login with {email, password}
        """
        return self._start_session(self._api.post("/api/auth/login", json=credentials))

    def register(self, user_data: dict) -> Session:
        """
        Route: POST /api/auth/register with {email, password, firstName, lastName, phoneNumber?}
        """
        return self._start_session(self._api.post("/api/auth/register", json=user_data))

    def _start_session(self, payload: dict) -> Session:
        session = Session.from_payload(payload or {})
        self._store.save(session)
        self._session_holder.set(session)
        logger.info(f"Session started for user {session.user_id} with role {session.role.value}")
        return session

    def logout(self):
        self._store.clear()
        self._session_holder.clear()

    def get_token(self) -> Optional[str]:
        token = self._store.get_token()
        if token:
            return token
        session = self._session_holder.current
        return session.token if session else None

    def is_authenticated(self) -> bool:
        return bool(self.get_token())
