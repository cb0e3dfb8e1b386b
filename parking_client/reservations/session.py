"""
Session/identity handling for the parking client.

Session: the logged-in principal as returned by the auth endpoints.
SessionStore: persists a Session into a dict-like storage (the Flask session cookie in the web app)
    under a primary and a legacy key for both the token and the serialized session.
SessionHolder: the current Session value plus change notifications. Views and the API client get
    it injected rather than reaching for a global.
"""
from dataclasses import dataclass
from typing import Callable, List, MutableMapping, Optional
import json
import logging

from .models import Role

logger = logging.getLogger(__name__)

DEFAULT_TOKEN_TYPE = "Bearer"


@dataclass
class Session:
    token: str
    token_type: str = DEFAULT_TOKEN_TYPE
    user_id: Optional[int] = None
    email: str = ""
    first_name: str = ""
    last_name: str = ""
    role: Role = Role.USER
    parking_id: Optional[int] = None

    @classmethod
    def from_payload(cls, payload: dict) -> "Session":
        """
        Build a session from the login/register response payload:
        {token, type, userId, email, firstName, lastName, role}
        """
        token = payload.get("token") or payload.get("accessToken")
        if not token:
            raise ValueError("Session payload carries no token")
        return cls(
            token=token,
            token_type=payload.get("type") or DEFAULT_TOKEN_TYPE,
            user_id=payload.get("userId"),
            email=payload.get("email", ""),
            first_name=payload.get("firstName", ""),
            last_name=payload.get("lastName", ""),
            role=Role.parse(payload.get("role", Role.USER.value)),
            parking_id=payload.get("parkingId"),
        )

    def to_payload(self) -> dict:
        return {
            "token": self.token,
            "type": self.token_type,
            "userId": self.user_id,
            "email": self.email,
            "firstName": self.first_name,
            "lastName": self.last_name,
            "role": self.role.value,
            "parkingId": self.parking_id,
        }

    @property
    def authorization_header(self) -> str:
        return f"{self.token_type or DEFAULT_TOKEN_TYPE} {self.token}"

    @property
    def display_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip() or self.email

    @property
    def is_owner(self) -> bool:
        return self.role == Role.OWNER

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN


class SessionStore:
    """
    Reads and writes the session to persistent client storage.
    Both the token and the serialized session are written under two keys so older clients
    reading the legacy names keep working. All four keys are cleared together.
    """

    TOKEN_KEY = "auth_token"
    LEGACY_TOKEN_KEY = "token"
    USER_KEY = "current_user"
    LEGACY_USER_KEY = "currentUser"

    def __init__(self, storage: MutableMapping):
        self._storage = storage

    def save(self, session: Session):
        serialized = json.dumps(session.to_payload())
        self._storage[self.TOKEN_KEY] = session.token
        self._storage[self.LEGACY_TOKEN_KEY] = session.token
        self._storage[self.USER_KEY] = serialized
        self._storage[self.LEGACY_USER_KEY] = serialized

    def load(self) -> Optional[Session]:
        raw = self._storage.get(self.USER_KEY) or self._storage.get(self.LEGACY_USER_KEY)
        if not raw:
            return None
        try:
            payload = json.loads(raw)
            if not payload.get("token"):
                payload["token"] = self.get_token()
            return Session.from_payload(payload)
        except (ValueError, TypeError, AttributeError) as e:
            logger.error(f"Discarding unreadable stored session: {e}")
            return None

    def get_token(self) -> Optional[str]:
        """
        Check the primary key, then the legacy key, then the token embedded in the stored session.
        """
        token = self._storage.get(self.TOKEN_KEY) or self._storage.get(self.LEGACY_TOKEN_KEY)
        if token:
            return token
        raw = self._storage.get(self.USER_KEY) or self._storage.get(self.LEGACY_USER_KEY)
        if not raw:
            return None
        try:
            payload = json.loads(raw)
        except ValueError:
            return None
        return payload.get("token") or payload.get("accessToken")

    def clear(self):
        for key in (self.TOKEN_KEY, self.LEGACY_TOKEN_KEY, self.USER_KEY, self.LEGACY_USER_KEY):
            self._storage.pop(key, None)


class SessionHolder:
    """
    Holds the current session and notifies subscribers whenever it changes.
    New subscribers are called straight away with the current value.
    """

    def __init__(self, session: Optional[Session] = None):
        self._session = session
        self._subscribers: List[Callable[[Optional[Session]], None]] = []

    @classmethod
    def from_store(cls, store: SessionStore) -> "SessionHolder":
        return cls(store.load())

    @property
    def current(self) -> Optional[Session]:
        return self._session

    def set(self, session: Optional[Session]):
        self._session = session
        for callback in list(self._subscribers):
            callback(session)

    def clear(self):
        self.set(None)

    def subscribe(self, callback: Callable[[Optional[Session]], None]) -> Callable[[], None]:
        """
        Register a callback for session changes. Returns a function that unsubscribes it.
        """
        self._subscribers.append(callback)
        callback(self._session)

        def unsubscribe():
            if callback in self._subscribers:
                self._subscribers.remove(callback)
        return unsubscribe
