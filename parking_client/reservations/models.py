# Domain types shared by the services and view-states.
# Shapes follow the parking backend's JSON payloads; the backend owns them canonically.
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Callable, List, Optional
import logging

from .booking_utils import normalize_date
from .error_utils import MalformedResponseError

logger = logging.getLogger(__name__)


class Role(str, Enum):
    USER = "USER"
    OWNER = "OWNER"
    ADMIN = "ADMIN"

    @classmethod
    def parse(cls, value) -> "Role":
        try:
            return cls(str(value).upper())
        except ValueError:
            return cls.USER


class LotType(str, Enum):
    YARD = "YARD"
    GARAGE = "GARAGE"


class SpotStatus(str, Enum):
    AVAILABLE = "available"
    OCCUPIED = "occupied"
    MINE = "my-reservation"
    OWNER_CANCELLED = "owner-cancelled"
    UNKNOWN = "unknown"

    @classmethod
    def _missing_(cls, value):
        if value == "mine":
            return cls.MINE
        return cls.UNKNOWN


# CSS class used by the booking grid for each status
SPOT_CSS_CLASSES = {
    SpotStatus.AVAILABLE: "space-available",
    SpotStatus.OCCUPIED: "space-occupied",
    SpotStatus.MINE: "space-my-reservation",
    SpotStatus.OWNER_CANCELLED: "space-cancelled",
}


@dataclass
class ParkingSpace:
    id: int
    parking_type: LotType
    spot_number: int
    status: SpotStatus = SpotStatus.AVAILABLE

    @classmethod
    def from_payload(cls, payload: dict) -> "ParkingSpace":
        return cls(
            id=payload["id"],
            parking_type=LotType(str(payload["parkingType"]).upper()),
            spot_number=int(payload["spotNumber"]),
            status=SpotStatus(payload.get("status", "unknown")),
        )

    @property
    def css_class(self) -> str:
        return SPOT_CSS_CLASSES.get(self.status, "")


@dataclass
class Reservation:
    id: Optional[int]
    parking_space_id: int
    reservation_date: str
    spot_number: Optional[int] = None
    parking_type: Optional[str] = None
    status: Optional[str] = None

    @classmethod
    def from_payload(cls, payload: dict) -> "Reservation":
        return cls(
            id=payload.get("id"),
            parking_space_id=payload.get("parkingSpaceId"),
            reservation_date=payload.get("reservationDate", ""),
            spot_number=payload.get("spotNumber"),
            parking_type=payload.get("parkingType"),
            status=payload.get("status"),
        )

    def is_for(self, space_id, day: date) -> bool:
        """True if this reservation is for the given space on the given day."""
        return self.parking_space_id == space_id and normalize_date(self.reservation_date) == normalize_date(day)


@dataclass
class AdminUser:
    id: int
    email: str
    first_name: str = ""
    last_name: str = ""
    is_admin: bool = False
    role: str = Role.USER.value
    parking_id: Optional[int] = None

    @classmethod
    def from_payload(cls, payload: dict) -> "AdminUser":
        # Older admin endpoints report ownership as parkingType instead of role
        role = payload.get("role") or payload.get("parkingType") or Role.USER.value
        return cls(
            id=payload["id"],
            email=payload.get("email", ""),
            first_name=payload.get("firstName", ""),
            last_name=payload.get("lastName", ""),
            is_admin=bool(payload.get("isAdmin", role == Role.ADMIN.value)),
            role=role,
            parking_id=payload.get("parkingId"),
        )

    @property
    def is_owner(self) -> bool:
        return self.role == Role.OWNER.value

    @property
    def name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


@dataclass
class AdminReservation:
    id: int
    user_email: str = ""
    spot: Optional[int] = None
    start: str = ""
    end: str = ""

    @classmethod
    def from_payload(cls, payload: dict) -> "AdminReservation":
        return cls(
            id=payload["id"],
            user_email=payload.get("userEmail", ""),
            spot=payload.get("spot", payload.get("spotNumber")),
            start=payload.get("start", payload.get("reservationDate", "")),
            end=payload.get("end", payload.get("reservationDate", "")),
        )


@dataclass
class Page:
    items: List = field(default_factory=list)
    total: int = 0


def parse_rows(payload, row_type: Callable, what: str) -> List:
    """
    Map a JSON array onto row objects with row_type.from_payload. A row that can't be mapped is logged and
    skipped so one bad record doesn't hide the rest.

    Raises: MalformedResponseError if the payload is not an array at all.
    """
    if payload is None:
        return []
    if not isinstance(payload, list):
        raise MalformedResponseError(f"Expected a list of {what}, got {type(payload).__name__}")
    rows = []
    for item in payload:
        try:
            rows.append(row_type.from_payload(item))
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            logger.warning(f"Skipping malformed {what} row {item!r}: {e!r}")
    return rows
