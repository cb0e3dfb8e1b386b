# Demo data for presentations without a running backend.
# Only used when the app runs with PARKING_DEMO_DATA enabled, never in production.
from datetime import date
from typing import List
import random

from .models import AdminReservation, AdminUser, LotType, ParkingSpace, SpotStatus

YARD_SPOTS = 50
GARAGE_SPOTS = 100

# Cumulative thresholds: 90% available, 8% occupied, 2% mine
STATUS_WEIGHTS = [(0.90, SpotStatus.AVAILABLE), (0.98, SpotStatus.OCCUPIED), (1.0, SpotStatus.MINE)]


def _pick_status(rng: random.Random) -> SpotStatus:
    roll = rng.random()
    for threshold, status in STATUS_WEIGHTS:
        if roll < threshold:
            return status
    return SpotStatus.AVAILABLE


def generate_demo_spaces(day: date) -> List[ParkingSpace]:
    """
    Pseudo-random availability for both lots. Seeded by the day so reloading the same day shows the same grid.
    """
    rng = random.Random(day.toordinal())
    spaces = []
    space_id = 1
    for lot, count in ((LotType.YARD, YARD_SPOTS), (LotType.GARAGE, GARAGE_SPOTS)):
        for number in range(1, count + 1):
            spaces.append(ParkingSpace(id=space_id, parking_type=lot, spot_number=number, status=_pick_status(rng)))
            space_id += 1
    return spaces


def demo_users() -> List[AdminUser]:
    return [
        AdminUser(id=1, email="owner1@example.com", first_name="Owner", last_name="One", is_admin=False, role="OWNER", parking_id=5),
        AdminUser(id=2, email="user2@example.com", first_name="User", last_name="Two", is_admin=False, role="USER"),
        AdminUser(id=3, email="admin@example.com", first_name="Admin", last_name="User", is_admin=True, role="ADMIN"),
    ]


def demo_reservations() -> List[AdminReservation]:
    return [
        AdminReservation(id=101, user_email="user2@example.com", spot=12, start="2025-12-20", end="2025-12-20"),
        AdminReservation(id=102, user_email="owner1@example.com", spot=5, start="2025-12-22", end="2025-12-22"),
    ]
