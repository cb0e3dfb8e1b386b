from datetime import date
from typing import List
import logging

from .api_client import ApiClient
from .booking_utils import format_date
from .models import ParkingSpace, Reservation, parse_rows

logger = logging.getLogger(__name__)


class ParkingService:
    """
    Availability queries and reservation commands for the current user.
    """

    def __init__(self, api: ApiClient):
        self._api = api

    def get_parking_spaces(self, day: date) -> List[ParkingSpace]:
        """
        Route: GET /api/parking/spaces?date=YYYY-MM-DD

        Returns every spot of both lots with its status for that day.
        """
        payload = self._api.get("/api/parking/spaces", params={"date": format_date(day)})
        return parse_rows(payload, ParkingSpace, "parking spaces")

    def get_my_reservations(self) -> List[Reservation]:
        """
        Route: GET /api/reservations/my-reservations
        """
        payload = self._api.get("/api/reservations/my-reservations")
        return parse_rows(payload, Reservation, "reservations")

    def create_reservation(self, parking_space_id, day: date) -> Reservation:
        """
        Route: POST /api/reservations with {parkingSpaceId, reservationDate}
        """
        payload = self._api.post("/api/reservations", json={"parkingSpaceId": parking_space_id, "reservationDate": format_date(day)})
        logger.info(f"Reserved space {parking_space_id} for {format_date(day)}")
        if isinstance(payload, dict):
            return Reservation.from_payload(payload)
        return Reservation(id=None, parking_space_id=parking_space_id, reservation_date=format_date(day))

    def cancel_reservation(self, reservation_id):
        """
        Route: DELETE /api/reservations/{id}
        """
        self._api.delete(f"/api/reservations/{reservation_id}")
        logger.info(f"Cancelled reservation {reservation_id}")
