"""
Booking page state: selected date, the availability grid split by lot, the user's reservations
and the booking / cancel confirmation dialogs.

Availability is always a snapshot from the API. After every successful command both the
reservation list and the grid are re-fetched; spot statuses are never edited locally.
"""
from datetime import date
from typing import Callable, List, Optional
import logging

from .api_client import error_message
from .booking_utils import format_date
from .demo_data import generate_demo_spaces
from .error_utils import ApiError, ReservationNotFoundError, TransportError
from .models import LotType, ParkingSpace, Reservation, SpotStatus
from .parking_service import ParkingService
from .session import SessionHolder

logger = logging.getLogger(__name__)

# Grid layout: the yard has 5 rows of 10, the garage 10 rows of 10
GRID_COLUMNS = 10
GRID_ROWS = {LotType.YARD: 5, LotType.GARAGE: 10}

BOOKED_MESSAGE = "Parking space booked successfully! (Email notification will be sent)"
CANCELLED_MESSAGE = "Reservation cancelled successfully!"
NOT_FOUND_MESSAGE = "Reservation not found. Please try refreshing the page."
DEMO_NOTICE = "Parking service unavailable, showing demo data."


class BookingView:

    def __init__(self, parking_service: ParkingService, session_holder: SessionHolder, today: Callable[[], date] = date.today, demo_fallback: bool = False):
        self._parking_service = parking_service
        self._session_holder = session_holder
        self._today = today
        self._demo_fallback = demo_fallback

        self.selected_date: date = today()
        self.parking_spaces: List[ParkingSpace] = []
        self.yard_spaces: List[ParkingSpace] = []
        self.garage_spaces: List[ParkingSpace] = []
        self.my_reservations: List[Reservation] = []
        self.loading = False
        self.error = ""
        self.message = ""
        self.dialog_error = ""
        self.demo_mode = False
        self.show_booking_popup = False
        self.show_cancel_popup = False
        self.selected_space: Optional[ParkingSpace] = None
        self.cancelling_reservation = False

    @property
    def current_user(self):
        return self._session_holder.current

    @property
    def redirect_target(self) -> Optional[str]:
        """Owners manage their own spot on the owner page instead."""
        user = self.current_user
        if user is not None and user.is_owner:
            return "owner"
        return None

    def load_my_reservations(self):
        try:
            self.my_reservations = self._parking_service.get_my_reservations()
        except (ApiError, TransportError) as e:
            if isinstance(e, ApiError) and e.is_unauthorized:
                raise
            logger.error(f"Failed to load reservations: {e}")

    def load_availability(self, day: date = None):
        if day is not None:
            self.selected_date = day
        self.loading = True
        self.error = ""
        self.demo_mode = False
        try:
            spaces = self._parking_service.get_parking_spaces(self.selected_date)
        except (ApiError, TransportError) as e:
            if isinstance(e, ApiError) and e.is_unauthorized:
                self.loading = False
                raise
            if not self._demo_fallback:
                self.error = error_message(e, "Failed to load parking spaces")
                self.loading = False
                return
            logger.warning(f"Parking spaces unavailable ({e}), showing demo data for {format_date(self.selected_date)}")
            spaces = generate_demo_spaces(self.selected_date)
            self.demo_mode = True
            self.error = DEMO_NOTICE
        self._set_spaces(spaces)
        self.loading = False

    def _set_spaces(self, spaces: List[ParkingSpace]):
        self.parking_spaces = spaces
        self.yard_spaces = sorted((s for s in spaces if s.parking_type == LotType.YARD), key=lambda s: s.spot_number)
        self.garage_spaces = sorted((s for s in spaces if s.parking_type == LotType.GARAGE), key=lambda s: s.spot_number)

    def change_date(self, day: date):
        self.selected_date = day
        self.close_popup()
        self.load_availability()

    def refresh(self):
        self.load_my_reservations()
        self.load_availability()

    def select_spot(self, space: ParkingSpace):
        self.selected_space = space
        self.dialog_error = ""
        if space.status == SpotStatus.AVAILABLE:
            self.show_booking_popup = True
        elif space.status == SpotStatus.MINE:
            self.show_cancel_popup = True

    def find_space(self, space_id) -> Optional[ParkingSpace]:
        for space in self.parking_spaces:
            if str(space.id) == str(space_id):
                return space
        return None

    def confirm_booking(self) -> bool:
        if self.selected_space is None:
            return False
        try:
            self._parking_service.create_reservation(self.selected_space.id, self.selected_date)
        except (ApiError, TransportError) as e:
            # Dialog stays open with the reason so the user can pick another spot or retry
            self.dialog_error = error_message(e, "Failed to book parking space")
            return False
        self.close_popup()
        self.message = BOOKED_MESSAGE
        self.refresh()
        return True

    def find_reservation(self, space_id, day: date) -> Reservation:
        """
        Match the cached reservation list against (space, day).

        Raises: ReservationNotFoundError if the cache has no such reservation (most likely stale).
        """
        for reservation in self.my_reservations:
            if reservation.id and reservation.is_for(space_id, day):
                return reservation
        raise ReservationNotFoundError(f"No reservation for space {space_id} on {format_date(day)}")

    def confirm_cancel(self) -> bool:
        if self.selected_space is None:
            return False
        try:
            reservation = self.find_reservation(self.selected_space.id, self.selected_date)
        except ReservationNotFoundError as e:
            logger.warning(str(e))
            self.error = NOT_FOUND_MESSAGE
            self.close_popup()
            return False
        return self._cancel(reservation)

    def cancel_reservation_from_list(self, reservation: Reservation) -> bool:
        if not reservation.id:
            self.error = "Invalid reservation"
            return False
        return self._cancel(reservation)

    def _cancel(self, reservation: Reservation) -> bool:
        self.cancelling_reservation = True
        try:
            self._parking_service.cancel_reservation(reservation.id)
        except (ApiError, TransportError) as e:
            self.error = error_message(e, "Failed to cancel reservation")
            return False
        finally:
            self.cancelling_reservation = False
            self.close_popup()
        self.message = CANCELLED_MESSAGE
        self.refresh()
        return True

    def close_popup(self):
        self.show_booking_popup = False
        self.show_cancel_popup = False
        self.selected_space = None
        self.dialog_error = ""

    def grid(self, lot: LotType) -> List[List[Optional[ParkingSpace]]]:
        """Rows of spaces for the lot's grid, None where the API returned no such spot."""
        return [[self.space_at_position(lot, row, col) for col in range(GRID_COLUMNS)] for row in range(GRID_ROWS[lot])]

    def space_at_position(self, lot: LotType, row: int, col: int) -> Optional[ParkingSpace]:
        spot_number = row * GRID_COLUMNS + col + 1
        spaces = self.yard_spaces if lot == LotType.YARD else self.garage_spaces
        for space in spaces:
            if space.spot_number == spot_number:
                return space
        return None
