"""
Owner page state: an owner withdraws their own spot's availability for a future day.

The earliest day that can be withdrawn is tomorrow, or the day after tomorrow once the local
time is 17:00 or later.
"""
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Callable, Optional
import logging

from .api_client import error_message
from .booking_utils import format_date
from .error_utils import ApiError, TransportError
from .owner_service import OwnerService
from .session import SessionHolder

logger = logging.getLogger(__name__)

CUTOFF_HOUR = 17


class OwnerState(Enum):
    SELECTING_DATE = "selecting-date"
    CONFIRMING = "confirming"


def minimum_cancellation_date(now: datetime) -> date:
    days_to_add = 2 if now.hour >= CUTOFF_HOUR else 1
    return (now + timedelta(days=days_to_add)).date()


class OwnerCancellationView:

    def __init__(self, owner_service: OwnerService, session_holder: SessionHolder, clock: Callable[[], datetime] = datetime.now):
        self._owner_service = owner_service
        self._session_holder = session_holder
        self._clock = clock
        self.state = OwnerState.SELECTING_DATE
        self.error = ""
        self.success = ""
        self.min_date: date = minimum_cancellation_date(clock())
        self.selected_date: date = self.min_date

    @property
    def current_user(self):
        return self._session_holder.current

    @property
    def redirect_target(self) -> Optional[str]:
        user = self.current_user
        if user is None or not user.is_owner:
            return "booking"
        return None

    @property
    def show_confirm_popup(self) -> bool:
        return self.state == OwnerState.CONFIRMING

    def is_after_cutoff(self) -> bool:
        return self._clock().hour >= CUTOFF_HOUR

    def update_min_date(self):
        self.min_date = minimum_cancellation_date(self._clock())
        if self.selected_date < self.min_date:
            self.selected_date = self.min_date

    def change_date(self, day: date) -> bool:
        self.error = ""
        self.success = ""
        if day < self.min_date:
            self.error = f"The earliest date you can cancel is {format_date(self.min_date)}"
            return False
        self.selected_date = day
        return True

    def request_cancellation(self):
        if self.state == OwnerState.SELECTING_DATE:
            self.state = OwnerState.CONFIRMING

    def confirm(self) -> bool:
        self.error = ""
        self.success = ""
        day = self.selected_date
        try:
            self._owner_service.cancel_spot_availability(day)
        except (ApiError, TransportError) as e:
            logger.error(f"Owner cancellation for {format_date(day)} failed: {e}")
            self.error = error_message(e, "Failed to cancel parking spot availability")
            self.state = OwnerState.SELECTING_DATE
            return False
        self.success = f"Parking spot availability cancelled successfully for {format_date(day)}"
        self.state = OwnerState.SELECTING_DATE
        # The clock may have crossed the cutoff while the owner was deciding
        self.update_min_date()
        return True

    def close_popup(self):
        self.state = OwnerState.SELECTING_DATE
