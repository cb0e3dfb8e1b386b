from datetime import date
import logging

from .api_client import ApiClient
from .booking_utils import format_date

logger = logging.getLogger(__name__)


class OwnerService:

    def __init__(self, api: ApiClient):
        self._api = api

    def cancel_spot_availability(self, day: date):
        """
        Withdraw the owner's own spot for a day so it can be booked by others.

        Route: POST /api/owner/cancel with {cancellationDate}
        """
        response = self._api.post("/api/owner/cancel", json={"cancellationDate": format_date(day)})
        logger.info(f"Owner availability cancelled for {format_date(day)}")
        return response
