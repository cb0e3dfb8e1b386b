from typing import Optional
import logging

from .api_client import ApiClient
from .models import AdminReservation, AdminUser, Page, parse_rows

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 10


class AdminService:
    """
    Admin-only user and reservation administration under /api/admin.

    Failures propagate as ApiError / TransportError. The admin console rolls back its
    optimistic update when a command raises.
    """

    def __init__(self, api: ApiClient):
        self._api = api

    @staticmethod
    def _page_params(page_index: int, page_size: int, search: str, sort: Optional[str]) -> dict:
        return {
            "page": str(page_index or 0),
            "size": str(page_size or DEFAULT_PAGE_SIZE),
            "search": search or "",
            "sort": sort or "",
        }

    @staticmethod
    def _to_page(payload, row_type, what: str) -> Page:
        """
        List endpoints answer either {items, total} or a bare array.
        """
        if isinstance(payload, dict):
            items = parse_rows(payload.get("items"), row_type, what)
            total = payload.get("total") or len(items)
        else:
            items = parse_rows(payload, row_type, what)
            total = len(items)
        return Page(items=items, total=total)

    def get_users(self, page_index: int, page_size: int, search: str = "", sort: Optional[str] = None) -> Page:
        """
        Route: GET /api/admin/users?page=&size=&search=&sort=
        """
        payload = self._api.get("/api/admin/users", params=self._page_params(page_index, page_size, search, sort))
        return self._to_page(payload, AdminUser, "users")

    def get_reservations(self, page_index: int, page_size: int, search: str = "", sort: Optional[str] = None) -> Page:
        """
        Route: GET /api/admin/reservations?page=&size=&search=&sort=
        """
        payload = self._api.get("/api/admin/reservations", params=self._page_params(page_index, page_size, search, sort))
        return self._to_page(payload, AdminReservation, "reservations")

    def set_admin(self, user_id, is_admin: bool):
        """
        Route: POST /api/admin/users/{id}/admin with {isAdmin}
        """
        return self._api.post(f"/api/admin/users/{user_id}/admin", json={"isAdmin": is_admin})

    def set_owner(self, user_id, make_owner: bool):
        """
        Route: POST /api/admin/users/{id}/owner with {makeOwner}
        """
        return self._api.post(f"/api/admin/users/{user_id}/owner", json={"makeOwner": make_owner})

    def update_user_role(self, user_id, role: str):
        """
        Route: PUT /api/admin/users/{id}/role with {role}
        """
        return self._api.put(f"/api/admin/users/{user_id}/role", json={"role": role})

    def revoke_parking(self, parking_id):
        """
        Take a parking spot away from its owner.

        Route: PUT /api/admin/parkings/{parkingId}/revoke
        """
        return self._api.put(f"/api/admin/parkings/{parking_id}/revoke", json={})

    def delete_user(self, user_id):
        """
        Route: DELETE /api/admin/users/{id}
        """
        return self._api.delete(f"/api/admin/users/{user_id}")

    def cancel_reservation(self, reservation_id):
        """
        Route: DELETE /api/admin/reservations/{id}
        """
        return self._api.delete(f"/api/admin/reservations/{reservation_id}")
