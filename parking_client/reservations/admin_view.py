"""
Admin console state: paged, searchable, sortable user and reservation lists plus the admin commands.

Every command updates the in-memory row first, then keeps it on success or puts it back on failure.
Only one command per row may be in flight; the ids of rows with a command in flight are tracked
in busy sets rather than guarded with a lock.

List loads take a ticket. A response whose ticket is no longer the latest issued one is dropped,
so when loads overlap the latest request wins regardless of which one finishes last.
"""
from itertools import count
from typing import Callable, List, Optional
import logging

from .admin_service import AdminService, DEFAULT_PAGE_SIZE
from .debounce import Debouncer
from .demo_data import demo_reservations, demo_users
from .error_utils import ApiError, TransportError
from .models import AdminReservation, AdminUser, Page, Role
from .toast import ToastService

logger = logging.getLogger(__name__)

SEARCH_DEBOUNCE_SECONDS = 0.3


class PagedListView:
    """
    One paged list. fetch(page_index, page_size, search, sort) -> Page.
    """

    def __init__(self, name: str, fetch: Callable[..., Page], toast: ToastService, page_size: int = DEFAULT_PAGE_SIZE,
                 demo_rows: Callable[[], List] = None, debounce_seconds: float = SEARCH_DEBOUNCE_SECONDS, timer_factory: Callable = None):
        self.name = name
        self._fetch = fetch
        self._toast = toast
        self._demo_rows = demo_rows
        self._tickets = count(1)
        self._latest_ticket = 0

        self.items: List = []
        self.total = 0
        self.page_index = 0
        self.page_size = page_size
        self.search = ""
        self.sort_field: Optional[str] = None
        self.sort_direction = "asc"
        self.loading = False
        self.demo_mode = False

        self._search_debouncer = Debouncer(self._apply_search, delay=debounce_seconds, timer_factory=timer_factory)
        self._search_debouncer.mark_applied(self.search)

    @property
    def sort_param(self) -> Optional[str]:
        if not self.sort_field:
            return None
        return f"{self.sort_field},{self.sort_direction or 'asc'}"

    def load(self) -> bool:
        """
        Fetch the current page. Returns False if the response was dropped or the fetch failed.
        """
        ticket = next(self._tickets)
        self._latest_ticket = ticket
        self.loading = True
        try:
            page = self._fetch(self.page_index, self.page_size, self.search, self.sort_param)
        except (ApiError, TransportError) as e:
            if isinstance(e, ApiError) and e.is_unauthorized:
                self.loading = False
                raise
            if ticket != self._latest_ticket:
                logger.debug(f"Dropping failed {self.name} load {ticket}, superseded by {self._latest_ticket}")
                return False
            self.loading = False
            if self._demo_rows is not None:
                logger.warning(f"Loading {self.name} failed ({e}), showing demo data")
                self._set_demo_page()
                return True
            logger.error(f"Failed to load {self.name}: {e}")
            self._toast.error(f"Failed to load {self.name}")
            return False

        if ticket != self._latest_ticket:
            logger.debug(f"Dropping stale {self.name} response {ticket}, latest is {self._latest_ticket}")
            return False
        self.loading = False
        if not page.items and self._demo_rows is not None:
            self._set_demo_page()
            return True
        self.demo_mode = False
        self.items = list(page.items)
        self.total = page.total
        return True

    def _set_demo_page(self):
        rows = self._demo_rows()
        self.items = rows
        self.total = len(rows)
        self.demo_mode = True

    def set_page(self, page_index: int = None, page_size: int = None):
        if page_index is not None:
            self.page_index = max(0, int(page_index))
        if page_size:
            self.page_size = int(page_size)
        self.load()

    def on_search(self, value: str):
        """Keystroke handler: the list reloads once the value has settled."""
        self._search_debouncer.push(value or "")

    def search_now(self, value: str):
        """Apply a search value immediately, e.g. from a submitted form."""
        self._search_debouncer.cancel()
        value = value or ""
        if value == self.search:
            return
        self._search_debouncer.mark_applied(value)
        self._apply_search(value)

    def _apply_search(self, value: str):
        self.search = value
        self.page_index = 0
        self.load()

    def set_sort(self, field: Optional[str], direction: str = "asc"):
        self.sort_field = field or None
        self.sort_direction = direction or "asc"
        self.load()

    def find(self, row_id) -> Optional[object]:
        for row in self.items:
            if str(row.id) == str(row_id):
                return row
        return None

    def remove(self, row) -> int:
        index = self.items.index(row)
        del self.items[index]
        self.total = max(0, self.total - 1)
        return index

    def restore(self, row, index: int):
        self.items.insert(min(index, len(self.items)), row)
        self.total += 1

    def dispose(self):
        self._search_debouncer.cancel()


class AdminConsole:

    def __init__(self, admin_service: AdminService, toast: ToastService, page_size: int = DEFAULT_PAGE_SIZE,
                 demo_fallback: bool = False, debounce_seconds: float = SEARCH_DEBOUNCE_SECONDS, timer_factory: Callable = None):
        self._admin_service = admin_service
        self._toast = toast
        self.users = PagedListView("users", admin_service.get_users, toast, page_size=page_size,
                                   demo_rows=demo_users if demo_fallback else None,
                                   debounce_seconds=debounce_seconds, timer_factory=timer_factory)
        self.reservations = PagedListView("reservations", admin_service.get_reservations, toast, page_size=page_size,
                                          demo_rows=demo_reservations if demo_fallback else None,
                                          debounce_seconds=debounce_seconds, timer_factory=timer_factory)
        self.busy_user_ids = set()
        self.busy_reservation_ids = set()

    def load(self):
        self.users.load()
        self.reservations.load()

    def is_user_busy(self, user: AdminUser) -> bool:
        return user.id in self.busy_user_ids

    def is_reservation_busy(self, reservation: AdminReservation) -> bool:
        return reservation.id in self.busy_reservation_ids

    def _run(self, busy_ids: set, row_id, command: Callable, apply: Callable, revert: Callable,
             success_text: str, failure_text: str) -> bool:
        """
        Apply the optimistic change, run the command, and keep or revert the change.
        Returns False without doing anything if the row already has a command in flight.
        """
        if row_id in busy_ids:
            logger.info(f"Ignoring command for row {row_id}, a previous one is still running")
            return False
        busy_ids.add(row_id)
        apply()
        try:
            command()
        except (ApiError, TransportError) as e:
            revert()
            logger.error(f"{failure_text}: {e}")
            self._toast.error(failure_text)
            return False
        finally:
            busy_ids.discard(row_id)
        self._toast.success(success_text)
        return True

    def toggle_admin(self, user: AdminUser) -> bool:
        original = bool(user.is_admin)

        def apply():
            user.is_admin = not original

        def revert():
            user.is_admin = original

        return self._run(self.busy_user_ids, user.id,
                         lambda: self._admin_service.set_admin(user.id, not original), apply, revert,
                         "User admin status updated", "Failed to update user admin status")

    def toggle_owner(self, user: AdminUser) -> bool:
        original_role = user.role
        make_owner = not user.is_owner

        def apply():
            user.role = Role.OWNER.value if make_owner else Role.USER.value

        def revert():
            user.role = original_role

        return self._run(self.busy_user_ids, user.id,
                         lambda: self._admin_service.set_owner(user.id, make_owner), apply, revert,
                         "User is now Owner" if make_owner else "User removed from Owner role",
                         "Failed to update owner status")

    def change_role(self, user: AdminUser, new_role: str) -> bool:
        try:
            new_role = Role(str(new_role).upper()).value
        except ValueError:
            logger.warning(f"Rejected unknown role {new_role!r} for user {user.id}")
            self._toast.error(f"Unknown role: {new_role}")
            return False
        original_role = user.role
        if new_role == original_role:
            return False

        def apply():
            user.role = new_role

        def revert():
            user.role = original_role

        return self._run(self.busy_user_ids, user.id,
                         lambda: self._admin_service.update_user_role(user.id, new_role), apply, revert,
                         f"Role changed to {new_role}", "Failed to update role")

    def revoke_parking(self, user: AdminUser) -> bool:
        parking_id = user.parking_id
        if not parking_id:
            return False

        def apply():
            user.parking_id = None

        def revert():
            user.parking_id = parking_id

        done = self._run(self.busy_user_ids, user.id,
                         lambda: self._admin_service.revoke_parking(parking_id), apply, revert,
                         "Parking spot revoked", "Failed to revoke parking")
        if done:
            self.reservations.load()
        return done

    def delete_user(self, user: AdminUser) -> bool:
        position = {}

        def apply():
            position["index"] = self.users.remove(user) if user in self.users.items else None

        def revert():
            if position.get("index") is not None:
                self.users.restore(user, position["index"])

        done = self._run(self.busy_user_ids, user.id,
                         lambda: self._admin_service.delete_user(user.id), apply, revert,
                         "User deleted", "Failed to delete user")
        if done:
            self.users.load()
        return done

    def cancel_reservation(self, reservation: AdminReservation) -> bool:
        position = {}

        def apply():
            position["index"] = self.reservations.remove(reservation) if reservation in self.reservations.items else None

        def revert():
            if position.get("index") is not None:
                self.reservations.restore(reservation, position["index"])

        done = self._run(self.busy_reservation_ids, reservation.id,
                         lambda: self._admin_service.cancel_reservation(reservation.id), apply, revert,
                         "Reservation cancelled", "Failed to cancel reservation")
        if done:
            self.reservations.load()
        return done

    def dispose(self):
        self.users.dispose()
        self.reservations.dispose()
