import unittest
import os
import sys
from datetime import date
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))
from fakes import FakeParkingBackend
from parking_client.reservations import booking_view
from parking_client.reservations.booking_view import BookingView
from parking_client.reservations.error_utils import ApiError, TransportError
from parking_client.reservations.models import LotType, ParkingSpace, Reservation, Role, SpotStatus
from parking_client.reservations.session import Session, SessionHolder

DAY = date(2025, 12, 20)


def user_session(role=Role.USER):
    return SessionHolder(Session(token="tok", user_id=1, email="ana@example.com", role=role))


class BookingViewTest(unittest.TestCase):
    def setUp(self):
        self.backend = FakeParkingBackend(yard=4, garage=6, occupied={(3, DAY)})
        self.view = BookingView(self.backend, user_session(), today=lambda: DAY)

    def space(self, lot, number):
        return next(s for s in self.view.parking_spaces if s.parking_type == lot and s.spot_number == number)

    def test_load_partitions_and_sorts_by_spot_number(self):
        self.view.load_availability(DAY)
        self.assertEqual([s.spot_number for s in self.view.yard_spaces], [1, 2, 3, 4])
        self.assertEqual([s.spot_number for s in self.view.garage_spaces], [1, 2, 3, 4, 5, 6])
        self.assertTrue(all(s.parking_type == LotType.YARD for s in self.view.yard_spaces))
        self.assertTrue(all(s.parking_type == LotType.GARAGE for s in self.view.garage_spaces))
        yard_ids = {s.id for s in self.view.yard_spaces}
        garage_ids = {s.id for s in self.view.garage_spaces}
        self.assertFalse(yard_ids & garage_ids)
        self.assertEqual(len(yard_ids | garage_ids), len(self.view.parking_spaces))
        self.assertFalse(self.view.loading)
        self.assertEqual(self.view.error, "")

    def test_load_failure_shows_server_message(self):
        self.backend.fail_next = ApiError(500, "Database unavailable")
        self.view.load_availability(DAY)
        self.assertEqual(self.view.error, "Database unavailable")
        self.assertFalse(self.view.demo_mode)
        self.assertEqual(self.view.parking_spaces, [])

    def test_load_failure_without_message(self):
        self.backend.fail_next = TransportError("refused")
        self.view.load_availability(DAY)
        self.assertEqual(self.view.error, "Failed to load parking spaces")

    def test_unauthorized_load_propagates(self):
        self.backend.fail_next = ApiError(401, "Token expired")
        with self.assertRaises(ApiError):
            self.view.load_availability(DAY)

    def test_demo_fallback_only_when_enabled(self):
        view = BookingView(self.backend, user_session(), today=lambda: DAY, demo_fallback=True)
        self.backend.fail_next = TransportError("refused")
        view.load_availability(DAY)
        self.assertTrue(view.demo_mode)
        self.assertEqual(view.error, booking_view.DEMO_NOTICE)
        self.assertEqual(len(view.yard_spaces), 50)
        self.assertEqual(len(view.garage_spaces), 100)

        view.load_availability(DAY)
        self.assertFalse(view.demo_mode)
        self.assertEqual(len(view.parking_spaces), 10)

    def test_select_spot(self):
        self.view.load_availability(DAY)
        self.view.select_spot(self.space(LotType.YARD, 1))
        self.assertTrue(self.view.show_booking_popup)
        self.assertFalse(self.view.show_cancel_popup)

        self.view.close_popup()
        occupied = self.view.find_space(3)
        self.assertEqual(occupied.status, SpotStatus.OCCUPIED)
        self.view.select_spot(occupied)
        self.assertFalse(self.view.show_booking_popup)
        self.assertFalse(self.view.show_cancel_popup)

        self.view.select_spot(ParkingSpace(id=99, parking_type=LotType.YARD, spot_number=9, status=SpotStatus.OWNER_CANCELLED))
        self.assertFalse(self.view.show_booking_popup)
        self.assertFalse(self.view.show_cancel_popup)

    def test_booking_then_reload_is_no_longer_available(self):
        self.view.load_availability(DAY)
        spot = self.space(LotType.GARAGE, 2)
        self.view.select_spot(spot)
        self.assertTrue(self.view.confirm_booking())

        self.assertFalse(self.view.show_booking_popup)
        self.assertIsNone(self.view.selected_space)
        self.assertEqual(self.view.message, booking_view.BOOKED_MESSAGE)
        reloaded = self.view.find_space(spot.id)
        self.assertNotEqual(reloaded.status, SpotStatus.AVAILABLE)
        self.assertEqual(reloaded.status, SpotStatus.MINE)
        self.assertEqual(len(self.view.my_reservations), 1)
        self.assertIn(("create", spot.id, DAY), self.backend.calls)

    def test_booking_failure_keeps_dialog_open(self):
        self.view.load_availability(DAY)
        spot = self.space(LotType.YARD, 2)
        self.view.select_spot(spot)
        self.backend.fail_next = ApiError(409, "Parking space is already reserved")
        self.assertFalse(self.view.confirm_booking())
        self.assertTrue(self.view.show_booking_popup)
        self.assertIs(self.view.selected_space, spot)
        self.assertEqual(self.view.dialog_error, "Parking space is already reserved")

    def test_booking_failure_fallback_message(self):
        self.view.load_availability(DAY)
        self.view.select_spot(self.space(LotType.YARD, 2))
        self.backend.fail_next = TransportError("timeout")
        self.view.confirm_booking()
        self.assertEqual(self.view.dialog_error, "Failed to book parking space")

    def test_confirm_without_selection_is_noop(self):
        self.assertFalse(self.view.confirm_booking())
        self.assertFalse(self.view.confirm_cancel())
        self.assertEqual(self.backend.calls, [])

    def test_cancel_removes_exactly_the_matching_reservation(self):
        other_day = date(2025, 12, 21)
        self.backend.create_reservation(1, DAY)
        self.backend.create_reservation(1, other_day)
        self.backend.create_reservation(2, DAY)
        self.view.refresh()

        mine = self.view.find_space(1)
        self.assertEqual(mine.status, SpotStatus.MINE)
        self.view.select_spot(mine)
        self.assertTrue(self.view.show_cancel_popup)
        self.assertTrue(self.view.confirm_cancel())

        self.assertEqual(self.view.message, booking_view.CANCELLED_MESSAGE)
        remaining = {(r.parking_space_id, r.reservation_date[:10]) for r in self.view.my_reservations}
        self.assertEqual(remaining, {(1, "2025-12-21"), (2, "2025-12-20")})
        self.assertEqual(self.view.find_space(1).status, SpotStatus.AVAILABLE)

    def test_cancel_not_found_in_stale_cache(self):
        self.view.load_availability(DAY)
        stale = ParkingSpace(id=1, parking_type=LotType.GARAGE, spot_number=6, status=SpotStatus.MINE)
        self.view.select_spot(stale)
        self.assertFalse(self.view.confirm_cancel())
        self.assertEqual(self.view.error, booking_view.NOT_FOUND_MESSAGE)
        self.assertFalse(self.view.show_cancel_popup)
        self.assertNotIn("cancel", [call[0] for call in self.backend.calls])

    def test_find_reservation_normalizes_dates(self):
        self.view.my_reservations = [Reservation(id=5, parking_space_id=3, reservation_date="2025-12-20T00:00:00")]
        self.assertEqual(self.view.find_reservation(3, DAY).id, 5)

    def test_cancel_from_list(self):
        self.backend.create_reservation(4, DAY)
        self.view.refresh()
        self.assertTrue(self.view.cancel_reservation_from_list(self.view.my_reservations[0]))
        self.assertEqual(self.view.my_reservations, [])
        self.assertFalse(self.view.cancelling_reservation)

    def test_cancel_from_list_without_id(self):
        reservation = Reservation(id=None, parking_space_id=4, reservation_date="2025-12-20")
        self.assertFalse(self.view.cancel_reservation_from_list(reservation))
        self.assertEqual(self.view.error, "Invalid reservation")

    def test_cancel_failure(self):
        self.backend.create_reservation(4, DAY)
        self.view.refresh()
        self.backend.fail_next = ApiError(400, "Too late to cancel")
        self.assertFalse(self.view.cancel_reservation_from_list(self.view.my_reservations[0]))
        self.assertEqual(self.view.error, "Too late to cancel")
        self.assertFalse(self.view.cancelling_reservation)

    def test_change_date_reloads(self):
        self.view.load_availability(DAY)
        self.view.select_spot(self.space(LotType.YARD, 1))
        next_day = date(2025, 12, 22)
        self.view.change_date(next_day)
        self.assertEqual(self.view.selected_date, next_day)
        self.assertFalse(self.view.show_booking_popup)
        self.assertEqual(self.backend.calls[-1], ("spaces", next_day))

    def test_grid_positions(self):
        self.view.load_availability(DAY)
        grid = self.view.grid(LotType.YARD)
        self.assertEqual(len(grid), 5)
        self.assertEqual(len(grid[0]), 10)
        self.assertEqual(grid[0][3].spot_number, 4)
        self.assertIsNone(grid[0][4])
        self.assertEqual(len(self.view.grid(LotType.GARAGE)), 10)
        self.assertEqual(self.view.space_at_position(LotType.GARAGE, 0, 5).spot_number, 6)

    def test_owner_is_redirected(self):
        view = BookingView(self.backend, user_session(Role.OWNER), today=lambda: DAY)
        self.assertEqual(view.redirect_target, "owner")
        self.assertIsNone(self.view.redirect_target)


if __name__ == '__main__':
    unittest.main()
