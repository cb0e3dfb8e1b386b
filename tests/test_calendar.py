import unittest
import os
import sys
from datetime import date
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))
from parking_client.reservations.calendar import DAY_HEADERS, MonthCalendar

TODAY = date(2025, 12, 10)


class MonthCalendarTest(unittest.TestCase):

    def test_weeks_start_on_sunday(self):
        cal = MonthCalendar(TODAY)
        weeks = cal.weeks()
        self.assertEqual(DAY_HEADERS[0], "Sun")
        self.assertEqual(len(weeks), 5)
        self.assertTrue(all(len(week) == 7 for week in weeks))
        # 1 December 2025 is a Monday
        self.assertIsNone(weeks[0][0])
        self.assertEqual(weeks[0][1].day, 1)
        self.assertEqual([cell.day if cell else None for cell in weeks[-1]], [28, 29, 30, 31, None, None, None])

    def test_flags(self):
        cal = MonthCalendar(TODAY, selected=date(2025, 12, 12))
        cells = {cell.day: cell for week in cal.weeks() for cell in week if cell}
        self.assertTrue(cells[10].is_today)
        self.assertFalse(cells[10].disabled)
        self.assertTrue(cells[9].disabled)
        self.assertTrue(cells[12].is_selected)
        self.assertFalse(cells[10].is_selected)

    def test_title_and_navigation(self):
        cal = MonthCalendar(TODAY)
        self.assertEqual(cal.title, "December 2025")
        self.assertEqual(cal.next_month_start, date(2026, 1, 1))
        cal.next_month()
        self.assertEqual(cal.title, "January 2026")
        self.assertEqual(cal.previous_month_start, date(2025, 12, 1))
        cal.previous_month()
        cal.previous_month()
        self.assertEqual(cal.title, "November 2025")

    def test_past_days_cannot_be_selected(self):
        cal = MonthCalendar(TODAY)
        self.assertFalse(cal.select(date(2025, 12, 9)))
        self.assertEqual(cal.selected, TODAY)
        self.assertTrue(cal.select(date(2026, 2, 3)))
        self.assertEqual(cal.selected, date(2026, 2, 3))
        self.assertEqual(cal.title, "February 2026")

    def test_displayed_month_independent_of_selection(self):
        cal = MonthCalendar(TODAY, selected=date(2025, 12, 20), displayed=date(2026, 3, 1))
        self.assertEqual(cal.title, "March 2026")
        self.assertFalse(any(cell.is_selected for week in cal.weeks() for cell in week if cell))


if __name__ == '__main__':
    unittest.main()
