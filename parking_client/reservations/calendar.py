"""
Month calendar used as the booking page's date picker.

Weeks start on Sunday. Days before today are disabled; selecting one is ignored.
"""
from dataclasses import dataclass
from datetime import date
from typing import List, Optional
import calendar

DAY_HEADERS = ["Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat"]


@dataclass
class DayCell:
    date: date
    is_today: bool = False
    is_selected: bool = False
    disabled: bool = False

    @property
    def day(self) -> int:
        return self.date.day


class MonthCalendar:

    def __init__(self, today: date, selected: date = None, displayed: date = None):
        self.today = today
        self.selected = selected or today
        shown = displayed or self.selected
        self.year = shown.year
        self.month = shown.month
        self._calendar = calendar.Calendar(firstweekday=calendar.SUNDAY)

    @property
    def title(self) -> str:
        return f"{calendar.month_name[self.month]} {self.year}"

    def weeks(self) -> List[List[Optional[DayCell]]]:
        """
        Rows of seven cells; None pads the days belonging to the neighbouring months.
        """
        rows = []
        for week in self._calendar.monthdatescalendar(self.year, self.month):
            row = []
            for day in week:
                if day.month != self.month:
                    row.append(None)
                    continue
                row.append(DayCell(date=day, is_today=day == self.today, is_selected=day == self.selected, disabled=day < self.today))
            rows.append(row)
        return rows

    def previous_month(self):
        if self.month == 1:
            self.year, self.month = self.year - 1, 12
        else:
            self.month -= 1

    def next_month(self):
        if self.month == 12:
            self.year, self.month = self.year + 1, 1
        else:
            self.month += 1

    @property
    def previous_month_start(self) -> date:
        return date(self.year - 1, 12, 1) if self.month == 1 else date(self.year, self.month - 1, 1)

    @property
    def next_month_start(self) -> date:
        return date(self.year + 1, 1, 1) if self.month == 12 else date(self.year, self.month + 1, 1)

    def select(self, day: date) -> bool:
        if day < self.today:
            return False
        self.selected = day
        self.year, self.month = day.year, day.month
        return True
