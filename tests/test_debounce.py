import unittest
import os
import sys
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))
from fakes import ManualTimer
from parking_client.reservations.debounce import Debouncer
from parking_client.reservations.toast import ToastService


class DebouncerTest(unittest.TestCase):
    def setUp(self):
        ManualTimer.created = []
        self.applied = []
        self.debouncer = Debouncer(self.applied.append, delay=0.3, timer_factory=ManualTimer)

    def test_burst_applies_last_value_once(self):
        for value in ("p", "pa", "par"):
            self.debouncer.push(value)
        self.assertTrue(self.debouncer.pending)
        self.assertEqual([t.cancelled for t in ManualTimer.created], [True, True, False])
        ManualTimer.created[-1].fire()
        self.assertEqual(self.applied, ["par"])
        self.assertFalse(self.debouncer.pending)
        self.assertEqual(ManualTimer.created[-1].delay, 0.3)

    def test_flush(self):
        self.debouncer.push("garage")
        self.debouncer.flush()
        self.assertEqual(self.applied, ["garage"])
        self.debouncer.flush()
        self.assertEqual(self.applied, ["garage"])

    def test_unchanged_value_is_dropped(self):
        self.debouncer.mark_applied("yard")
        self.debouncer.push("yard")
        self.debouncer.flush()
        self.assertEqual(self.applied, [])

    def test_cancel(self):
        self.debouncer.push("yard")
        self.debouncer.cancel()
        self.assertFalse(self.debouncer.pending)
        ManualTimer.created[-1].fire()
        self.assertEqual(self.applied, [])


class ToastServiceTest(unittest.TestCase):

    def test_types_and_timeouts(self):
        toast = ToastService()
        seen = []
        unsubscribe = toast.subscribe(seen.append)
        toast.success("saved")
        toast.error("failed")
        toast.info("note")
        toast.warn("careful")
        self.assertEqual([(t.type, t.timeout) for t in seen],
                         [("success", 3000), ("error", 4000), ("info", 3000), ("warning", 4000)])
        unsubscribe()
        toast.show("ignored")
        self.assertEqual(len(seen), 4)


if __name__ == '__main__':
    unittest.main()
