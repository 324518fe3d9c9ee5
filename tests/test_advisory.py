import threading
import unittest
from datetime import date, time

from planning.advisory import AdvisoryAvailabilityCheck
from planning.availability import AvailabilityQuery


def make_query(hour: int) -> AvailabilityQuery:
    return AvailabilityQuery(1, date(2025, 3, 10), time(hour, 0), time(hour + 1, 0))


class AdvisoryAvailabilityCheckTestCase(unittest.TestCase):
    def test_debounce_delivers_only_the_last_query(self) -> None:
        checked = []
        delivered = []
        done = threading.Event()

        def check(query):
            checked.append(query)
            return query.start_time.hour != 9

        def on_result(query, available):
            delivered.append((query, available))
            done.set()

        advisory = AdvisoryAvailabilityCheck(check, on_result, delay=0.05)
        advisory.submit(make_query(8))
        advisory.submit(make_query(9))
        last = make_query(10)
        advisory.submit(last)

        self.assertTrue(done.wait(2))
        advisory.wait(2)
        self.assertEqual(checked, [last])
        self.assertEqual(delivered, [(last, True)])
        self.assertTrue(advisory.last_result)

    def test_stale_result_is_discarded(self) -> None:
        release = threading.Event()
        started = threading.Event()
        delivered = []

        def slow_check(query):
            started.set()
            release.wait(2)
            return False

        advisory = AdvisoryAvailabilityCheck(slow_check, lambda q, a: delivered.append(a), delay=0)
        advisory.submit(make_query(9))
        self.assertTrue(started.wait(2))
        advisory.cancel()
        release.set()
        advisory.wait(2)

        self.assertEqual(delivered, [])
        self.assertIsNone(advisory.last_result)

    def test_errors_are_reported_not_raised(self) -> None:
        errors = []
        done = threading.Event()

        def failing_check(query):
            raise RuntimeError("store unavailable")

        def on_error(query, exc):
            errors.append(str(exc))
            done.set()

        advisory = AdvisoryAvailabilityCheck(
            failing_check, lambda q, a: None, delay=0, on_error=on_error
        )
        advisory.submit(make_query(9))
        self.assertTrue(done.wait(2))
        self.assertEqual(errors, ["store unavailable"])
        self.assertIsNone(advisory.last_result)


if __name__ == "__main__":
    unittest.main()
