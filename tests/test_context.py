import threading
import unittest

from confmap.context import RetrieveContext
from confmap.exceptions import RetrievalCancelledError


class RetrieveContextTests(unittest.TestCase):
    def test_background_context_never_expires(self):
        context = RetrieveContext.background()
        self.assertFalse(context.cancelled)
        self.assertIsNone(context.remaining())
        self.assertEqual(context.bound_timeout(30), 30)
        context.raise_if_cancelled("http://localhost/config")

    def test_shared_event_cancels(self):
        event = threading.Event()
        context = RetrieveContext(cancel_event=event)
        event.set()
        self.assertTrue(context.cancelled)
        with self.assertRaises(RetrievalCancelledError) as ctx:
            context.raise_if_cancelled("http://localhost/config")
        self.assertEqual(ctx.exception.uri, "http://localhost/config")

    def test_deadline_bounds_timeout(self):
        context = RetrieveContext(timeout=60)
        self.assertLessEqual(context.bound_timeout(120), 60)
        self.assertEqual(context.bound_timeout(1), 1)
        self.assertLessEqual(context.bound_timeout(None), 60)

    def test_zero_timeout_is_already_expired(self):
        context = RetrieveContext(timeout=0)
        self.assertTrue(context.deadline_exceeded)
        with self.assertRaises(RetrievalCancelledError):
            context.raise_if_cancelled("s3://bucket.s3.region.amazonaws.com/key")

    def test_cancel_runs_hooks_once(self):
        context = RetrieveContext()
        calls = []
        context.on_cancel(lambda: calls.append("first"))
        context.on_cancel(lambda: calls.append("second"))
        context.cancel()
        context.cancel()
        self.assertEqual(calls, ["first", "second"])
        self.assertTrue(context.cancelled)

    def test_unregistered_hook_is_not_run(self):
        context = RetrieveContext()
        calls = []
        unregister = context.on_cancel(lambda: calls.append("hook"))
        unregister()
        unregister()
        context.cancel()
        self.assertEqual(calls, [])

    def test_hook_registered_after_cancel_runs_immediately(self):
        context = RetrieveContext()
        context.cancel()
        calls = []
        context.on_cancel(lambda: calls.append("late"))
        self.assertEqual(calls, ["late"])

    def test_negative_timeout_rejected(self):
        with self.assertRaises(ValueError):
            RetrieveContext(timeout=-1)


if __name__ == "__main__":
    unittest.main()
