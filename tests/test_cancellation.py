import threading
import time
import unittest

from commitsage.cancellation import CancellationToken, GenerationCancelledError


class TestCancellationToken(unittest.TestCase):
    def test_fresh_token(self) -> None:
        token = CancellationToken()
        self.assertFalse(token.is_cancelled())
        self.assertIsNone(token.remaining())
        token.raise_if_cancelled()

    def test_cancel(self) -> None:
        token = CancellationToken()
        token.cancel()
        self.assertTrue(token.is_cancelled())
        with self.assertRaises(GenerationCancelledError) as cm:
            token.raise_if_cancelled()
        self.assertIn("cancelled", str(cm.exception))

    def test_with_timeout_none(self) -> None:
        self.assertIsNone(CancellationToken.with_timeout(None).remaining())

    def test_deadline_expires(self) -> None:
        token = CancellationToken.with_timeout(0.01)
        time.sleep(0.03)
        self.assertTrue(token.is_cancelled())
        self.assertEqual(token.remaining(), 0.0)
        with self.assertRaises(GenerationCancelledError) as cm:
            token.raise_if_cancelled()
        self.assertIn("deadline", str(cm.exception))

    def test_remaining_counts_down(self) -> None:
        token = CancellationToken.with_timeout(60)
        remaining = token.remaining()
        self.assertGreater(remaining, 59)
        self.assertLessEqual(remaining, 60)

    def test_wait_returns_early_on_cancel(self) -> None:
        token = CancellationToken()
        threading.Timer(0.05, token.cancel).start()
        start = time.monotonic()
        self.assertTrue(token.wait(5))
        self.assertLess(time.monotonic() - start, 2)

    def test_wait_without_cancel(self) -> None:
        self.assertFalse(CancellationToken().wait(0.01))

    def test_wait_is_bounded_by_deadline(self) -> None:
        token = CancellationToken.with_timeout(0.05)
        start = time.monotonic()
        self.assertTrue(token.wait(5))
        self.assertLess(time.monotonic() - start, 2)


if __name__ == "__main__":
    unittest.main()
