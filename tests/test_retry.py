import unittest
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from src.shared.error_handling import ErrorKind, classify_login_error, classify_dashboard_error
from src.shared.exceptions import ApiError
from src.shared.retry import RetryExecutor, RetryStatus


class FailingOperation:
    """Operación que falla `failures` veces antes de devolver `value`"""

    def __init__(self, error, failures, value='ok'):
        self.error = error
        self.failures = failures
        self.value = value
        self.calls = 0

    def __call__(self):
        self.calls += 1
        if self.calls <= self.failures:
            raise self.error
        return self.value


class TestRetryExecutor(unittest.TestCase):
    def setUp(self):
        self.delays = []
        self.executor = RetryExecutor(max_attempts=3, base_delay=1.0, sleep=self.delays.append)

    def test_success_on_first_attempt(self):
        result = self.executor.execute(lambda: 42, 'load', classify_login_error)

        self.assertTrue(result.ok)
        self.assertEqual(result.value, 42)
        self.assertEqual(result.attempts, 1)
        self.assertEqual(self.delays, [])

    def test_retryable_failure_uses_exponential_backoff(self):
        operation = FailingOperation(ApiError(ErrorKind.SERVER, 'Server error. Please try again later.', status=500), 5)

        result = self.executor.execute(operation, 'log in', classify_login_error)

        self.assertEqual(result.status, RetryStatus.RETRYABLE_FAILURE)
        self.assertEqual(operation.calls, 3)
        self.assertEqual(result.attempts, 3)
        # Sin espera tras el último intento
        self.assertEqual(self.delays, [1.0, 2.0])
        self.assertEqual(result.message, 'Server error while trying to log in. Please try again later.')

    def test_recovers_after_transient_failure(self):
        operation = FailingOperation(ApiError(ErrorKind.NETWORK, 'Network error. Please check your connection.'), 2)

        result = self.executor.execute(operation, 'load your dashboard',
                                       lambda e: classify_dashboard_error(e, 'load your dashboard'))

        self.assertTrue(result.ok)
        self.assertEqual(result.attempts, 3)
        self.assertEqual(self.delays, [1.0, 2.0])

    def test_invalid_credentials_are_not_retried(self):
        error = ApiError(ErrorKind.AUTHENTICATION, 'Invalid credentials. Please check your email and password.', status=401)
        operation = FailingOperation(error, 5)

        result = self.executor.execute(operation, 'log in', classify_login_error)

        self.assertEqual(result.status, RetryStatus.TERMINAL_FAILURE)
        self.assertEqual(operation.calls, 1)
        self.assertEqual(self.delays, [])
        self.assertEqual(result.classification.security_message, 'Invalid login attempt detected.')

    def test_delay_sequence(self):
        executor = RetryExecutor(max_attempts=4, base_delay=1.0)
        self.assertEqual([executor.delay_for(n) for n in (1, 2, 3)], [1.0, 2.0, 4.0])

    def test_zero_delay_never_sleeps(self):
        executor = RetryExecutor(max_attempts=3, base_delay=0, sleep=self.delays.append)
        operation = FailingOperation(RuntimeError('boom'), 5)

        result = executor.execute(operation, 'load', lambda e: classify_dashboard_error(e, 'load'))

        self.assertFalse(result.ok)
        self.assertEqual(operation.calls, 3)
        self.assertEqual(self.delays, [])

    def test_from_config(self):
        executor = RetryExecutor.from_config({'RETRY_MAX_ATTEMPTS': 5, 'RETRY_BASE_DELAY': 0.5})
        self.assertEqual(executor.max_attempts, 5)
        self.assertEqual(executor.delay_for(3), 2.0)


if __name__ == '__main__':
    unittest.main()
