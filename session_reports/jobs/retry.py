"""Retry policy for failed report job attempts."""

from dataclasses import dataclass

DEFAULT_BACKOFF_BASE_S = 30
DEFAULT_BACKOFF_CAP_S = 30 * 60


@dataclass(frozen=True)
class RetryDecision:
    """What to do with a job after a failed attempt."""

    attempts: int  # post-increment attempt count to persist
    terminal: bool
    backoff_seconds: int = 0  # set only when requeueing


@dataclass(frozen=True)
class RetryPolicy:
    """Exponential backoff with a hard ceiling, no jitter.

    backoff(n) = min(base * 2^n, cap), where n is the attempt count after the
    failed attempt has been counted. With base=30s the first retry waits 60s.
    """

    base_seconds: int = DEFAULT_BACKOFF_BASE_S
    cap_seconds: int = DEFAULT_BACKOFF_CAP_S

    def backoff_seconds(self, attempts: int) -> int:
        """Delay before the next attempt, given the post-increment attempt count."""
        if attempts < 0:
            raise ValueError("attempts must be >= 0")
        # Cap early so large attempt counts never build huge integers
        if attempts >= 32:
            return self.cap_seconds
        return min(self.base_seconds * (2**attempts), self.cap_seconds)

    def decide(self, attempts: int, max_attempts: int) -> RetryDecision:
        """Count the failed attempt and choose between requeue and terminal failure.

        Args:
            attempts: Attempts recorded on the job before this failure
            max_attempts: Attempt ceiling of the job

        Returns:
            RetryDecision with the new attempt count and, when requeueing, the
            delay the database adds to now() for run_at
        """
        next_attempts = attempts + 1
        if next_attempts >= max_attempts:
            return RetryDecision(attempts=next_attempts, terminal=True)

        return RetryDecision(
            attempts=next_attempts,
            terminal=False,
            backoff_seconds=self.backoff_seconds(next_attempts),
        )
