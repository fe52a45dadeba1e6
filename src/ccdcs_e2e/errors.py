"""Exception types shared by the reconciliation engine and the UI layer."""
from __future__ import annotations

from typing import Any, List, Optional, Sequence


class E2EError(Exception):
    """Base class for errors raised by the ccdcs_e2e package."""


class CatalogueError(E2EError):
    """Raised when a static catalogue is malformed or a record is inconsistent."""


class ReconciliationError(E2EError, AssertionError):
    """Raised by callers that turn a non-empty reconciliation into a failure.

    The message always lists every discrepancy, never just a count, so a
    single test report shows the whole picture.
    """

    def __init__(self, label: str, issues: Sequence[str]) -> None:
        self.label = label
        self.issues: List[str] = list(issues)
        lines = [f"{label}: {len(self.issues)} issue(s)"]
        lines.extend(f" - {issue}" for issue in self.issues)
        super().__init__("\n".join(lines))


class ExtractionTimeoutError(E2EError, TimeoutError):
    """An extraction adapter could not obtain a stable snapshot in time.

    Never converted into an empty actual set by the caller.
    """


class PollTimeoutError(ExtractionTimeoutError):
    """A bounded poll ran out of time.

    ``wrong_state_seen`` is true when the check did produce a value at some
    point but that value was flagged as a wrong terminal state (for example a
    popup that opened with "pagination underway"). Otherwise the condition
    never became ready at all.
    """

    def __init__(
        self,
        description: str,
        *,
        timeout: float,
        attempts: int,
        last_value: Any = None,
        last_error: Optional[BaseException] = None,
        wrong_state_seen: bool = False,
    ) -> None:
        self.description = description
        self.timeout = timeout
        self.attempts = attempts
        self.last_value = last_value
        self.last_error = last_error
        self.wrong_state_seen = wrong_state_seen

        if wrong_state_seen:
            reason = "became ready in the wrong state"
        else:
            reason = "never became ready"
        message = (
            f"Timed out after {timeout:.1f}s waiting for {description}: "
            f"{reason} ({attempts} attempt(s), last value={last_value!r})"
        )
        if last_error is not None:
            message += f". Last error: {last_error}"
        super().__init__(message)
