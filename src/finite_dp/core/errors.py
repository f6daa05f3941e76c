"""Exceptions raised by the backward-induction solver."""

from __future__ import annotations

from typing import Any


class ProblemConfigError(ValueError):
    """The problem definition cannot be solved as configured."""


class UnsupportedRandomProcessError(ProblemConfigError):
    """A period declares more than one concurrent random process."""


class CallbackError(RuntimeError):
    """A user-supplied problem callback raised while solving."""

    def __init__(self, callback: str, period: int, state: Any = None) -> None:
        where = f"period {period}"
        if state is not None:
            where += f", state {state}"
        super().__init__(f"Problem callback '{callback}' failed at {where}.")
        self.callback = callback
        self.period = period
        self.state = state

    def __reduce__(self):
        return (type(self), (self.callback, self.period, self.state))


class SolveCancelledError(RuntimeError):
    """The solve was cancelled at a period boundary.

    ``completed_values`` and ``completed_policy`` hold every period that was
    fully evaluated before cancellation.
    """

    def __init__(
        self,
        next_period: int,
        completed_values: dict[int, dict],
        completed_policy: dict[int, dict],
    ) -> None:
        super().__init__(f"Solve cancelled before period {next_period}.")
        self.next_period = next_period
        self.completed_values = completed_values
        self.completed_policy = completed_policy
