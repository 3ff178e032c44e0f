"""State machine for retrying a single call."""

from enum import Enum

import structlog

from fluent_http.constants import COMPONENT_HTTP


logger = structlog.get_logger()


class RetryState(str, Enum):
    """State of a call under a retry policy.

    - ATTEMPTING: Request forwarded to the next stage of the chain
    - WAITING: Network failure observed, sleeping before the next attempt
    - SUCCEEDED: A response was obtained (any status code)
    - EXHAUSTED_FAILURE: Last attempt failed, error propagated
    - CANCELED: Call canceled while waiting for the next attempt
    """

    ATTEMPTING = "ATTEMPTING"
    WAITING = "WAITING"
    SUCCEEDED = "SUCCEEDED"
    EXHAUSTED_FAILURE = "EXHAUSTED_FAILURE"
    CANCELED = "CANCELED"


# Valid state transitions
_VALID_TRANSITIONS: dict[RetryState, set[RetryState]] = {
    RetryState.ATTEMPTING: {
        RetryState.WAITING,
        RetryState.SUCCEEDED,
        RetryState.EXHAUSTED_FAILURE,
    },
    RetryState.WAITING: {RetryState.ATTEMPTING, RetryState.CANCELED},
    RetryState.SUCCEEDED: set(),  # Terminal state
    RetryState.EXHAUSTED_FAILURE: set(),  # Terminal state
    RetryState.CANCELED: set(),  # Terminal state
}

_TERMINAL_STATES = frozenset(
    {RetryState.SUCCEEDED, RetryState.EXHAUSTED_FAILURE, RetryState.CANCELED}
)


class RetryStateTransitionError(Exception):
    """Raised when an illegal state transition is attempted."""

    def __init__(
        self,
        url: str,
        from_state: RetryState,
        to_state: RetryState,
    ) -> None:
        """Initialize the transition error.

        Args:
            url: URL of the call being retried.
            from_state: Current state.
            to_state: Attempted target state.
        """
        self.url = url
        self.from_state = from_state
        self.to_state = to_state
        super().__init__(
            f"Illegal retry state transition for '{url}': "
            f"{from_state.value} -> {to_state.value}"
        )


class RetryStateMachine:
    """Tracks attempts and state for one retried call.

    Enforces valid transitions, counts attempts and logs all state changes.
    """

    def __init__(self, url: str, max_attempts: int) -> None:
        """Initialize the state machine in ATTEMPTING with attempt 1.

        Args:
            url: URL of the call, used for logging.
            max_attempts: Upper bound on attempts.
        """
        self._url = url
        self._max_attempts = max_attempts
        self._state = RetryState.ATTEMPTING
        self._attempt = 1
        self._log = logger.bind(
            component=COMPONENT_HTTP,
            url=url,
            max_attempts=max_attempts,
        )

    @property
    def state(self) -> RetryState:
        """Get the current state."""
        return self._state

    @property
    def attempt(self) -> int:
        """Get the current attempt number (1-indexed)."""
        return self._attempt

    @property
    def is_terminal(self) -> bool:
        """Check if current state is terminal."""
        return self._state in _TERMINAL_STATES

    def can_transition_to(self, target: RetryState) -> bool:
        """Check if a transition to the target state is valid.

        Args:
            target: The target state.

        Returns:
            True if the transition is valid.
        """
        return target in _VALID_TRANSITIONS.get(self._state, set())

    def transition_to(self, target: RetryState) -> None:
        """Transition to a new state.

        Args:
            target: The target state.

        Raises:
            RetryStateTransitionError: If the transition is invalid.
        """
        if not self.can_transition_to(target):
            self._log.error(
                "illegal_state_transition",
                from_state=self._state.value,
                to_state=target.value,
            )
            raise RetryStateTransitionError(
                url=self._url,
                from_state=self._state,
                to_state=target,
            )

        old_state = self._state
        self._state = target
        if old_state is RetryState.WAITING and target is RetryState.ATTEMPTING:
            self._attempt += 1

        self._log.debug(
            "state_transition",
            from_state=old_state.value,
            to_state=target.value,
            attempt=self._attempt,
        )

    def to_waiting(self) -> None:
        """Transition to WAITING after a retryable failure."""
        self.transition_to(RetryState.WAITING)

    def to_attempting(self) -> None:
        """Transition back to ATTEMPTING, incrementing the attempt counter."""
        self.transition_to(RetryState.ATTEMPTING)

    def to_succeeded(self) -> None:
        """Transition to SUCCEEDED state."""
        self.transition_to(RetryState.SUCCEEDED)

    def to_exhausted(self) -> None:
        """Transition to EXHAUSTED_FAILURE state."""
        self.transition_to(RetryState.EXHAUSTED_FAILURE)

    def to_canceled(self) -> None:
        """Transition to CANCELED state."""
        self.transition_to(RetryState.CANCELED)
