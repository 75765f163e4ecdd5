"""State machine for a single provider's fetch lifecycle."""

from enum import Enum

import structlog


logger = structlog.get_logger()


class ProviderState(str, Enum):
    """State of a provider during one run.

    - PENDING: Not yet started
    - LISTING: Enumerating starred/configured repositories
    - FETCHING: Per-repository fan-out in progress
    - RECONCILING: Merging releases with raw tags
    - DONE: Successfully completed
    - FAILED: Failed with a provider-level error
    """

    PENDING = "PENDING"
    LISTING = "LISTING"
    FETCHING = "FETCHING"
    RECONCILING = "RECONCILING"
    DONE = "DONE"
    FAILED = "FAILED"


_VALID_TRANSITIONS: dict[ProviderState, set[ProviderState]] = {
    ProviderState.PENDING: {
        ProviderState.LISTING,
        ProviderState.DONE,
        ProviderState.FAILED,
    },
    ProviderState.LISTING: {ProviderState.FETCHING, ProviderState.FAILED},
    ProviderState.FETCHING: {ProviderState.RECONCILING, ProviderState.FAILED},
    ProviderState.RECONCILING: {ProviderState.DONE, ProviderState.FAILED},
    ProviderState.DONE: set(),
    ProviderState.FAILED: set(),
}


class ProviderStateTransitionError(Exception):
    """Raised when an illegal state transition is attempted."""

    def __init__(
        self,
        provider: str,
        from_state: ProviderState,
        to_state: ProviderState,
    ) -> None:
        """Initialize the transition error.

        Args:
            provider: Name of the provider.
            from_state: Current state.
            to_state: Attempted target state.
        """
        self.provider = provider
        self.from_state = from_state
        self.to_state = to_state
        super().__init__(
            f"Illegal state transition for provider '{provider}': "
            f"{from_state.value} -> {to_state.value}"
        )


class ProviderStateMachine:
    """Tracks and validates a provider's state transitions."""

    def __init__(
        self,
        provider: str,
        run_id: str,
        initial_state: ProviderState = ProviderState.PENDING,
    ) -> None:
        """Initialize the state machine.

        Args:
            provider: Name of the provider.
            run_id: Identifier for the current run.
            initial_state: Starting state.
        """
        self._provider = provider
        self._state = initial_state
        self._log = logger.bind(
            component="provider",
            run_id=run_id,
            provider=provider,
        )

    @property
    def state(self) -> ProviderState:
        """Get the current state."""
        return self._state

    @property
    def is_terminal(self) -> bool:
        """Check if current state is terminal."""
        return self._state in (ProviderState.DONE, ProviderState.FAILED)

    def can_transition_to(self, target: ProviderState) -> bool:
        """Check if a transition to the target state is valid.

        Args:
            target: The target state.

        Returns:
            True if the transition is valid.
        """
        return target in _VALID_TRANSITIONS.get(self._state, set())

    def transition_to(self, target: ProviderState) -> None:
        """Transition to a new state.

        Args:
            target: The target state.

        Raises:
            ProviderStateTransitionError: If the transition is invalid.
        """
        if not self.can_transition_to(target):
            self._log.error(
                "illegal_state_transition",
                from_state=self._state.value,
                to_state=target.value,
            )
            raise ProviderStateTransitionError(self._provider, self._state, target)

        old_state = self._state
        self._state = target
        self._log.debug(
            "provider_state_transition",
            from_state=old_state.value,
            to_state=target.value,
        )

    def to_listing(self) -> None:
        """Transition to LISTING state."""
        self.transition_to(ProviderState.LISTING)

    def to_fetching(self) -> None:
        """Transition to FETCHING state."""
        self.transition_to(ProviderState.FETCHING)

    def to_reconciling(self) -> None:
        """Transition to RECONCILING state."""
        self.transition_to(ProviderState.RECONCILING)

    def to_done(self) -> None:
        """Transition to DONE state."""
        self.transition_to(ProviderState.DONE)

    def to_failed(self) -> None:
        """Transition to FAILED state, unless already terminal."""
        if not self.is_terminal:
            self.transition_to(ProviderState.FAILED)
