"""Invoice lifecycle transitions."""

from __future__ import annotations

from restroflow.core.enums import InvoiceStatus


class InvalidTransitionError(ValueError):
    """Raised when a disallowed state transition is attempted."""


class StateMachine:
    """Transition table keyed by current state."""

    def __init__(self, transitions: dict[str, set[str]]) -> None:
        self._transitions = transitions

    def can_transition(self, current: str, target: str) -> bool:
        return target in self._transitions.get(current, set())

    def assert_transition(self, current: str, target: str) -> None:
        if not self.can_transition(current=current, target=target):
            raise InvalidTransitionError(f"Transition not allowed: {current} -> {target}")

    def is_terminal(self, state: str) -> bool:
        return not self._transitions.get(state)


INVOICE_LIFECYCLE = StateMachine(
    {
        InvoiceStatus.PENDING.value: {
            InvoiceStatus.PAID.value,
            InvoiceStatus.FAILED.value,
            InvoiceStatus.CANCELLED.value,
        },
        InvoiceStatus.PAID.value: set(),
        InvoiceStatus.FAILED.value: set(),
        InvoiceStatus.CANCELLED.value: set(),
    }
)
