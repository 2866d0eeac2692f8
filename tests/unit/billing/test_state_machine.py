from __future__ import annotations

import pytest

from restroflow.billing.state_machine import INVOICE_LIFECYCLE, InvalidTransitionError


@pytest.mark.parametrize("target", ["PAID", "FAILED", "CANCELLED"])
def test_pending_can_reach_each_terminal_state(target):
    assert INVOICE_LIFECYCLE.can_transition("PENDING", target)


@pytest.mark.parametrize("current", ["PAID", "FAILED", "CANCELLED"])
def test_terminal_states_allow_nothing(current):
    assert INVOICE_LIFECYCLE.is_terminal(current)
    with pytest.raises(InvalidTransitionError):
        INVOICE_LIFECYCLE.assert_transition(current, "PENDING")
    with pytest.raises(InvalidTransitionError):
        INVOICE_LIFECYCLE.assert_transition(current, "PAID")


def test_pending_is_not_terminal():
    assert not INVOICE_LIFECYCLE.is_terminal("PENDING")
