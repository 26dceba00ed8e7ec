"""Tests for the order status workflow engine: table shape and decision functions."""

from __future__ import annotations

import itertools
from types import MappingProxyType

import pytest

from src.models.enums import OrderStatus, Role
from src.modules.workflow import (
    INITIAL_STATUS,
    ROLE_TRANSITIONS,
    TERMINAL_STATUSES,
    allowed_next_states,
    can_transition,
    is_terminal,
    is_valid_state,
    parse_role,
    parse_status,
    transition_edges,
    validate_transition_table,
)

ALL_ROLES = list(Role)
ALL_STATUSES = list(OrderStatus)
JUNK_VALUES = ["Bogus", "", "pending", "PENDING", None, 3, ["Pending"], {"s": 1}, object()]


# ---------------------------------------------------------------------------
# Parsing at the boundary
# ---------------------------------------------------------------------------


class TestParsing:
    def test_status_strings_parse_to_members(self):
        assert parse_status("InProgress") is OrderStatus.IN_PROGRESS
        assert parse_status(OrderStatus.PAID) is OrderStatus.PAID

    def test_role_strings_parse_to_members(self):
        assert parse_role("Receptionist") is Role.RECEPTIONIST
        assert parse_role(Role.ADMIN) is Role.ADMIN

    @pytest.mark.parametrize("value", JUNK_VALUES)
    def test_junk_parses_to_none(self, value):
        assert parse_status(value) is None
        assert parse_role(value) is None

    def test_names_are_not_values(self):
        """Enum member names are not accepted in place of their values."""
        assert parse_status("IN_PROGRESS") is None
        assert parse_role("ADMIN") is None

    def test_is_valid_state(self):
        for status in ALL_STATUSES:
            assert is_valid_state(status)
            assert is_valid_state(status.value)
        for value in JUNK_VALUES:
            assert not is_valid_state(value)


# ---------------------------------------------------------------------------
# Table shape
# ---------------------------------------------------------------------------


class TestTransitionTable:
    def test_table_is_read_only(self):
        assert isinstance(ROLE_TRANSITIONS, MappingProxyType)
        with pytest.raises(TypeError):
            ROLE_TRANSITIONS[Role.RECEPTIONIST] = {}  # type: ignore[index]
        with pytest.raises(TypeError):
            ROLE_TRANSITIONS[Role.ADMIN][OrderStatus.PAID] = (OrderStatus.PENDING,)  # type: ignore[index]

    def test_every_role_has_rules(self):
        assert set(ROLE_TRANSITIONS) == set(Role)

    def test_no_self_loops(self):
        for role, from_status, to_status in transition_edges():
            assert from_status != to_status, (role, from_status)

    def test_destinations_are_modeled_states(self):
        for _, from_status, to_status in transition_edges():
            assert isinstance(from_status, OrderStatus)
            assert isinstance(to_status, OrderStatus)

    def test_terminal_statuses_have_no_rules(self):
        assert TERMINAL_STATUSES == {OrderStatus.CANCELLED, OrderStatus.PAID}
        for rules in ROLE_TRANSITIONS.values():
            for terminal in TERMINAL_STATUSES:
                assert rules.get(terminal, ()) == ()

    def test_initial_status_is_pending(self):
        assert INITIAL_STATUS is OrderStatus.PENDING

    def test_nothing_leads_back_to_pending(self):
        assert all(to_status != OrderStatus.PENDING for _, _, to_status in transition_edges())

    def test_graph_is_acyclic(self):
        graph: dict[OrderStatus, set[OrderStatus]] = {}
        for _, from_status, to_status in transition_edges():
            graph.setdefault(from_status, set()).add(to_status)

        visiting: set[OrderStatus] = set()
        done: set[OrderStatus] = set()

        def visit(node: OrderStatus) -> None:
            assert node not in visiting, f"cycle through {node}"
            if node in done:
                return
            visiting.add(node)
            for nxt in graph.get(node, ()):
                visit(nxt)
            visiting.discard(node)
            done.add(node)

        for node in ALL_STATUSES:
            visit(node)

    def test_admin_covers_every_operator_edge(self):
        operator_edges = {(f, t) for r, f, t in transition_edges() if r == Role.OPERATOR}
        admin_edges = {(f, t) for r, f, t in transition_edges() if r == Role.ADMIN}
        assert operator_edges <= admin_edges

    def test_operator_covers_every_receptionist_edge(self):
        receptionist_edges = {(f, t) for r, f, t in transition_edges() if r == Role.RECEPTIONIST}
        operator_edges = {(f, t) for r, f, t in transition_edges() if r == Role.OPERATOR}
        assert receptionist_edges <= operator_edges

    def test_declared_table(self):
        assert allowed_next_states(Role.RECEPTIONIST, OrderStatus.PENDING) == (OrderStatus.CANCELLED,)
        assert allowed_next_states(Role.OPERATOR, OrderStatus.COMPLETED) == (
            OrderStatus.DELIVERED,
            OrderStatus.PENDING_PAYMENT,
        )
        assert allowed_next_states(Role.ADMIN, OrderStatus.DELIVERED) == (
            OrderStatus.PENDING_PAYMENT,
            OrderStatus.PAID,
        )
        assert allowed_next_states(Role.ADMIN, OrderStatus.PENDING_PAYMENT) == (OrderStatus.PAID,)
        assert allowed_next_states(Role.OPERATOR, OrderStatus.DELIVERED) == ()
        assert allowed_next_states(Role.RECEPTIONIST, OrderStatus.IN_PROGRESS) == ()


class TestValidateTransitionTable:
    def test_accepts_declared_table(self):
        validate_transition_table(ROLE_TRANSITIONS)

    def test_rejects_self_loop(self):
        with pytest.raises(ValueError, match="Self-loop"):
            validate_transition_table({Role.ADMIN: {OrderStatus.PENDING: (OrderStatus.PENDING,)}})

    def test_rejects_unknown_destination(self):
        with pytest.raises(ValueError, match="Unknown destination"):
            validate_transition_table({Role.ADMIN: {OrderStatus.PENDING: ("Archived",)}})

    def test_rejects_unknown_source(self):
        with pytest.raises(ValueError, match="Unknown source"):
            validate_transition_table({Role.ADMIN: {"Draft": (OrderStatus.PENDING,)}})

    def test_rejects_unknown_role(self):
        with pytest.raises(ValueError, match="Unknown role"):
            validate_transition_table({"Manager": {OrderStatus.PENDING: (OrderStatus.CANCELLED,)}})

    def test_rejects_exit_from_terminal(self):
        with pytest.raises(ValueError, match="terminal"):
            validate_transition_table({Role.ADMIN: {OrderStatus.PAID: (OrderStatus.DELIVERED,)}})

    def test_rejects_duplicate_destination(self):
        with pytest.raises(ValueError, match="Duplicate"):
            validate_transition_table(
                {Role.ADMIN: {OrderStatus.PENDING: (OrderStatus.CANCELLED, OrderStatus.CANCELLED)}}
            )


# ---------------------------------------------------------------------------
# Decision properties over every role/state combination
# ---------------------------------------------------------------------------


class TestDecisionProperties:
    def test_transitions_only_between_valid_states(self):
        candidates = ALL_STATUSES + [s.value for s in ALL_STATUSES] + JUNK_VALUES
        for role in ALL_ROLES:
            for a, b in itertools.product(candidates, repeat=2):
                if can_transition(role, a, b):
                    assert is_valid_state(a) and is_valid_state(b)

    def test_terminal_states_have_no_exits(self):
        for role in ALL_ROLES:
            for b in ALL_STATUSES:
                assert can_transition(role, OrderStatus.CANCELLED, b) is False
                assert can_transition(role, OrderStatus.PAID, b) is False
            assert is_terminal(OrderStatus.CANCELLED)
            assert is_terminal("Paid")

    def test_can_transition_matches_allowed_next_states(self):
        for role in ALL_ROLES:
            for a, b in itertools.product(ALL_STATUSES, repeat=2):
                assert can_transition(role, a, b) == (b in allowed_next_states(role, a))

    def test_string_and_enum_inputs_agree(self):
        for role in ALL_ROLES:
            for a, b in itertools.product(ALL_STATUSES, repeat=2):
                assert can_transition(role.value, a.value, b.value) == can_transition(role, a, b)

    def test_unknown_role_has_no_moves(self):
        assert allowed_next_states("NotARole", "Pending") == ()
        for status in ALL_STATUSES:
            assert allowed_next_states("NotARole", status) == ()

    def test_unknown_state_is_rejected_without_raising(self):
        assert can_transition("Admin", "Bogus", "Paid") is False
        assert can_transition("Admin", "Pending", "Bogus") is False
        assert allowed_next_states("Admin", "Bogus") == ()

    @pytest.mark.parametrize("missing", [None, ""])
    def test_missing_role_is_not_admin(self, missing):
        """Omitting the role grants nothing rather than the most privileged rules."""
        assert allowed_next_states(missing, OrderStatus.DELIVERED) == ()
        assert can_transition(missing, OrderStatus.DELIVERED, OrderStatus.PAID) is False

    def test_unhashable_inputs_do_not_raise(self):
        assert can_transition(["Admin"], {"Pending"}, ["Paid"]) is False
        assert allowed_next_states({"role": "Admin"}, ["Pending"]) == ()


# ---------------------------------------------------------------------------
# Named scenarios
# ---------------------------------------------------------------------------


class TestScenarios:
    def test_receptionist_can_only_cancel_pending(self):
        assert can_transition("Receptionist", "Pending", "Cancelled") is True
        assert can_transition("Receptionist", "Pending", "InProgress") is False

    def test_operator_delivers_but_cannot_collect_payment(self):
        assert can_transition("Operator", "Completed", "Delivered") is True
        assert can_transition("Operator", "Delivered", "Paid") is False

    def test_admin_marks_delivered_order_paid(self):
        assert can_transition("Admin", "Delivered", "Paid") is True

    def test_full_happy_path_for_admin(self):
        path = [
            OrderStatus.PENDING,
            OrderStatus.IN_PROGRESS,
            OrderStatus.EXECUTED,
            OrderStatus.COMPLETED,
            OrderStatus.DELIVERED,
            OrderStatus.PENDING_PAYMENT,
            OrderStatus.PAID,
        ]
        for a, b in zip(path, path[1:]):
            assert can_transition(Role.ADMIN, a, b), (a, b)

    def test_no_transition_skips_execution(self):
        for role in ALL_ROLES:
            assert not can_transition(role, OrderStatus.PENDING, OrderStatus.COMPLETED)
            assert not can_transition(role, OrderStatus.IN_PROGRESS, OrderStatus.DELIVERED)
