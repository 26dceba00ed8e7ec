"""Workflow module: role-gated order status state machine."""

from src.modules.workflow.constants import INITIAL_STATUS, ROLE_TRANSITIONS, TERMINAL_STATUSES
from src.modules.workflow.engine import (
    allowed_next_states,
    can_transition,
    is_terminal,
    is_valid_state,
    parse_role,
    parse_status,
    transition_edges,
    validate_transition_table,
)

__all__ = [
    "INITIAL_STATUS",
    "ROLE_TRANSITIONS",
    "TERMINAL_STATUSES",
    "allowed_next_states",
    "can_transition",
    "is_terminal",
    "is_valid_state",
    "parse_role",
    "parse_status",
    "transition_edges",
    "validate_transition_table",
]
