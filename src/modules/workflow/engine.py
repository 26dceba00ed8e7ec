"""Order status workflow engine.

Pure decision functions over the static ``ROLE_TRANSITIONS`` table. None of
them raise or touch I/O: malformed roles or statuses simply produce ``False``
or an empty tuple, and it is up to the caller to turn that into an error.

Roles and statuses may be passed either as enum members or as their raw
string values (as they arrive in request bodies and token claims). There is
no default role: a missing role has no legal moves.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping

from src.models.enums import OrderStatus, Role
from src.modules.workflow.constants import ROLE_TRANSITIONS, TERMINAL_STATUSES


def parse_status(value: object) -> OrderStatus | None:
    """Return the ``OrderStatus`` named by *value*, or ``None``."""
    if isinstance(value, OrderStatus):
        return value
    if isinstance(value, str):
        try:
            return OrderStatus(value)
        except ValueError:
            return None
    return None


def parse_role(value: object) -> Role | None:
    """Return the ``Role`` named by *value*, or ``None``."""
    if isinstance(value, Role):
        return value
    if isinstance(value, str):
        try:
            return Role(value)
        except ValueError:
            return None
    return None


def is_valid_state(value: object) -> bool:
    return parse_status(value) is not None


def allowed_next_states(role: object, from_status: object) -> tuple[OrderStatus, ...]:
    """Destinations reachable by *role* from *from_status*, in table order."""
    parsed_role = parse_role(role)
    parsed_from = parse_status(from_status)
    if parsed_role is None or parsed_from is None:
        return ()
    return ROLE_TRANSITIONS.get(parsed_role, {}).get(parsed_from, ())


def can_transition(role: object, from_status: object, to_status: object) -> bool:
    """Authorization gate for a single status change.

    Must be called with the role of the authenticated requester.
    """
    if not is_valid_state(from_status) or not is_valid_state(to_status):
        return False
    return parse_status(to_status) in allowed_next_states(role, from_status)


def is_terminal(status: object) -> bool:
    parsed = parse_status(status)
    return parsed is not None and parsed in TERMINAL_STATUSES


def transition_edges(
    table: Mapping[Role, Mapping[OrderStatus, tuple[OrderStatus, ...]]] = ROLE_TRANSITIONS,
) -> Iterator[tuple[Role, OrderStatus, OrderStatus]]:
    """Yield every ``(role, from, to)`` edge of the transition table."""
    for role, rules in table.items():
        for from_status, destinations in rules.items():
            for to_status in destinations:
                yield role, from_status, to_status


def validate_transition_table(
    table: Mapping[Role, Mapping[OrderStatus, tuple[OrderStatus, ...]]],
) -> None:
    """Raise ``ValueError`` if *table* references an unmodeled role or state,
    lists a self-loop, or leaves a terminal status."""
    for role, rules in table.items():
        if not isinstance(role, Role):
            raise ValueError(f"Unknown role in transition table: {role!r}")
        for from_status, destinations in rules.items():
            if not isinstance(from_status, OrderStatus):
                raise ValueError(f"Unknown source status for {role.value}: {from_status!r}")
            if from_status in TERMINAL_STATUSES and destinations:
                raise ValueError(
                    f"{role.value} lists transitions out of terminal status {from_status.value}"
                )
            if len(set(destinations)) != len(destinations):
                raise ValueError(
                    f"Duplicate destination for {role.value} from {from_status.value}"
                )
            for to_status in destinations:
                if not isinstance(to_status, OrderStatus):
                    raise ValueError(
                        f"Unknown destination for {role.value} from "
                        f"{from_status.value}: {to_status!r}"
                    )
                if to_status == from_status:
                    raise ValueError(
                        f"Self-loop for {role.value} on {from_status.value}"
                    )


validate_transition_table(ROLE_TRANSITIONS)
