"""
Ticket Value Objects
====================

Immutable value objects and stateless domain logic for tickets:

- FieldChange: a single ``{from, to}`` audit diff
- EmployeeLoad: a staff member paired with their open-ticket count
- select_least_loaded: the assignment balancing rule
"""

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional

from helpdesk_agent.tickets.domain.entities import Profile


@dataclass(frozen=True)
class FieldChange:
    """Old and new value of one ticket field."""

    old: Any
    new: Any

    @property
    def is_noop(self) -> bool:
        return self.old == self.new

    def to_dict(self) -> Dict[str, Any]:
        return {"from": self.old, "to": self.new}


def assignee_change(previous: Optional[str], current: str) -> Dict[str, List[str]]:
    """Audit diff for an individual assignment being set or replaced."""
    return {"removed": [previous] if previous else [], "added": [current]}


@dataclass(frozen=True)
class EmployeeLoad:
    """A staff member and the number of open tickets assigned to them."""

    employee: Profile
    open_count: int


def select_least_loaded(
    roster: Iterable[Profile],
    open_counts: Mapping[str, int]
) -> Optional[EmployeeLoad]:
    """
    Pick the staff member with the fewest open tickets.

    Folds over the roster in the order given, replacing the current pick
    only on a strictly smaller count, so the first candidate seen wins a
    tie. Profiles missing from ``open_counts`` count as 0.

    Args:
        roster: Candidate profiles in a stable order (by user_id)
        open_counts: Open-ticket count per profile id

    Returns:
        EmployeeLoad for the winner, or None for an empty roster
    """
    best: Optional[EmployeeLoad] = None
    for candidate in roster:
        count = open_counts.get(candidate.user_id, 0)
        if best is None or count < best.open_count:
            best = EmployeeLoad(employee=candidate, open_count=count)
    return best
