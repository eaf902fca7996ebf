# client_icons/core/types.py

"""
Type definitions and data classes for the application.

Provides the immutable condition tree, the detached icon snapshot handed
to background work, and result structures of the reconcilers.
"""

import copy
from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List, Optional, Tuple, Union

from .constants import ConditionOperator, LogicalOperator


@dataclass(frozen=True)
class SingleCondition:
    """Leaf of a condition tree: compare one client field with a value."""

    field: str
    operator: ConditionOperator
    value: Any = None
    second_value: Any = None


@dataclass(frozen=True)
class ConditionGroup:
    """Inner node of a condition tree joining its children with AND/OR."""

    logical_operator: LogicalOperator
    conditions: Tuple["ConditionNode", ...] = ()


ConditionNode = Union[SingleCondition, ConditionGroup]


def is_empty_condition(raw: Optional[Dict[str, Any]]) -> bool:
    """An icon without a rule stores NULL or an empty JSON object."""
    return raw is None or raw == {}


@dataclass(frozen=True)
class IconSnapshot:
    """
    Detached copy of the icon fields a bulk walk needs.

    Background work must not hold ORM instances bound to the request
    session that triggered it.
    """

    icon_id: int
    company_id: int
    condition: Optional[Dict[str, Any]]
    is_active: bool = True

    @classmethod
    def from_icon(cls, icon) -> "IconSnapshot":
        return cls(
            icon_id=icon.id,
            company_id=icon.company_id,
            condition=copy.deepcopy(icon.auto_assign_condition),
            is_active=bool(icon.is_active),
        )

    @property
    def has_condition(self) -> bool:
        return not is_empty_condition(self.condition)


@dataclass
class ReconciliationResult:
    """Outcome of reconciling one client against all icons of its company."""

    client_id: int
    company_id: int
    added: List[int] = field(default_factory=list)
    removed: List[int] = field(default_factory=list)
    failed_icon_ids: List[int] = field(default_factory=list)
    skipped: int = 0

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return asdict(self)

    @property
    def changed(self) -> bool:
        return bool(self.added or self.removed)


@dataclass
class BulkWalkStatistics:
    """Statistics about one bulk re-evaluation of an icon."""

    icon_id: int
    company_id: int
    total_clients: int = 0
    pages: int = 0
    processed: int = 0
    added: int = 0
    removed: int = 0
    unchanged: int = 0
    errors: int = 0
    aborted: bool = False
    abort_reason: Optional[str] = None
    elapsed_seconds: float = 0.0

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return asdict(self)
