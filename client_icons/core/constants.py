# client_icons/core/constants.py

"""
Application-wide constants and enumerations.

Defines client attribute enumerations, condition operators and other
immutable values used throughout the application.
"""

from enum import Enum


class EmploymentType(Enum):
    """How the client is employed."""
    DG = "DG"
    DG_ETAT = "DG_ETAT"
    DG_AKCJONARIUSZ = "DG_AKCJONARIUSZ"
    DG_HALF_TIME_BELOW_MIN = "DG_HALF_TIME_BELOW_MIN"
    DG_HALF_TIME_ABOVE_MIN = "DG_HALF_TIME_ABOVE_MIN"


class VatStatus(Enum):
    """VAT settlement period."""
    VAT_MONTHLY = "VAT_MONTHLY"
    VAT_QUARTERLY = "VAT_QUARTERLY"
    NO = "NO"
    NO_WATCH_LIMIT = "NO_WATCH_LIMIT"


class TaxScheme(Enum):
    """Income tax scheme."""
    PIT_17 = "PIT_17"
    PIT_19 = "PIT_19"
    LUMP_SUM = "LUMP_SUM"
    GENERAL = "GENERAL"


class ZusStatus(Enum):
    """Social insurance contribution status."""
    FULL = "FULL"
    PREFERENTIAL = "PREFERENTIAL"
    NONE = "NONE"


class AmlGroup(Enum):
    """Anti-money-laundering risk group."""
    LOW = "LOW"
    STANDARD = "STANDARD"
    ELEVATED = "ELEVATED"
    HIGH = "HIGH"


class IconType(Enum):
    """How an icon is rendered."""
    LUCIDE = "lucide"
    CUSTOM = "custom"
    EMOJI = "emoji"


class LogicalOperator(Enum):
    """Operators joining the children of a condition group."""
    AND = "and"
    OR = "or"


class ConditionOperator(Enum):
    """Comparison operators for single conditions."""
    EQUALS = "equals"
    NOT_EQUALS = "notEquals"
    CONTAINS = "contains"
    NOT_CONTAINS = "notContains"
    GREATER_THAN = "greaterThan"
    LESS_THAN = "lessThan"
    GREATER_THAN_OR_EQUAL = "greaterThanOrEqual"
    LESS_THAN_OR_EQUAL = "lessThanOrEqual"
    IS_EMPTY = "isEmpty"
    IS_NOT_EMPTY = "isNotEmpty"
    IN = "in"
    NOT_IN = "notIn"
    BETWEEN = "between"


class ConditionKeys:
    """
    Key names of the condition tree JSON stored on an icon.

    The tree is authored by the web condition builder, hence camelCase.
    """

    LOGICAL_OPERATOR = "logicalOperator"
    CONDITIONS = "conditions"
    FIELD = "field"
    OPERATOR = "operator"
    VALUE = "value"
    SECOND_VALUE = "secondValue"


class Limits:
    """Application limits and constraints."""

    # Bulk walk page size
    DEFAULT_BATCH_SIZE = 100

    # Condition nesting guard
    DEFAULT_MAX_CONDITION_DEPTH = 64

    # Background pool
    DEFAULT_WORKER_THREADS = 2


class LogMessages:
    """Standard log messages for the auto-assignment engine."""

    EVALUATION_FAILED = (
        "⚠️ Skipping icon {icon_id} for client {client_id} "
        "(company {company_id}): {error}"
    )
    RECONCILIATION_FAILED = "❌ Icon reconciliation failed for client {client_id}: {error}"
    WALK_SCHEDULED = "🔄 Scheduled icon {icon_id} re-evaluation for company {company_id}"
    WALK_COMPLETE = (
        "✅ Icon {icon_id} re-evaluated: {processed} clients in {pages} pages, "
        "{added} added, {removed} removed, {errors} errors"
    )

    @classmethod
    def format(cls, message: str, **kwargs) -> str:
        """Format message with parameters."""
        return message.format(**kwargs)


# Export commonly used constants
__all__ = [
    "EmploymentType",
    "VatStatus",
    "TaxScheme",
    "ZusStatus",
    "AmlGroup",
    "IconType",
    "LogicalOperator",
    "ConditionOperator",
    "ConditionKeys",
    "Limits",
    "LogMessages",
]
