# client_icons/services/condition_evaluator.py
"""
Condition evaluation for icon auto-assignment rules.

A rule is a JSON tree authored in the condition builder:

    {"logicalOperator": "and", "conditions": [
        {"field": "vatStatus", "operator": "equals", "value": "VAT_MONTHLY"},
        {"logicalOperator": "or", "conditions": [...]},
    ]}

The tree is parsed into immutable dataclasses, its field names are resolved
against an explicit FieldRegistry and the result is compiled into a
predicate. Compilation happens once per rule load; evaluation is pure and
can be shared between threads.

Empty groups follow the identity elements: AND of nothing is True,
OR of nothing is False.
"""

import logging
from collections.abc import Mapping
from enum import Enum
from typing import Any, Callable, Dict, Optional, Union

from client_icons.core.config import Config
from client_icons.core.constants import ConditionKeys, ConditionOperator, LogicalOperator
from client_icons.core.exceptions import (
    ConditionDepthError,
    ConditionEvaluationError,
    ConditionTypeError,
    InvalidConditionError,
    UnknownFieldError,
    UnsupportedOperatorError,
)
from client_icons.core.types import ConditionGroup, ConditionNode, SingleCondition

logger = logging.getLogger(__name__)

FieldGetter = Callable[[Any], Any]
Predicate = Callable[[Any], bool]


# ============================================================================
# FIELD REGISTRY
# ============================================================================

def _attribute_getter(attribute: str) -> FieldGetter:
    """Build a getter reading one client attribute, enums reduced to their value."""

    def getter(client: Any) -> Any:
        try:
            value = getattr(client, attribute)
        except AttributeError as e:
            raise ConditionEvaluationError(
                f"Client object has no attribute '{attribute}'",
                {"attribute": attribute},
            ) from e
        if isinstance(value, Enum):
            return value.value
        return value

    getter.__name__ = f"get_{attribute}"
    return getter


class FieldRegistry:
    """Explicit mapping of rule field names to typed getters over a client."""

    def __init__(self, getters: Optional[Dict[str, FieldGetter]] = None):
        self._getters: Dict[str, FieldGetter] = dict(getters or {})

    def register(self, name: str, getter: FieldGetter) -> None:
        self._getters[name] = getter

    def register_attribute(self, name: str, attribute: Optional[str] = None) -> None:
        self.register(name, _attribute_getter(attribute or name))

    def resolve(self, name: str) -> FieldGetter:
        try:
            return self._getters[name]
        except KeyError:
            raise UnknownFieldError(
                f"Unknown condition field '{name}'",
                {"field": name, "known_fields": sorted(self._getters)},
            ) from None

    def __contains__(self, name: str) -> bool:
        return name in self._getters


# Rule field name (as sent by the condition builder) -> Client attribute
CLIENT_FIELDS = {
    "name": "name",
    "nip": "nip",
    "email": "email",
    "phone": "phone",
    "companySpecificity": "company_specificity",
    "additionalInfo": "additional_info",
    "pkdCode": "pkd_code",
    "gtuCodes": "gtu_codes",
    "employmentType": "employment_type",
    "vatStatus": "vat_status",
    "taxScheme": "tax_scheme",
    "zusStatus": "zus_status",
    "amlGroup": "aml_group",
    "receiveEmailCopy": "receive_email_copy",
    "isActive": "is_active",
}


def build_client_field_registry() -> FieldRegistry:
    """Registry of every client attribute a rule may reference."""
    registry = FieldRegistry()
    for field_name, attribute in CLIENT_FIELDS.items():
        registry.register_attribute(field_name, attribute)
        # snake_case aliases, used by CSV rule imports
        if attribute != field_name:
            registry.register_attribute(attribute, attribute)
    return registry


# ============================================================================
# PARSING
# ============================================================================

def parse_condition(raw: Mapping, max_depth: Optional[int] = None) -> ConditionNode:
    """
    Parse a JSON condition tree into immutable nodes.

    Args:
        raw: Condition tree as stored on the icon
        max_depth: Maximum nesting of groups (defaults to configuration)

    Raises:
        InvalidConditionError: Malformed node
        UnsupportedOperatorError: Unknown logical or comparison operator
        ConditionDepthError: Tree nested deeper than max_depth
    """
    limit = max_depth if max_depth is not None else Config.auto_assign.MAX_CONDITION_DEPTH
    return _parse_node(raw, depth=1, max_depth=limit)


def _parse_node(raw: Any, depth: int, max_depth: int) -> ConditionNode:
    if depth > max_depth:
        raise ConditionDepthError(
            f"Condition tree exceeds maximum depth of {max_depth}",
            {"max_depth": max_depth},
        )

    if not isinstance(raw, Mapping):
        raise InvalidConditionError(
            f"Condition node must be an object, got {type(raw).__name__}"
        )

    if ConditionKeys.CONDITIONS in raw:
        children = raw[ConditionKeys.CONDITIONS]
        if not isinstance(children, (list, tuple)):
            raise InvalidConditionError("Group 'conditions' must be a list")

        return ConditionGroup(
            logical_operator=_parse_logical_operator(
                raw.get(ConditionKeys.LOGICAL_OPERATOR, LogicalOperator.AND.value)
            ),
            conditions=tuple(_parse_node(child, depth + 1, max_depth) for child in children),
        )

    if ConditionKeys.FIELD in raw and ConditionKeys.OPERATOR in raw:
        field_name = raw[ConditionKeys.FIELD]
        if not isinstance(field_name, str) or not field_name:
            raise InvalidConditionError("Condition 'field' must be a non-empty string")

        return SingleCondition(
            field=field_name,
            operator=_parse_comparison_operator(raw[ConditionKeys.OPERATOR]),
            value=raw.get(ConditionKeys.VALUE),
            second_value=raw.get(ConditionKeys.SECOND_VALUE),
        )

    raise InvalidConditionError(
        "Condition node must be a group (conditions) or a comparison (field, operator)",
        {"keys": sorted(str(k) for k in raw)},
    )


def _parse_logical_operator(value: Any) -> LogicalOperator:
    try:
        return LogicalOperator(str(value).lower())
    except ValueError:
        raise UnsupportedOperatorError(
            f"Unsupported logical operator '{value}'",
            {"operator": value},
        ) from None


def _parse_comparison_operator(value: Any) -> ConditionOperator:
    try:
        return ConditionOperator(value)
    except ValueError:
        raise UnsupportedOperatorError(
            f"Unsupported comparison operator '{value}'",
            {"operator": value},
        ) from None


# ============================================================================
# COMPARISONS
# ============================================================================

def _normalize(value: Any) -> Any:
    """Case-insensitive comparison for strings, enums compared by value."""
    if isinstance(value, Enum):
        value = value.value
    if isinstance(value, str):
        return value.lower()
    return value


def _as_text(value: Any) -> str:
    return "" if value is None else str(value).lower()


def _is_sequence(value: Any) -> bool:
    return isinstance(value, (list, tuple, set, frozenset))


def _is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    if isinstance(value, (list, tuple, set, frozenset, dict)):
        return len(value) == 0
    return False


def _to_number(value: Any, role: str) -> float:
    if isinstance(value, bool):
        return float(value)
    if isinstance(value, (int, float)):
        try:
            return float(value)
        except OverflowError:
            pass
    if isinstance(value, str):
        try:
            return float(value.strip())
        except (ValueError, OverflowError):
            pass
    raise ConditionTypeError(
        f"Expected a numeric {role}, got {value!r}",
        {"role": role, "value": value},
    )


def _contains(field_value: Any, value: Any) -> bool:
    if _is_sequence(field_value):
        target = _normalize(value)
        return any(_normalize(item) == target for item in field_value)
    return _as_text(value) in _as_text(field_value)


def _ordering(compare: Callable[[float, float], bool]) -> Callable[[Any, Any, Any], bool]:
    def apply(field_value: Any, value: Any, second_value: Any) -> bool:
        if field_value is None:
            return False
        return compare(_to_number(field_value, "field value"), _to_number(value, "rule value"))

    return apply


def _between(field_value: Any, value: Any, second_value: Any) -> bool:
    if field_value is None:
        return False
    number = _to_number(field_value, "field value")
    return _to_number(value, "lower bound") <= number <= _to_number(second_value, "upper bound")


def _in(field_value: Any, value: Any, second_value: Any) -> bool:
    if not _is_sequence(value):
        return False
    target = _normalize(field_value)
    return any(_normalize(item) == target for item in value)


def _not_in(field_value: Any, value: Any, second_value: Any) -> bool:
    if not _is_sequence(value):
        return True
    return not _in(field_value, value, second_value)


OPERATORS: Dict[ConditionOperator, Callable[[Any, Any, Any], bool]] = {
    ConditionOperator.EQUALS: lambda f, v, s: _normalize(f) == _normalize(v),
    ConditionOperator.NOT_EQUALS: lambda f, v, s: _normalize(f) != _normalize(v),
    ConditionOperator.CONTAINS: lambda f, v, s: _contains(f, v),
    ConditionOperator.NOT_CONTAINS: lambda f, v, s: not _contains(f, v),
    ConditionOperator.GREATER_THAN: _ordering(lambda a, b: a > b),
    ConditionOperator.LESS_THAN: _ordering(lambda a, b: a < b),
    ConditionOperator.GREATER_THAN_OR_EQUAL: _ordering(lambda a, b: a >= b),
    ConditionOperator.LESS_THAN_OR_EQUAL: _ordering(lambda a, b: a <= b),
    ConditionOperator.IS_EMPTY: lambda f, v, s: _is_empty(f),
    ConditionOperator.IS_NOT_EMPTY: lambda f, v, s: not _is_empty(f),
    ConditionOperator.IN: _in,
    ConditionOperator.NOT_IN: _not_in,
    ConditionOperator.BETWEEN: _between,
}


# ============================================================================
# COMPILATION & EVALUATION
# ============================================================================

class CompiledCondition:
    """A parsed condition tree with all field names resolved."""

    def __init__(self, node: ConditionNode, predicate: Predicate):
        self.node = node
        self._predicate = predicate

    def matches(self, client: Any) -> bool:
        try:
            return self._predicate(client)
        except ConditionEvaluationError:
            raise
        except (TypeError, ValueError, OverflowError, RecursionError) as e:
            raise ConditionTypeError(
                f"Rule could not be evaluated: {e}",
                {"error": type(e).__name__},
            ) from e


def _compile_node(node: ConditionNode, registry: FieldRegistry) -> Predicate:
    if isinstance(node, ConditionGroup):
        children = tuple(_compile_node(child, registry) for child in node.conditions)
        if node.logical_operator is LogicalOperator.AND:
            return lambda client: all(child(client) for child in children)
        return lambda client: any(child(client) for child in children)

    getter = registry.resolve(node.field)
    comparator = OPERATORS.get(node.operator)
    if comparator is None:
        raise UnsupportedOperatorError(
            f"No evaluator registered for operator '{node.operator.value}'",
            {"operator": node.operator.value},
        )
    value, second_value = node.value, node.second_value
    return lambda client: comparator(getter(client), value, second_value)


def compile_condition(
    raw: Union[Mapping, ConditionNode],
    registry: Optional[FieldRegistry] = None,
    max_depth: Optional[int] = None,
) -> CompiledCondition:
    """
    Parse (if needed) and compile a condition tree.

    Unknown fields are rejected here, at rule-load time, rather than
    evaluating to a silent non-match.
    """
    node = raw if isinstance(raw, (SingleCondition, ConditionGroup)) else parse_condition(raw, max_depth)
    registry = registry or DEFAULT_REGISTRY
    return CompiledCondition(node, _compile_node(node, registry))


class ConditionEvaluator:
    """
    Evaluates icon auto-assign conditions against client data.

    Holds no mutable state; one instance can be shared by the synchronous
    reconciler and every background walk.
    """

    def __init__(self, registry: Optional[FieldRegistry] = None, max_depth: Optional[int] = None):
        self.registry = registry or DEFAULT_REGISTRY
        self.max_depth = max_depth if max_depth is not None else Config.auto_assign.MAX_CONDITION_DEPTH

    def compile(self, raw: Union[Mapping, ConditionNode]) -> CompiledCondition:
        return compile_condition(raw, self.registry, self.max_depth)

    def evaluate(self, client: Any, condition: Union[Mapping, ConditionNode, None]) -> bool:
        """
        Evaluate whether a client matches a condition.

        Args:
            client: Client (or any object exposing the registered attributes)
            condition: Raw JSON tree or parsed node; None never matches

        Raises:
            ConditionEvaluationError: Malformed rule, unknown field or type mismatch
        """
        if condition is None:
            return False
        return self.compile(condition).matches(client)


DEFAULT_REGISTRY = build_client_field_registry()
