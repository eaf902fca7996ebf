# client_icons/services/__init__.py

"""
Services package

Condition evaluation, assignment storage and the reconcilers behind the
IconRuleEngine facade.
"""

from .database_service import DatabaseService
from .condition_evaluator import ConditionEvaluator, FieldRegistry, parse_condition
from .icon_assignment_repository import IconAssignmentRepository
from .auto_assign_service import AutoAssignService
from .bulk_reassign_service import BulkReassignService
from .background_runner import BackgroundTaskRunner
from .icon_rule_engine import IconRuleEngine

__all__ = [
    "DatabaseService",
    "ConditionEvaluator",
    "FieldRegistry",
    "parse_condition",
    "IconAssignmentRepository",
    "AutoAssignService",
    "BulkReassignService",
    "BackgroundTaskRunner",
    "IconRuleEngine",
]
