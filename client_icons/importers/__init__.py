# client_icons/importers/__init__.py

"""
Importers package

CSV import of icon definitions and their auto-assign rules.
"""

from .base_importer import BaseImporter, CSVReader, HeaderNormalizer
from .icon_rule_importer import IconRuleImporter

__all__ = [
    "BaseImporter",
    "CSVReader",
    "HeaderNormalizer",
    "IconRuleImporter",
]
