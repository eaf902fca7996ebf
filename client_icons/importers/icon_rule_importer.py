# client_icons/importers/icon_rule_importer.py

import logging
from typing import Any, Dict, List, Optional, Tuple

from client_icons.core.constants import ConditionKeys, ConditionOperator, IconType
from client_icons.core.exceptions import ConditionEvaluationError, RuleImportError
from client_icons.models import ClientIcon
from client_icons.services.condition_evaluator import ConditionEvaluator, parse_condition
from .base_importer import BaseImporter

logger = logging.getLogger(__name__)


class IconRuleImporter(BaseImporter):
    """
    Import icons and their auto-assign rules from CSV.

    One row is one comparison; rows sharing (company_id, icon_name) are
    joined into a single group whose operator comes from the first row that
    names one (AND otherwise).

    Expected columns: company_id, icon_name, field, operator, value,
    second_value, logical_operator, color, tooltip
    """

    HEADER_MAP = {
        "company id": "company_id",
        "id firmy": "company_id",
        "firma": "company_id",
        "icon name": "icon_name",
        "icon": "icon_name",
        "nazwa ikony": "icon_name",
        "ikona": "icon_name",
        "field": "field",
        "pole": "field",
        "operator": "operator",
        "value": "value",
        "wartosc": "value",
        "second value": "second_value",
        "druga wartosc": "second_value",
        "logical operator": "logical_operator",
        "operator logiczny": "logical_operator",
        "color": "color",
        "kolor": "color",
        "tooltip": "tooltip",
        "opis": "tooltip",
    }

    REQUIRED_COLUMNS = ["company_id", "icon_name", "field", "operator"]

    DEFAULT_COLOR = "#6b7280"
    DEFAULT_ICON_VALUE = "tag"

    # Separator of list values for in / notIn
    LIST_SEPARATOR = "|"

    def __init__(self, session, evaluator: Optional[ConditionEvaluator] = None):
        super().__init__(session)
        self.evaluator = evaluator or ConditionEvaluator()

    def import_from_csv(self, csv_file_path: str) -> List[ClientIcon]:
        """
        Create or update icons from a rules file.

        Returns:
            Icons whose rule is new or changed; each needs a re-evaluation

        Raises:
            RuleImportError: File unreadable or required columns missing
        """
        logger.info(f"⚙️ Importing icon rules from: {csv_file_path}")

        df = self.csv_reader.read_csv(csv_file_path)
        if df is None:
            raise RuleImportError(
                f"Cannot read icon rules file {csv_file_path}",
                {"path": str(csv_file_path)},
            )

        df = self.header_normalizer.apply_header_mapping(df, self.HEADER_MAP)
        missing = [c for c in self.REQUIRED_COLUMNS if c not in df.columns]
        if missing:
            raise RuleImportError(
                f"Icon rules file {csv_file_path} is missing columns: {', '.join(missing)}",
                {"path": str(csv_file_path), "missing_columns": missing},
            )

        groups: Dict[Tuple[int, str], Dict[str, Any]] = {}
        skipped = 0
        for index, row in df.iterrows():
            line = index + 2
            key = self._row_key(row, line)
            if key is None:
                skipped += 1
                continue

            group = groups.setdefault(key, {
                "logical_operator": None,
                "conditions": [],
                "invalid_lines": [],
                "color": None,
                "tooltip": None,
            })
            leaf = self._parse_leaf(row, line)
            if leaf is None:
                skipped += 1
                group["invalid_lines"].append(line)
                continue

            group["conditions"].append(leaf)
            for column in ("logical_operator", "color", "tooltip"):
                if group[column] is None and self._cell(row, column):
                    group[column] = self._cell(row, column)

        changed = []
        for (company_id, icon_name), group in groups.items():
            if group["invalid_lines"]:
                # A partial AND group would match more clients than intended
                logger.warning(
                    f"⚠️ Skipping icon '{icon_name}' (company {company_id}): "
                    f"invalid rows {group['invalid_lines']}"
                )
                continue

            condition = {
                ConditionKeys.LOGICAL_OPERATOR: (group["logical_operator"] or "and").lower(),
                ConditionKeys.CONDITIONS: group["conditions"],
            }
            try:
                parse_condition(condition)
            except ConditionEvaluationError as e:
                logger.warning(f"⚠️ Skipping icon '{icon_name}' (company {company_id}): {e.message}")
                continue

            icon, rule_changed = self._upsert_icon(company_id, icon_name, condition, group)
            if rule_changed:
                changed.append(icon)

        self.session.flush()
        self.safe_commit(f"Icon rules: {len(groups)} icons, {len(changed)} changed")
        logger.info(
            f"✅ Icon rules imported: {len(groups)} icons, {len(changed)} changed, "
            f"{skipped} rows skipped"
        )
        return changed

    def _row_key(self, row, line: int) -> Optional[Tuple[int, str]]:
        """Icon identity of a row: (company_id, icon_name), or None."""
        company_raw = self._cell(row, "company_id")
        icon_name = self._cell(row, "icon_name")

        if not company_raw or not icon_name:
            logger.warning(f"⚠️ Skipping row {line} without company or icon: {row.to_dict()}")
            return None

        try:
            return int(company_raw), icon_name
        except ValueError:
            logger.warning(f"⚠️ Skipping row {line}: invalid company_id '{company_raw}'")
            return None

    def _parse_leaf(self, row, line: int) -> Optional[Dict[str, Any]]:
        """Validate one row's comparison; None when the row is unusable."""
        field = self._cell(row, "field")
        operator = self._cell(row, "operator")

        if not field or not operator:
            logger.warning(f"⚠️ Incomplete rule in row {line}: {row.to_dict()}")
            return None

        leaf = {
            ConditionKeys.FIELD: field,
            ConditionKeys.OPERATOR: operator,
            ConditionKeys.VALUE: self._coerce_value(operator, self._cell(row, "value")),
        }
        second_value = self._cell(row, "second_value")
        if second_value:
            leaf[ConditionKeys.SECOND_VALUE] = second_value

        try:
            # Resolves the field too, so typos surface here rather than at evaluation
            self.evaluator.compile(leaf)
        except ConditionEvaluationError as e:
            logger.warning(f"⚠️ Invalid rule in row {line}: {e.message}")
            return None

        return leaf

    def _coerce_value(self, operator: str, raw: str) -> Any:
        if not raw:
            return None
        if operator in (ConditionOperator.IN.value, ConditionOperator.NOT_IN.value):
            return [item.strip() for item in raw.split(self.LIST_SEPARATOR) if item.strip()]
        if raw.lower() in ("true", "false"):
            return raw.lower() == "true"
        return raw

    def _upsert_icon(
        self, company_id: int, icon_name: str, condition: dict, group: Dict[str, Any]
    ) -> Tuple[ClientIcon, bool]:
        icon = (
            self.session.query(ClientIcon)
            .filter_by(company_id=company_id, name=icon_name)
            .first()
        )

        if icon is None:
            icon = ClientIcon(
                company_id=company_id,
                name=icon_name,
                color=group["color"] or self.DEFAULT_COLOR,
                icon_type=IconType.LUCIDE,
                icon_value=self.DEFAULT_ICON_VALUE,
                tooltip=group["tooltip"],
                auto_assign_condition=condition,
                is_active=True,
            )
            self.session.add(icon)
            logger.debug(f"➕ New icon '{icon_name}' for company {company_id}")
            return icon, True

        if group["color"]:
            icon.color = group["color"]
        if group["tooltip"]:
            icon.tooltip = group["tooltip"]

        if icon.auto_assign_condition == condition:
            return icon, False

        icon.auto_assign_condition = condition
        logger.debug(f"✏️ Rule of icon '{icon_name}' (company {company_id}) changed")
        return icon, True

    @staticmethod
    def _cell(row, column: str) -> str:
        value = row.get(column, "")
        return "" if value is None else str(value).strip()
