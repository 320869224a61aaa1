"""
Segment rule tree model.

A segment's ``rule_json`` is a recursive tree of rule groups (AND/OR, optional
negation and temporal filter) and leaf rules (field / operator / value).
The tree is evaluated by a stored procedure in the target database; this
module only builds, validates and serializes it, and resolves period
filters into the concrete bounds that procedure expects.
"""

import calendar
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union


class RuleValidationError(ValueError):
    """Raised when a JSON object is not a valid rule tree node."""


class FieldGroup(Enum):
    """Which entity a rule field belongs to."""

    LEAD = "lead"
    CONVERSION = "conversion"
    CUSTOM_FIELD = "custom_field"


class Combinator(Enum):
    AND = "and"
    OR = "or"


class RuleOperator(Enum):
    """Comparison operators understood by the segment engine."""

    EQUALS = "equals"
    NOT_EQUALS = "notEquals"
    CONTAINS = "contains"
    NOT_CONTAINS = "notContains"
    STARTS_WITH = "startsWith"
    ENDS_WITH = "endsWith"
    LESS_THAN = "lessThan"
    GREATER_THAN = "greaterThan"
    GREATER_THAN_OR_EQUAL = "greaterThanOrEqual"
    LESS_THAN_OR_EQUAL = "lessThanOrEqual"
    BETWEEN = "between"
    BEFORE = "before"
    AFTER = "after"
    ON_DATE = "onDate"
    NOT_ON_DATE = "notOnDate"
    IS_EMPTY = "isEmpty"
    IS_NOT_EMPTY = "isNotEmpty"
    JSON_KEY_EQUALS = "jsonKeyEquals"
    JSON_CONTAINS = "jsonContains"
    JSON_KEY_EXISTS = "jsonKeyExists"
    LEAD_HAS_CONVERSION = "leadHasConversion"
    LEAD_NOT_HAS_CONVERSION = "leadNotHasConversion"
    # Legacy operators, still accepted by the engine
    LEGACY_NOT_EQUALS = "not_equals"
    LEGACY_NOT_CONTAINS = "not_contains"
    LEGACY_STARTS_WITH = "starts_with"
    LEGACY_ENDS_WITH = "ends_with"
    LEGACY_GREATER_THAN = "greater_than"
    LEGACY_LESS_THAN = "less_than"
    LEGACY_GREATER_THAN_OR_EQUAL = "greater_than_or_equal"
    LEGACY_LESS_THAN_OR_EQUAL = "less_than_or_equal"
    LEGACY_IN = "in"
    LEGACY_NOT_IN = "not_in"
    LEGACY_IS_NULL = "is_null"
    LEGACY_IS_NOT_NULL = "is_not_null"
    LEGACY_OLDER_THAN = "older_than"
    LEGACY_NEWER_THAN = "newer_than"
    LEGACY_REGEX_MATCH = "regex_match"

    @property
    def is_legacy(self) -> bool:
        return self.name.startswith("LEGACY_")


class TimeFilterType(Enum):
    """Date column a period filter applies to."""

    LEAD_CREATED_AT = "lead.createdAt"
    CONVERSION_FIRST = "conversion.first"
    CONVERSION_LAST = "conversion.last"
    CONVERSION_ANY = "conversion.any"
    CONVERSION_FIRST_STRICT = "conversion.first_strict"
    CONVERSION_LAST_STRICT = "conversion.last_strict"


class PeriodType(Enum):
    RELATIVE = "relative"
    ABSOLUTE = "absolute"
    NONE = "none"
    AUTOMATIC = "automatic"


class RelativePeriod(Enum):
    AUTOMATIC = "automatic"
    TODAY = "today"
    YESTERDAY = "yesterday"
    THIS_WEEK = "thisWeek"
    LAST_WEEK = "lastWeek"
    THIS_MONTH = "thisMonth"
    LAST_MONTH = "lastMonth"
    THIS_QUARTER = "thisQuarter"
    LAST_QUARTER = "lastQuarter"
    NONE = "none"
    ABSOLUTE = "absolute"


DEFAULT_TIME_FILTER = TimeFilterType.LEAD_CREATED_AT

_ONE_DAY = timedelta(days=1)
_ONE_MS = timedelta(milliseconds=1)


def _enum_value(enum_cls, raw: Any, what: str):
    try:
        return enum_cls(raw)
    except ValueError:
        raise RuleValidationError(f"Invalid {what}: {raw!r}") from None


def _end_of_month(year: int, month: int) -> datetime:
    last_day = calendar.monthrange(year, month)[1]
    return datetime(year, month, last_day, 23, 59, 59, 999000)


def resolve_relative_period(
    relative: RelativePeriod,
    now: Optional[datetime] = None,
) -> Tuple[datetime, datetime]:
    """
    Resolve a relative period into a ``(start, end)`` pair of local datetimes.

    Weeks start on Sunday. Periods without a natural range (automatic, none,
    absolute) collapse to the start of the current day.
    """
    now = now or datetime.now()
    today = datetime(now.year, now.month, now.day)

    if relative is RelativePeriod.TODAY:
        return today, today + _ONE_DAY - _ONE_MS

    if relative is RelativePeriod.YESTERDAY:
        start = today - _ONE_DAY
        return start, start + _ONE_DAY - _ONE_MS

    if relative in (RelativePeriod.THIS_WEEK, RelativePeriod.LAST_WEEK):
        days_since_sunday = (today.weekday() + 1) % 7
        start = today - timedelta(days=days_since_sunday)
        if relative is RelativePeriod.LAST_WEEK:
            start -= timedelta(days=7)
        return start, start + timedelta(days=7) - _ONE_MS

    if relative is RelativePeriod.THIS_MONTH:
        return datetime(today.year, today.month, 1), _end_of_month(today.year, today.month)

    if relative is RelativePeriod.LAST_MONTH:
        year, month = (today.year, today.month - 1) if today.month > 1 else (today.year - 1, 12)
        return datetime(year, month, 1), _end_of_month(year, month)

    if relative in (RelativePeriod.THIS_QUARTER, RelativePeriod.LAST_QUARTER):
        year = today.year
        start_month = ((today.month - 1) // 3) * 3 + 1
        if relative is RelativePeriod.LAST_QUARTER:
            start_month -= 3
            if start_month < 1:
                year -= 1
                start_month = 10
        return datetime(year, start_month, 1), _end_of_month(year, start_month + 2)

    return today, today


@dataclass
class DateRange:
    """Absolute period bounds as sent by the rule builder (ISO strings)."""

    start: str
    end: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Any) -> "DateRange":
        if not isinstance(data, dict) or not data.get("from"):
            raise RuleValidationError("dateRange requires a 'from' value")
        return cls(start=str(data["from"]), end=str(data["to"]) if data.get("to") else None)

    def to_dict(self) -> Dict[str, Any]:
        result = {"from": self.start}
        if self.end is not None:
            result["to"] = self.end
        return result


@dataclass
class PeriodValue:
    """The period part of a temporal filter."""

    type: PeriodType
    relative_value: Optional[RelativePeriod] = None
    date_range: Optional[DateRange] = None
    absolute_start: Optional[str] = None
    absolute_end: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Any) -> "PeriodValue":
        if not isinstance(data, dict):
            raise RuleValidationError("periodValue must be an object")
        relative = data.get("relativeValue")
        date_range = data.get("dateRange")
        return cls(
            type=_enum_value(PeriodType, data.get("type"), "period type"),
            relative_value=_enum_value(RelativePeriod, relative, "relative period") if relative else None,
            date_range=DateRange.from_dict(date_range) if date_range else None,
            absolute_start=data.get("absoluteStart"),
            absolute_end=data.get("absoluteEnd"),
        )

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {"type": self.type.value}
        if self.relative_value is not None:
            result["relativeValue"] = self.relative_value.value
        if self.date_range is not None:
            result["dateRange"] = self.date_range.to_dict()
        if self.absolute_start is not None:
            result["absoluteStart"] = self.absolute_start
        if self.absolute_end is not None:
            result["absoluteEnd"] = self.absolute_end
        return result

    @property
    def is_relative(self) -> bool:
        return self.type is PeriodType.RELATIVE and self.relative_value is not None

    @property
    def is_absolute(self) -> bool:
        return self.type is PeriodType.ABSOLUTE and self.date_range is not None

    def resolve(self, now: Optional[datetime] = None) -> Tuple[Optional[str], Optional[str]]:
        """Return ``(start, end)`` as ``YYYY-MM-DD`` strings, ``None`` when unbounded."""
        if self.is_relative:
            start, end = resolve_relative_period(self.relative_value, now)
            return start.date().isoformat(), end.date().isoformat()
        if self.is_absolute:
            start = self.date_range.start.split("T")[0]
            end = self.date_range.end.split("T")[0] if self.date_range.end else None
            return start, end
        return None, None


@dataclass
class PeriodFilter:
    """Temporal filter attached to a rule group."""

    time_filter_type: TimeFilterType
    period_value: PeriodValue

    @classmethod
    def from_dict(cls, data: Any) -> "PeriodFilter":
        if not isinstance(data, dict):
            raise RuleValidationError("periodFilter must be an object")
        return cls(
            time_filter_type=_enum_value(TimeFilterType, data.get("timeFilterType"), "time filter type"),
            period_value=PeriodValue.from_dict(data.get("periodValue")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timeFilterType": self.time_filter_type.value,
            "periodValue": self.period_value.to_dict(),
        }

    def to_rpc_params(self, now: Optional[datetime] = None) -> Dict[str, str]:
        """Arguments for the segment counting procedure."""
        params = {"p_time_filter_type": self.time_filter_type.value}
        start, end = self.period_value.resolve(now)
        if start and end:
            params["p_period_start"] = start
            params["p_period_end"] = end
        return params


@dataclass
class Rule:
    """A single condition (leaf node)."""

    field: str
    operator: RuleOperator
    value: Any = None
    field_group: Optional[FieldGroup] = None
    id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {}
        if self.id is not None:
            result["id"] = self.id
        result["field"] = self.field
        if self.field_group is not None:
            result["fieldGroup"] = self.field_group.value
        result["operator"] = self.operator.value
        result["value"] = self.value
        return result


@dataclass
class RuleGroup:
    """AND/OR group of rules and nested groups."""

    combinator: Combinator
    rules: List["RuleNode"] = field(default_factory=list)
    negate: bool = False
    period_filter: Optional[PeriodFilter] = None
    groups: List["RuleGroup"] = field(default_factory=list)  # legacy nesting
    id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {}
        if self.id is not None:
            result["id"] = self.id
        result["combinator"] = self.combinator.value
        result["rules"] = [node.to_dict() for node in self.rules]
        if self.groups:
            result["groups"] = [group.to_dict() for group in self.groups]
        if self.negate:
            result["not"] = True
        if self.period_filter is not None:
            result["periodFilter"] = self.period_filter.to_dict()
        return result

    def to_rpc_params(self, now: Optional[datetime] = None) -> Dict[str, str]:
        """Time filter arguments for this (root) group."""
        if self.period_filter is None:
            return {"p_time_filter_type": DEFAULT_TIME_FILTER.value}
        return self.period_filter.to_rpc_params(now)


RuleNode = Union[Rule, RuleGroup]


def is_rule(data: Any) -> bool:
    return isinstance(data, dict) and isinstance(data.get("field"), str)


def is_rule_group(data: Any) -> bool:
    return isinstance(data, dict) and "combinator" in data and "field" not in data


def _parse_rule(data: Dict[str, Any]) -> Rule:
    if "operator" not in data:
        raise RuleValidationError(f"Rule on field '{data['field']}' has no operator")
    group = data.get("fieldGroup")
    return Rule(
        field=data["field"],
        operator=_enum_value(RuleOperator, data["operator"], "operator"),
        value=data.get("value"),
        field_group=_enum_value(FieldGroup, group, "field group") if group else None,
        id=data.get("id"),
    )


def _parse_group(data: Dict[str, Any]) -> RuleGroup:
    combinator = data.get("combinator")
    if not isinstance(combinator, str):
        raise RuleValidationError(f"Invalid combinator: {combinator!r}")
    rules = data.get("rules", [])
    if not isinstance(rules, list):
        raise RuleValidationError("'rules' must be a list")
    groups = data.get("groups") or []
    if not isinstance(groups, list):
        raise RuleValidationError("'groups' must be a list")
    period_filter = data.get("periodFilter")

    parsed_groups = []
    for group in groups:
        node = parse_rule_node(group)
        if not isinstance(node, RuleGroup):
            raise RuleValidationError("'groups' may only contain rule groups")
        parsed_groups.append(node)

    return RuleGroup(
        combinator=_enum_value(Combinator, combinator.lower(), "combinator"),
        rules=[parse_rule_node(node) for node in rules],
        negate=bool(data.get("not", False)),
        period_filter=PeriodFilter.from_dict(period_filter) if period_filter else None,
        groups=parsed_groups,
        id=data.get("id"),
    )


def parse_rule_node(data: Any) -> RuleNode:
    """
    Build a typed rule node from parsed JSON.

    Raises:
        RuleValidationError: If ``data`` is neither a rule nor a rule group
    """
    if is_rule(data):
        return _parse_rule(data)
    if is_rule_group(data):
        return _parse_group(data)
    raise RuleValidationError(f"Not a rule or rule group: {data!r}")


class RuleVisitor:
    """Walks a rule tree, dispatching on node type."""

    def visit(self, node: RuleNode) -> Any:
        if isinstance(node, Rule):
            return self.visit_rule(node)
        if isinstance(node, RuleGroup):
            return self.visit_group(node)
        raise TypeError(f"Unknown rule node: {type(node).__name__}")

    def visit_rule(self, rule: Rule) -> Any:
        return None

    def visit_group(self, group: RuleGroup) -> Any:
        for node in group.rules:
            self.visit(node)
        for nested in group.groups:
            self.visit(nested)
        return None


class FieldCollector(RuleVisitor):
    """Collects every field referenced in a tree, in visit order."""

    def __init__(self):
        self.fields: List[str] = []

    def visit_rule(self, rule: Rule) -> Any:
        if rule.field not in self.fields:
            self.fields.append(rule.field)


def referenced_fields(node: RuleNode) -> List[str]:
    collector = FieldCollector()
    collector.visit(node)
    return collector.fields
