"""
Unit tests for the segment rule model

Tests:
- Parsing rules and groups (including legacy nesting and operators)
- Validation errors
- Relative period resolution with a fixed clock
- Time filter arguments
"""

from datetime import datetime

import pytest

from src.schema.rules import (
    Combinator,
    PeriodValue,
    RelativePeriod,
    Rule,
    RuleGroup,
    RuleOperator,
    RuleValidationError,
    TimeFilterType,
    is_rule,
    is_rule_group,
    parse_rule_node,
    referenced_fields,
    resolve_relative_period,
)


# Wednesday
NOW = datetime(2025, 8, 20, 15, 30)


# ============================================================================
# TEST: Parsing
# ============================================================================


class TestParseRuleNode:
    """Tests for parse_rule_node"""

    def test_parse_rule(self):
        node = parse_rule_node({"field": "email", "operator": "contains", "value": "@laiki", "fieldGroup": "lead"})

        assert isinstance(node, Rule)
        assert node.operator is RuleOperator.CONTAINS
        assert node.value == "@laiki"

    def test_parse_nested_group(self):
        node = parse_rule_node({
            "combinator": "AND",
            "not": True,
            "rules": [
                {"field": "utm_source", "operator": "equals", "value": "google"},
                {"combinator": "or", "rules": [{"field": "phone", "operator": "isNotEmpty"}]},
            ],
        })

        assert isinstance(node, RuleGroup)
        assert node.combinator is Combinator.AND
        assert node.negate is True
        assert isinstance(node.rules[1], RuleGroup)
        assert referenced_fields(node) == ["utm_source", "phone"]

    def test_legacy_groups_and_operators(self):
        node = parse_rule_node({
            "combinator": "and",
            "rules": [{"field": "name", "operator": "not_equals", "value": "x"}],
            "groups": [{"combinator": "or", "rules": [{"field": "tags", "operator": "in", "value": ["a"]}]}],
        })

        assert node.rules[0].operator.is_legacy
        assert not RuleOperator.EQUALS.is_legacy
        assert referenced_fields(node) == ["name", "tags"]

    def test_round_trip_dict(self):
        data = {
            "combinator": "or",
            "rules": [{"field": "email", "operator": "isEmpty", "value": None}],
            "periodFilter": {
                "timeFilterType": "conversion.any",
                "periodValue": {"type": "relative", "relativeValue": "thisWeek"},
            },
        }

        assert parse_rule_node(data).to_dict() == data

    def test_shape_predicates(self):
        assert is_rule({"field": "email"})
        assert not is_rule({"combinator": "and"})
        assert is_rule_group({"combinator": "and", "rules": []})
        assert not is_rule_group({"combinator": "and", "field": "email"})

    @pytest.mark.parametrize("data", [
        {},
        {"operator": "equals"},
        {"field": "email"},
        {"field": "email", "operator": "sortOf"},
        {"combinator": "xor", "rules": []},
        {"combinator": "and", "rules": "nope"},
        {"combinator": "and", "rules": [], "groups": [{"field": "email", "operator": "equals"}]},
        {"combinator": "and", "rules": [], "periodFilter": {"timeFilterType": "lead.createdAt"}},
    ])
    def test_invalid_nodes(self, data):
        with pytest.raises(RuleValidationError):
            parse_rule_node(data)


# ============================================================================
# TEST: Period resolution
# ============================================================================


class TestResolveRelativePeriod:
    """Tests for resolve_relative_period"""

    def test_today(self):
        start, end = resolve_relative_period(RelativePeriod.TODAY, NOW)

        assert start == datetime(2025, 8, 20)
        assert end == datetime(2025, 8, 20, 23, 59, 59, 999000)

    def test_yesterday(self):
        start, end = resolve_relative_period(RelativePeriod.YESTERDAY, NOW)

        assert start == datetime(2025, 8, 19)
        assert end.date() == start.date()

    def test_weeks_start_on_sunday(self):
        start, end = resolve_relative_period(RelativePeriod.THIS_WEEK, NOW)

        assert start == datetime(2025, 8, 17)
        assert end == datetime(2025, 8, 23, 23, 59, 59, 999000)

    def test_last_week(self):
        start, _ = resolve_relative_period(RelativePeriod.LAST_WEEK, NOW)

        assert start == datetime(2025, 8, 10)

    def test_sunday_is_first_day(self):
        start, _ = resolve_relative_period(RelativePeriod.THIS_WEEK, datetime(2025, 8, 17, 9))

        assert start == datetime(2025, 8, 17)

    def test_last_month_wraps_year(self):
        start, end = resolve_relative_period(RelativePeriod.LAST_MONTH, datetime(2025, 1, 10))

        assert start == datetime(2024, 12, 1)
        assert end.date() == datetime(2024, 12, 31).date()

    def test_this_month_leap_february(self):
        _, end = resolve_relative_period(RelativePeriod.THIS_MONTH, datetime(2024, 2, 5))

        assert end.date() == datetime(2024, 2, 29).date()

    def test_quarters(self):
        start, end = resolve_relative_period(RelativePeriod.THIS_QUARTER, NOW)
        assert (start.date(), end.date()) == (datetime(2025, 7, 1).date(), datetime(2025, 9, 30).date())

        start, end = resolve_relative_period(RelativePeriod.LAST_QUARTER, datetime(2025, 2, 1))
        assert (start.date(), end.date()) == (datetime(2024, 10, 1).date(), datetime(2024, 12, 31).date())

    def test_unbounded_periods_collapse_to_today(self):
        start, end = resolve_relative_period(RelativePeriod.AUTOMATIC, NOW)

        assert start == end == datetime(2025, 8, 20)


class TestTimeFilterParams:
    """Tests for to_rpc_params"""

    def test_default_time_filter(self):
        group = RuleGroup(combinator=Combinator.AND)

        assert group.to_rpc_params(NOW) == {"p_time_filter_type": TimeFilterType.LEAD_CREATED_AT.value}

    def test_relative_period(self):
        group = parse_rule_node({
            "combinator": "and",
            "rules": [],
            "periodFilter": {
                "timeFilterType": "conversion.last",
                "periodValue": {"type": "relative", "relativeValue": "lastMonth"},
            },
        })

        assert group.to_rpc_params(NOW) == {
            "p_time_filter_type": "conversion.last",
            "p_period_start": "2025-07-01",
            "p_period_end": "2025-07-31",
        }

    def test_absolute_period_strips_time(self):
        value = PeriodValue.from_dict({
            "type": "absolute",
            "dateRange": {"from": "2025-01-01T03:00:00.000Z", "to": "2025-01-31T02:59:59.999Z"},
        })

        assert value.resolve(NOW) == ("2025-01-01", "2025-01-31")

    def test_open_ended_absolute_period_has_no_bounds_in_params(self):
        group = parse_rule_node({
            "combinator": "and",
            "rules": [],
            "periodFilter": {
                "timeFilterType": "conversion.any",
                "periodValue": {"type": "absolute", "dateRange": {"from": "2025-01-01"}},
            },
        })

        assert group.to_rpc_params(NOW) == {"p_time_filter_type": "conversion.any"}

    def test_none_period(self):
        value = PeriodValue.from_dict({"type": "none"})

        assert value.resolve(NOW) == (None, None)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
