"""Rewrites legacy field references inside segment rule JSON."""
import json
import logging
from typing import Any, Optional

from src.mapper.field_mappings import FieldNormalizer

logger = logging.getLogger(__name__)

EMPTY_RULE_JSON = "{}"

# Conversion table first: it also carries the lead-level "last conversion" UTM fields
LOOKUP_ORDER = ("conversions", "leads")


class MalformedRuleError(ValueError):
    """Rule JSON could not be parsed (strict mode only)."""


class RuleJsonRewriter:
    """
    Rewrites every ``field`` value in a rule tree to its canonical name.

    Only the ``field`` discriminator is touched; operators, values and period
    filters pass through unchanged. Running it twice is a no-op because a
    canonical name is never a key of the legacy tables.
    """

    def __init__(self, normalizer: Optional[FieldNormalizer] = None, strict: bool = False):
        """
        Args:
            normalizer: Field normalizer (default tables if omitted)
            strict: Raise MalformedRuleError instead of returning ``"{}"``
        """
        self.normalizer = normalizer or FieldNormalizer()
        self.strict = strict

    def normalize_field(self, value: str) -> str:
        """Normalize against conversions, then leads; first change wins."""
        for entity_type in LOOKUP_ORDER:
            normalized = self.normalizer.normalize(value, entity_type)
            if normalized != value:
                return normalized
        return value

    def rewrite_tree(self, node: Any) -> Any:
        """Rewrite an already-parsed JSON value, returning a new structure."""
        if isinstance(node, list):
            return [self.rewrite_tree(item) for item in node]

        if isinstance(node, dict):
            rewritten = dict(node)
            if isinstance(rewritten.get("field"), str):
                rewritten["field"] = self.normalize_field(rewritten["field"])
            for key, value in rewritten.items():
                if key != "field" or not isinstance(value, str):
                    rewritten[key] = self.rewrite_tree(value)
            return rewritten

        return node

    def rewrite(self, rule_json: Optional[str]) -> str:
        """
        Rewrite rule JSON text.

        Args:
            rule_json: Serialized rule tree

        Returns:
            Serialized rewritten tree, or ``"{}"`` for empty/unparseable input

        Raises:
            MalformedRuleError: On unparseable input when ``strict`` is set
        """
        if not rule_json:
            return EMPTY_RULE_JSON

        try:
            parsed = json.loads(rule_json)
        except (TypeError, ValueError) as e:
            if self.strict:
                raise MalformedRuleError(f"Failed to parse rule JSON: {e}") from e
            logger.warning("Failed to parse rule JSON, using empty object: %s", e)
            return EMPTY_RULE_JSON

        return json.dumps(self.rewrite_tree(parsed), ensure_ascii=False, separators=(",", ":"))


_default_rewriter = RuleJsonRewriter()


def rewrite_rule_fields(rule_json: Optional[str]) -> str:
    """Rewrite with the default tables, soft-failing to ``"{}"``."""
    return _default_rewriter.rewrite(rule_json)


def rewrite_rule_tree(node: Any) -> Any:
    return _default_rewriter.rewrite_tree(node)
