"""Transformer registry."""
import json
from typing import Any, Dict, List, Optional

from src.transformer.rule_rewriter import RuleJsonRewriter
from src.transformer.webhook_mapping import WebhookMappingInverter


class TransformerRegistry:
    """Registry of column transformers applied while moving rows."""

    def __init__(
        self,
        rule_rewriter: Optional[RuleJsonRewriter] = None,
        webhook_inverter: Optional[WebhookMappingInverter] = None,
    ):
        """Initialize registry."""
        self.rule_rewriter = rule_rewriter or RuleJsonRewriter()
        self.webhook_inverter = webhook_inverter or WebhookMappingInverter()
        self.transformers = {
            "NONE": lambda x, **kw: x,
            "RULE_JSON": self._rule_json,
            "WEBHOOK_MAPPING": self._webhook_mapping,
            "TAGS": self._tags,
        }

    def get(self, name: str):
        """Get transformer by name."""
        return self.transformers.get(name, self.transformers["NONE"])

    def transform(self, value: Any, transformer_name: str, **config) -> Any:
        """Apply transformation."""
        transformer = self.get(transformer_name)
        return transformer(value, **config)

    def _rule_json(self, value: Any, **config) -> Dict[str, Any]:
        """Rewrite a segment rule tree (JSON text or parsed) into a dict."""
        text = value if isinstance(value, str) or value is None else json.dumps(value)
        return json.loads(self.rule_rewriter.rewrite(text))

    def _webhook_mapping(self, value: Any, **config) -> Any:
        """Invert a legacy webhook field mapping."""
        if isinstance(value, str):
            try:
                value = json.loads(value)
            except ValueError:
                # unparseable text passes through the inverter unchanged
                pass
        return self.webhook_inverter.invert(value)

    @staticmethod
    def _tags(value: Any, **config) -> List[str]:
        """Decode ``tags_json`` into a list of strings."""
        if not value:
            return []
        tags = json.loads(value) if isinstance(value, str) else value
        if not isinstance(tags, list):
            raise ValueError(f"tags must be a JSON array, got {type(tags).__name__}")
        return [str(tag) for tag in tags if tag is not None]
