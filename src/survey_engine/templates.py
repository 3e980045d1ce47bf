"""TemplateRenderer — variable substitution and content selection for blocks.

Placeholder syntax inside block text::

    {{name}}                           value of ``name`` (empty if missing)
    {{#if name}}A{{/if}}               A when ``name`` is truthy
    {{#if name}}A{{else}}B{{/if}}      A when truthy, otherwise B

The three forms are processed in that fixed order (if/else, bare if,
variable) so that text inside a conditional is never mis-read by the
simpler variable pass.  Rendering never raises on missing variables.

:meth:`TemplateRenderer.format_block` prepares a catalog block for the
client: it picks the content variant (``contentCondition``, keyed
``dynamic-message`` content, ``conditionalContent``) and substitutes
variables in content, option labels, and the placeholder.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Mapping

from survey_engine.constants import (
    CONTENT_PLACEHOLDERS,
    DEFAULT_CONTENT_CONDITION,
    DEFAULT_CONTENT_KEY,
    DEFAULT_DYNAMIC_MESSAGE,
)
from survey_engine.evaluator import ConditionEvaluator
from survey_engine.models.block import Block

logger = logging.getLogger(__name__)

# A branch body never crosses another {{#if or {{/if}}, so sibling and nested
# conditionals are matched innermost first.  Bodies may span lines.
_BODY = r"((?:(?!\{\{#if |\{\{/if\}\}).)*?)"
_IF_ELSE_RE = re.compile(r"\{\{#if (\w+)\}\}" + _BODY + r"\{\{else\}\}" + _BODY + r"\{\{/if\}\}", re.S)
_IF_RE = re.compile(r"\{\{#if (\w+)\}\}((?:(?!\{\{#if |\{\{/if\}\}|\{\{else\}\}).)*?)\{\{/if\}\}", re.S)
_VAR_RE = re.compile(r"\{\{(\w+)\}\}")


def _is_truthy(value: Any) -> bool:
    """Non-empty strings/arrays/objects, non-zero numbers, and True are truthy."""
    return bool(value)


def _to_text(value: Any) -> str:
    """Stringify a variable value the way the chat client displays it."""
    if not _is_truthy(value):
        return ""
    if isinstance(value, bool):
        return "true"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, list):
        return ",".join(_to_text(v) for v in value)
    if isinstance(value, dict):
        return json.dumps(value, ensure_ascii=False)
    return str(value)


class TemplateRenderer:
    """Renders templated block text against the variable bag."""

    def __init__(self, evaluator: ConditionEvaluator | None = None) -> None:
        self._evaluator = evaluator or ConditionEvaluator()

    def render(self, text: str, variables: Mapping[str, Any]) -> str:
        """Substitute conditionals then variables in ``text``.

        Each round resolves the innermost conditionals; rounds repeat until
        the text stops changing, which settles nested blocks.
        """
        while True:
            rendered = _IF_ELSE_RE.sub(
                lambda m: m.group(2) if _is_truthy(variables.get(m.group(1))) else m.group(3),
                text,
            )
            rendered = _IF_RE.sub(
                lambda m: m.group(2) if _is_truthy(variables.get(m.group(1))) else "",
                rendered,
            )
            if rendered == text:
                break
            text = rendered
        return _VAR_RE.sub(lambda m: _to_text(variables.get(m.group(1))), text)

    def format_block(self, block: Block, variables: Mapping[str, Any]) -> Block:
        """Return a copy of ``block`` with content resolved and text rendered.

        The catalog block itself is never modified.
        """
        content = self._select_content(block, variables)

        update: dict[str, Any] = {"content": content}

        if block.options:
            update["options"] = [
                opt.model_copy(update={"label": self.render(opt.label, variables)})
                if opt.label
                else opt
                for opt in block.options
            ]

        if block.placeholder:
            update["placeholder"] = self.render(block.placeholder, variables)

        return block.model_copy(update=update, deep=True)

    # ------------------------------------------------------------------
    # Content selection
    # ------------------------------------------------------------------

    def _select_content(self, block: Block, variables: Mapping[str, Any]) -> Any:
        content = block.content

        if isinstance(content, str):
            content = self.render(content, variables)

        elif isinstance(content, dict) and block.content_condition is not None:
            cc = block.content_condition
            key = cc.then if self._evaluator.evaluate(cc.if_, variables) else cc.else_
            logger.debug("Block %s content condition selected key %r", block.id, key)
            content = self.render(content.get(key, ""), variables)

        elif isinstance(content, dict) and block.type == "dynamic-message":
            content = self.render(self._select_keyed(block, content, variables), variables)

        if block.conditional_content:
            matched = self._match_conditional_content(block, variables)
            if matched is not None and (content is None or content in CONTENT_PLACEHOLDERS):
                content = self.render(matched, variables)

        return content

    def _select_keyed(
        self, block: Block, content: dict[str, str], variables: Mapping[str, Any]
    ) -> str:
        """Pick a dynamic-message variant by the current value of its content key."""
        key_var = block.content_key or DEFAULT_CONTENT_KEY
        selected = content.get("default", DEFAULT_DYNAMIC_MESSAGE)
        key_value = variables.get(key_var)
        if key_value is None or key_value == "":
            logger.debug("Block %s: %s not set, using default content", block.id, key_var)
            return selected
        variant = content.get(str(key_value))
        if variant:
            return variant
        logger.warning(
            "Block %s has no content for %s=%r, using default", block.id, key_var, key_value,
        )
        return selected

    def _match_conditional_content(
        self, block: Block, variables: Mapping[str, Any]
    ) -> str | None:
        """First entry whose condition holds (or is tagged default) wins."""
        for item in block.conditional_content or []:
            if isinstance(item.condition, str):
                if item.condition == DEFAULT_CONTENT_CONDITION:
                    return item.content
                continue
            if self._evaluator.evaluate(item.condition, variables):
                return item.content
        return None
