"""
Title and message template rendering.

Templates are rendered against a :class:`RenderContext`, a read-only
projection of the triggering event. Rendering uses a sandboxed Jinja2
environment: templates can reference and format fields, but cannot call
into arbitrary Python or reach attributes outside the context.

Manifesto:
    Operators write templates in rule manifests; a typo there must cost
    one notification, not the controller. Every parse or render problem
    becomes a :class:`TemplateError` scoped to the attempt that hit it,
    and unknown field names are errors rather than silently blank text.

Syntax:
    Field references may be written with a leading dot, the style of Go
    templates used by schedule notifiers (``{{ .OwnerName }}``), or as
    plain Jinja2 names (``{{ OwnerName }}``). Filters are plain Jinja2.
    Statements and comments only open inside double braces (``{{% ... %}}``
    and ``{{/* ... */}}``), so ``{%`` and ``{#`` in message text stay
    literal::

        {{ .OwnerName }} failed after {{ .Duration }}
        {{% if Reason %}}reason: {{ Reason }}{{% endif %}}
        team: {{ .Labels.team | default("unknown") }}

    A leading dot inside a quoted string is left alone: ``{{ "see .logs" }}``
    renders ``see .logs``.

Available fields:
    Namespace, OwnerKind, OwnerName, Name, Kind, Status, Duration,
    Reason, Message, Labels (owner labels)

Tags:
    templates, jinja2, sandbox, rendering
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from functools import lru_cache
from types import MappingProxyType
from typing import Any, Mapping

from jinja2 import StrictUndefined, Template, TemplateSyntaxError, UndefinedError
from jinja2.exceptions import SecurityError, TemplateError as JinjaTemplateError
from jinja2.sandbox import SandboxedEnvironment

from schednotify.core.errors import TemplateError
from schednotify.domain.workload import MonitoredEvent

# A dot that starts a field reference: right after "{{" (with optional
# whitespace control) or after whitespace/operators inside an expression.
# Quoted strings inside a block are skipped.
_BLOCK_RE = re.compile(r"\{\{.*?\}\}", re.DOTALL)
_STRING_RE = re.compile(r"""("(?:[^"\\]|\\.)*"|'(?:[^'\\]|\\.)*')""")
_DOT_REF_RE = re.compile(r"(^\{\{-?|[\s(\[,~+|])\.(?=[A-Za-z_])")


@dataclass(frozen=True)
class RenderContext:
    """Read-only template data for one event.

    ``duration`` is the empty string when the start time is unknown.
    """

    namespace: str
    owner_kind: str
    owner_name: str
    name: str
    kind: str
    status: str
    duration: str = ""
    reason: str = ""
    message: str = ""
    labels: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "labels", MappingProxyType(dict(self.labels)))

    @classmethod
    def from_event(cls, event: MonitoredEvent, classified: Any) -> RenderContext:
        """Project an event and its classification into template data."""
        return cls(
            namespace=event.owner.namespace,
            owner_kind=event.owner.kind.value,
            owner_name=event.owner.name,
            name=event.name,
            kind=event.kind.value,
            status=classified.status,
            duration=classified.duration_text,
            reason=classified.reason,
            message=classified.message,
            labels=event.owner.labels,
        )

    def as_variables(self) -> dict[str, Any]:
        """Template variable names mapped to values."""
        return {
            "Namespace": self.namespace,
            "OwnerKind": self.owner_kind,
            "OwnerName": self.owner_name,
            "Name": self.name,
            "Kind": self.kind,
            "Status": self.status,
            "Duration": self.duration,
            "Reason": self.reason,
            "Message": self.message,
            "Labels": dict(self.labels),
        }


def normalize_references(source: str) -> str:
    """Rewrite leading-dot field references (``{{ .X }}``) to Jinja2 names."""
    return _BLOCK_RE.sub(lambda m: _rewrite_block(m.group(0)), source)


def _rewrite_block(block: str) -> str:
    parts = _STRING_RE.split(block)
    # Odd positions are the quoted strings captured by the split
    parts[::2] = [_DOT_REF_RE.sub(r"\1", p) for p in parts[::2]]
    return "".join(parts)


class TemplateRenderer:
    """Renders templates in a sandbox. Pure: no I/O, deterministic output."""

    def __init__(self, cache_size: int = 256):
        self._env = SandboxedEnvironment(
            undefined=StrictUndefined,
            autoescape=False,
            keep_trailing_newline=True,
            block_start_string="{{%",
            block_end_string="%}}",
            comment_start_string="{{/*",
            comment_end_string="*/}}",
        )
        self._compile = lru_cache(maxsize=cache_size)(self._compile_uncached)

    def _compile_uncached(self, source: str) -> Template:
        return self._env.from_string(normalize_references(source))

    def render(self, source: str, context: RenderContext) -> str:
        """Render one template.

        An empty template renders to the empty string.

        Raises:
            TemplateError: On syntax errors, unknown fields, or sandbox violations
        """
        if not source:
            return ""

        try:
            template = self._compile(source)
        except TemplateSyntaxError as e:
            raise TemplateError(
                f"Template syntax error at line {e.lineno}: {e.message}", cause=e
            ) from e

        try:
            return template.render(context.as_variables())
        except UndefinedError as e:
            raise TemplateError(f"Unknown template field: {e.message}", cause=e) from e
        except SecurityError as e:
            raise TemplateError(f"Template not allowed: {e}", cause=e) from e
        except (JinjaTemplateError, TypeError, ValueError, ArithmeticError) as e:
            raise TemplateError(f"Template rendering failed: {e}", cause=e) from e

    def render_pair(self, title: str, message: str, context: RenderContext) -> tuple[str, str]:
        """Render a (title, message) pair; title is rendered first."""
        return self.render(title, context), self.render(message, context)


__all__ = ["RenderContext", "TemplateRenderer", "normalize_references"]
