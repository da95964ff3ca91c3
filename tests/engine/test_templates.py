"""Tests for sandboxed template rendering."""

import pytest

from schednotify.core.errors import TemplateError
from schednotify.engine.classifier import classify
from schednotify.engine.templates import RenderContext, TemplateRenderer, normalize_references


@pytest.fixture
def ctx(make_event, clock) -> RenderContext:
    event = make_event()
    return RenderContext.from_event(event, classify(event, now=clock))


@pytest.fixture
def renderer() -> TemplateRenderer:
    return TemplateRenderer()


class TestRenderContext:
    def test_projection(self, ctx):
        variables = ctx.as_variables()
        assert variables["OwnerName"] == "nightly-settlement"
        assert variables["OwnerKind"] == "CronJob"
        assert variables["Name"] == "nightly-settlement-29012345"
        assert variables["Kind"] == "Job"
        assert variables["Namespace"] == "payments"
        assert variables["Status"] == "Failed"
        assert variables["Duration"] == "2m5s"
        assert variables["Reason"] == "BackoffLimitExceeded"
        assert variables["Labels"] == {"team": "payments"}


class TestRender:
    def test_dot_reference(self, renderer, ctx):
        assert renderer.render("{{.OwnerName}} failed", ctx) == "nightly-settlement failed"

    def test_plain_reference_and_filters(self, renderer, ctx):
        assert renderer.render("{{ OwnerName | upper }} in {{ .Namespace }}", ctx) == "NIGHTLY-SETTLEMENT in payments"

    def test_labels(self, renderer, ctx):
        assert renderer.render("team={{ .Labels.team }}", ctx) == "team=payments"
        assert renderer.render('{{ .Labels.owner | default("none") }}', ctx) == "none"

    def test_conditionals(self, renderer, ctx):
        template = "{{% if .Reason %}}reason: {{ .Reason }}{{% endif %}}"
        assert renderer.render(template, ctx) == "reason: BackoffLimitExceeded"

    def test_comments(self, renderer, ctx):
        assert renderer.render("{{/* owner */}}{{ .OwnerName }}", ctx) == "nightly-settlement"

    def test_empty_template_is_empty(self, renderer, ctx):
        assert renderer.render("", ctx) == ""

    @pytest.mark.parametrize(
        "text",
        [
            "see logs",
            "deploy at 10.5 o'clock.",
            "trailing newline\n",
            "  spaces  ",
            "build {#42} failed",
            "cpu 90{%} load",
            "ticket{#1234}",
            "{% raw %} stays",
        ],
    )
    def test_literal_text_unchanged(self, renderer, ctx, text):
        assert renderer.render(text, ctx) == text

    def test_quoted_dot_not_rewritten(self, renderer, ctx):
        assert renderer.render('{{ "see .logs" }} for {{ .OwnerName }}', ctx) == "see .logs for nightly-settlement"

    def test_unknown_field(self, renderer, ctx):
        with pytest.raises(TemplateError, match="Unknown template field"):
            renderer.render("{{ .Owner }}", ctx)

    def test_syntax_error(self, renderer, ctx):
        with pytest.raises(TemplateError, match="syntax error"):
            renderer.render("{{ .OwnerName ", ctx)

    def test_sandbox_blocks_internals(self, renderer, ctx):
        with pytest.raises(TemplateError):
            renderer.render("{{ Labels.__class__.__mro__ }}", ctx)

    def test_render_pair(self, renderer, ctx):
        assert renderer.render_pair("", "{{ .Status }}", ctx) == ("", "Failed")

    def test_deterministic(self, renderer, ctx):
        template = "{{ .OwnerName }} {{ .Duration }}"
        assert renderer.render(template, ctx) == renderer.render(template, ctx)


class TestNormalizeReferences:
    @pytest.mark.parametrize(
        "source,expected",
        [
            ("{{.OwnerName}}", "{{OwnerName}}"),
            ("{{ .OwnerName }}", "{{ OwnerName }}"),
            ("{{- .Status -}}", "{{- Status -}}"),
            ("{{ .OwnerName ~ '/' ~ .Name }}", "{{ OwnerName ~ '/' ~ Name }}"),
            ("a.b {{ x }}", "a.b {{ x }}"),
            ("{{ 1.5 }}", "{{ 1.5 }}"),
            ('{{ "a .b" ~ .Name }}', '{{ "a .b" ~ Name }}'),
            ("{{ 'x .y' }}", "{{ 'x .y' }}"),
            ("{{% if .Reason %}}", "{{% if Reason %}}"),
        ],
    )
    def test_rewrites_only_references(self, source, expected):
        assert normalize_references(source) == expected
