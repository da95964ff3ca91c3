"""Tests for label selector compilation and matching."""

import pytest

from schednotify.core.errors import RuleSelectorError
from schednotify.domain.selectors import LabelSelector, compile_selector


def _selector(**data) -> LabelSelector:
    return LabelSelector.model_validate(data)


class TestMatching:
    def test_empty_selector_matches_everything(self):
        selector = compile_selector(LabelSelector())
        assert selector.is_empty
        assert selector.matches({})
        assert selector.matches({"team": "anything"})

    def test_match_labels(self):
        selector = compile_selector(_selector(matchLabels={"team": "payments"}))
        assert selector.matches({"team": "payments", "tier": "batch"})
        assert not selector.matches({"team": "search"})
        assert not selector.matches({})

    @pytest.mark.parametrize(
        "expr,labels,expected",
        [
            ({"key": "env", "operator": "In", "values": ["prod", "stg"]}, {"env": "stg"}, True),
            ({"key": "env", "operator": "In", "values": ["prod"]}, {}, False),
            ({"key": "env", "operator": "NotIn", "values": ["dev"]}, {"env": "prod"}, True),
            ({"key": "env", "operator": "NotIn", "values": ["dev"]}, {}, True),
            ({"key": "env", "operator": "Exists"}, {"env": ""}, True),
            ({"key": "env", "operator": "DoesNotExist"}, {"env": "x"}, False),
        ],
    )
    def test_expressions(self, expr, labels, expected):
        selector = compile_selector(_selector(matchExpressions=[expr]))
        assert selector.matches(labels) is expected

    def test_labels_and_expressions_are_anded(self):
        selector = compile_selector(
            _selector(
                matchLabels={"team": "payments"},
                matchExpressions=[{"key": "env", "operator": "In", "values": ["prod"]}],
            )
        )
        assert selector.matches({"team": "payments", "env": "prod"})
        assert not selector.matches({"team": "payments", "env": "dev"})

    def test_yaml_nulls_accepted(self):
        selector = compile_selector(
            _selector(matchLabels=None, matchExpressions=[{"key": "a", "operator": "Exists", "values": None}])
        )
        assert selector.matches({"a": "1"})

    def test_str(self):
        selector = compile_selector(
            _selector(
                matchLabels={"team": "payments"},
                matchExpressions=[{"key": "canary", "operator": "DoesNotExist"}],
            )
        )
        assert str(selector) == "!canary,team in (payments)"


class TestValidation:
    def test_unknown_operator(self):
        with pytest.raises(RuleSelectorError, match="not a valid label selector operator"):
            compile_selector(_selector(matchExpressions=[{"key": "a", "operator": "Contains", "values": ["x"]}]))

    def test_in_requires_values(self):
        with pytest.raises(RuleSelectorError, match="must be specified"):
            compile_selector(_selector(matchExpressions=[{"key": "a", "operator": "In"}]))

    def test_exists_forbids_values(self):
        with pytest.raises(RuleSelectorError, match="may not be specified"):
            compile_selector(_selector(matchExpressions=[{"key": "a", "operator": "Exists", "values": ["x"]}]))

    @pytest.mark.parametrize("key", ["", "-bad", "has space", "Bad_Prefix/name", "/name"])
    def test_invalid_keys(self, key):
        with pytest.raises(RuleSelectorError):
            compile_selector(_selector(matchLabels={key: "v"}))

    def test_prefixed_key_allowed(self):
        selector = compile_selector(_selector(matchLabels={"app.kubernetes.io/name": "etl"}))
        assert selector.matches({"app.kubernetes.io/name": "etl"})

    def test_invalid_value(self):
        with pytest.raises(RuleSelectorError) as exc:
            compile_selector(_selector(matchLabels={"team": "has space"}))
        assert exc.value.context.metadata["selector_key"] == "team"
