"""Tests for the rule store."""

import pytest

from sales_watcher.errors import NotFoundError, ReferentialIntegrityError, ValidationError
from sales_watcher.models.records import Rule


class TestRuleStore:
    """Insert-or-overwrite semantics, validation and deletion."""

    def test_put_and_get(self, rule_store, phone_rule):
        rule_store.put(phone_rule)
        assert rule_store.get("r1") == phone_rule

    def test_put_overwrites_same_id(self, rule_store, phone_rule):
        rule_store.put(phone_rule)
        rule_store.put(Rule(id="r1", name="phones", product_type_pattern="phone", price_max=200))

        stored = rule_store.get("r1")
        assert stored.name == "phones"
        assert stored.price_min is None
        assert stored.price_max == 200
        assert len(rule_store.list()) == 1

    def test_get_missing(self, rule_store):
        with pytest.raises(NotFoundError):
            rule_store.get("nope")

    def test_min_greater_than_max_rejected(self, rule_store, phone_rule):
        rule_store.put(phone_rule)

        with pytest.raises(ValidationError):
            rule_store.put(Rule(id="r1", price_min=10, price_max=5))

        assert rule_store.get("r1") == phone_rule

    def test_equal_bounds_allowed(self, rule_store):
        rule_store.put(Rule(id="exact", price_min=5, price_max=5))
        assert rule_store.get("exact").price_min == 5

    def test_bad_pattern_rejected(self, rule_store):
        with pytest.raises(ValidationError) as exc_info:
            rule_store.put(Rule(id="bad", description_pattern="a | b"))
        assert "description_pattern" in str(exc_info.value)
        assert rule_store.list() == []

    def test_put_many_is_all_or_nothing(self, rule_store):
        rules = [Rule(id="ok"), Rule(id="bad", price_min=3, price_max=1)]
        with pytest.raises(ValidationError):
            rule_store.put_many(rules)
        assert rule_store.list() == []

    def test_put_many(self, rule_store, phone_rule):
        rule_store.put_many([phone_rule, Rule(id="r2", name="other")])
        assert sorted(r.id for r in rule_store.list()) == ["r1", "r2"]

    def test_delete(self, rule_store, phone_rule):
        rule_store.put(phone_rule)
        rule_store.delete("r1")
        assert rule_store.list() == []

    def test_delete_missing(self, rule_store):
        with pytest.raises(NotFoundError):
            rule_store.delete("nope")

    def test_delete_referenced_rule(self, post_store, rule_store, match_store, sample_post, phone_rule):
        post_store.put(sample_post)
        rule_store.put(phone_rule)
        match_store.record("r1", "p1")

        with pytest.raises(ReferentialIntegrityError):
            rule_store.delete("r1")

        assert rule_store.get("r1") == phone_rule
        assert match_store.count() == 1

    def test_display_name(self):
        assert Rule(id="x").display_name == "(unnamed rule)"
        assert Rule(id="x", name="cheap gpus").display_name == "cheap gpus"


class TestContentId:
    """Ids derived from rule contents."""

    def test_stable(self):
        assert Rule.content_id(name="a", price_max=10.0) == Rule.content_id(name="a", price_max=10.0)

    def test_differs_by_field(self):
        assert Rule.content_id(name="a") != Rule.content_id(description_pattern="a")
