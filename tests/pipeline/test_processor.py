"""Tests for the post processing pipeline."""

import pytest

from sales_watcher.config import DEDUPE
from sales_watcher.models.records import ParsedListing, Post, Rule
from sales_watcher.pipeline.processor import PostProcessor


@pytest.fixture
def processor(db):
    return PostProcessor.for_database(db)


@pytest.fixture
def rules():
    return [
        Rule(id="cheap-gpu", name="Cheap GPU", product_type_pattern="gpu", price_max=500),
        Rule(id="any-4070", description_pattern='"4070"'),
        Rule(id="psu", product_type_pattern="psu"),
    ]


class TestProcess:
    """Processing single posts."""

    def test_new_post_is_stored_parsed_and_matched(self, processor, rules, gpu_post):
        processor.sync_rules(rules)

        result = processor.process(gpu_post)

        assert result.is_new
        assert processor.post_store.get(gpu_post.id) == gpu_post
        assert [l.price_dollars for l in result.listings] == [799]
        assert [m.rule_id for m in result.matches] == ["any-4070"]
        assert processor.match_store.matches_for_post(gpu_post.id) == result.matches

    def test_every_matching_rule_is_recorded(self, processor, rules):
        processor.sync_rules(rules)
        post = Post(id="cheap", created_utc="2023-03-01T00:00:00Z", title="[GPU] MSI RTX 4070 Ventus $449.99")

        result = processor.process(post)

        assert sorted(m.rule_id for m in result.matches) == ["any-4070", "cheap-gpu"]

    def test_seen_post_is_skipped(self, processor, rules, gpu_post):
        processor.sync_rules(rules)
        processor.process(gpu_post)

        again = processor.process(gpu_post)

        assert not again.is_new
        assert again.listings == []
        assert again.matches == []
        assert processor.listing_store.count() == 1
        assert processor.match_store.count() == 1

    def test_unparseable_title_is_stored_without_listings(self, processor, rules, sample_post):
        processor.sync_rules(rules)

        result = processor.process(sample_post)

        assert result.is_new
        assert result.listings == []
        assert result.matches == []
        assert processor.post_store.exists(sample_post.id)

    def test_no_rules_no_matches(self, processor, gpu_post):
        result = processor.process(gpu_post)
        assert len(result.listings) == 1
        assert result.matches == []

    def test_custom_parser(self, db, sample_post, phone_rule):
        def parser(title, post_id, link_flair_text=None):
            return [ParsedListing(post_id=post_id, product_type="phone", description="iPhone 13", price_dollars=500, price_cents=0)]

        base = PostProcessor.for_database(db)
        processor = PostProcessor(
            base.post_store, base.listing_store, base.rule_store, base.match_store, parser=parser
        )
        processor.sync_rules([phone_rule])

        result = processor.process(sample_post)

        assert [(m.rule_id, m.post_id) for m in result.matches] == [("r1", "p1")]

    def test_out_of_range_price_is_unparseable(self, processor, rules):
        post = Post(id="huge", created_utc="2023-03-01T00:00:00Z", title="[GPU] RTX 4070 $99999999999999999999")

        result = processor.process(post)

        assert result.is_new
        assert result.listings == []
        assert processor.backfill() == 0

    def test_process_many(self, processor, rules, gpu_post, sample_post):
        processor.sync_rules(rules)
        results = processor.process_many([gpu_post, sample_post, gpu_post])
        assert [r.is_new for r in results] == [True, True, False]


class TestEvaluate:
    """Re-evaluating stored posts."""

    def test_evaluate_twice_logs_twice(self, processor, sample_post, phone_listing, phone_rule):
        processor.post_store.put(sample_post)
        processor.listing_store.put(phone_listing)
        processor.sync_rules([phone_rule])

        processor.evaluate(sample_post, [phone_listing])
        processor.evaluate(sample_post, [phone_listing])

        assert len(processor.match_store.matches_for_post("p1")) == 2

    def test_evaluate_twice_with_dedupe(self, db, sample_post, phone_listing, phone_rule):
        processor = PostProcessor.for_database(db, duplicate_policy=DEDUPE)
        processor.post_store.put(sample_post)
        processor.listing_store.put(phone_listing)
        processor.sync_rules([phone_rule])

        processor.evaluate(sample_post, [phone_listing])
        processor.evaluate(sample_post, [phone_listing])

        assert len(processor.match_store.matches_for_post("p1")) == 1


class TestBackfill:
    """Parsing posts that were stored before they could be parsed."""

    def test_backfill_parses_unparsed_posts(self, processor, rules, gpu_post):
        processor.post_store.put(gpu_post)
        processor.sync_rules(rules)

        assert processor.backfill() == 1
        assert len(processor.listing_store.list_for(gpu_post.id)) == 1
        assert [m.rule_id for m in processor.match_store.matches_for_post(gpu_post.id)] == ["any-4070"]

        # already parsed now
        assert processor.backfill() == 0

    def test_backfill_skips_unparseable(self, processor, sample_post):
        processor.post_store.put(sample_post)
        assert processor.backfill() == 0
        assert processor.listing_store.count() == 0

    def test_backfill_skips_post_that_fails_and_continues(self, db, rules):
        def parser(title, post_id, link_flair_text=None):
            # cents out of range for the first post only
            cents = 150 if post_id == "bad" else 0
            return [ParsedListing(post_id=post_id, product_type="GPU", description=title, price_dollars=5, price_cents=cents)]

        base = PostProcessor.for_database(db)
        processor = PostProcessor(
            base.post_store, base.listing_store, base.rule_store, base.match_store, parser=parser
        )
        processor.sync_rules(rules)
        processor.post_store.put(Post(id="bad", created_utc="2023-03-01T00:00:00Z", title="first"))
        processor.post_store.put(Post(id="ok", created_utc="2023-03-02T00:00:00Z", title="RTX 4070"))

        assert processor.backfill() == 1
        assert processor.listing_store.list_for("bad") == []
        assert len(processor.listing_store.list_for("ok")) == 1
        assert sorted(m.rule_id for m in processor.match_store.matches_for_post("ok")) == ["any-4070", "cheap-gpu"]

        # the failing post stays unparsed and does not block later runs
        assert [p.id for p in processor.post_store.list(has_listings=False)] == ["bad"]
        assert processor.backfill() == 0
