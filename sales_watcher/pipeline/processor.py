"""Run fetched posts through storage, title parsing and rule evaluation."""

import logging
from dataclasses import dataclass, field
from typing import Callable, Iterable, List, Optional

from sales_watcher.config import LOG_ALL
from sales_watcher.errors import SalesWatcherError
from sales_watcher.models.records import ParsedListing, Post, Rule, RuleMatch
from sales_watcher.parsing.title_parser import parse_title
from sales_watcher.rules.evaluator import matching_rules
from sales_watcher.storage.database import Database
from sales_watcher.storage.listing_store import ParsedListingStore
from sales_watcher.storage.match_store import RuleMatchStore
from sales_watcher.storage.post_store import PostStore
from sales_watcher.storage.rule_store import RuleStore

logger = logging.getLogger(__name__)

TitleParser = Callable[[str, str, Optional[str]], List[ParsedListing]]


@dataclass
class ProcessResult:
    """Outcome of processing one post."""

    post: Post
    is_new: bool
    listings: List[ParsedListing] = field(default_factory=list)
    matches: List[RuleMatch] = field(default_factory=list)


class PostProcessor:
    """
    Stores a post, parses its title, and records a match for every rule it satisfies.

    Each step is its own transaction. If a later step fails, the earlier steps
    stay committed: the post stays stored and ``backfill`` can parse it later.
    """

    def __init__(
        self,
        post_store: PostStore,
        listing_store: ParsedListingStore,
        rule_store: RuleStore,
        match_store: RuleMatchStore,
        parser: TitleParser = parse_title,
    ):
        self.post_store = post_store
        self.listing_store = listing_store
        self.rule_store = rule_store
        self.match_store = match_store
        self.parser = parser

    @classmethod
    def for_database(cls, db: Database, duplicate_policy: str = LOG_ALL) -> "PostProcessor":
        return cls(
            PostStore(db),
            ParsedListingStore(db),
            RuleStore(db),
            RuleMatchStore(db, duplicate_policy=duplicate_policy),
        )

    def sync_rules(self, rules: Iterable[Rule]) -> List[Rule]:
        """Write configured rules to the rule store, overwriting same-id rules."""
        return self.rule_store.put_many(rules)

    def process(self, post: Post) -> ProcessResult:
        """
        Process one post.

        A post that was already stored is skipped entirely, so polling the same
        listing page twice does not produce new listings or matches.

        Args:
            post: The fetched post

        Returns:
            ProcessResult with the listings and matches created for the post
        """
        if not self.post_store.put(post):
            return ProcessResult(post=post, is_new=False)

        listings = self._parse(post)
        matches = self.evaluate(post, listings) if listings else []
        return ProcessResult(post=post, is_new=True, listings=listings, matches=matches)

    def process_many(self, posts: Iterable[Post]) -> List[ProcessResult]:
        results = [self.process(post) for post in posts]
        new_count = sum(1 for r in results if r.is_new)
        match_count = sum(len(r.matches) for r in results)
        logger.info(f"Processed {len(results)} posts: {new_count} new, {match_count} matches")
        return results

    def _parse(self, post: Post) -> List[ParsedListing]:
        parsed = self.parser(post.title, post.id, post.link_flair_text)
        if not parsed:
            logger.info(f"Could not parse title of post {post.id}: {post.title!r}")
            return []
        return [self.listing_store.put(listing) for listing in parsed]

    def evaluate(self, post: Post, listings: List[ParsedListing]) -> List[RuleMatch]:
        """Record a match for every stored rule the post satisfies."""
        rules = self.rule_store.list()
        matched = matching_rules(rules, post, listings)
        matches = []
        for rule in matched:
            logger.info(f"Post {post.id} matched rule {rule.display_name}")
            matches.append(self.match_store.record(rule.id, post.id))
        return matches

    def backfill(self) -> int:
        """
        Parse and evaluate every stored post that has no parsed listing yet.

        A post whose listings cannot be stored is logged and skipped; it stays
        unparsed and is retried on the next run.

        Returns:
            Number of posts that gained listings
        """
        parsed_count = 0
        failed_count = 0
        for post in self.post_store.list(has_listings=False):
            try:
                listings = self._parse(post)
                if listings:
                    self.evaluate(post, listings)
            except SalesWatcherError as e:
                failed_count += 1
                logger.warning(f"Failed to backfill post {post.id}: {e}")
                continue
            if listings:
                parsed_count += 1

        logger.info(f"Backfill parsed {parsed_count} previously unparsed posts, {failed_count} failed")
        return parsed_count
