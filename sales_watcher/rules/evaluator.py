"""Decide whether rules match a post and its parsed listings.

Everything here is a pure function of its inputs; recording the outcome is
the caller's job (see ``sales_watcher.pipeline.processor``).
"""

from typing import List, Optional, Sequence

from sales_watcher.models.records import ParsedListing, Post, Rule
from sales_watcher.rules.pattern import parse_pattern


def _pattern_ok(source: Optional[str], text: Optional[str]) -> bool:
    if source is None:
        return True
    return parse_pattern(source).matches_optional(text)


def post_matches(rule: Rule, post: Post) -> bool:
    """Check the post-level constraints (flair)."""
    return _pattern_ok(rule.link_flair_pattern, post.link_flair_text)


def listing_matches(rule: Rule, listing: ParsedListing) -> bool:
    """Check the listing-level constraints: product type, description and inclusive price bounds."""
    if not _pattern_ok(rule.product_type_pattern, listing.product_type):
        return False
    if not _pattern_ok(rule.description_pattern, listing.description):
        return False

    price = listing.price
    if rule.price_min is not None and price < rule.price_min:
        return False
    if rule.price_max is not None and price > rule.price_max:
        return False
    return True


def rule_matches(rule: Rule, post: Post, listings: Sequence[ParsedListing]) -> bool:
    """
    True if the post and at least one of its listings satisfy every constraint of the rule.

    A post with no parsed listings never matches.
    """
    if not listings or not post_matches(rule, post):
        return False
    return any(listing_matches(rule, listing) for listing in listings)


def matching_rules(rules: Sequence[Rule], post: Post, listings: Sequence[ParsedListing]) -> List[Rule]:
    """All rules matching the post, in the order given."""
    return [rule for rule in rules if rule_matches(rule, post, listings)]


def first_matching_rule(rules: Sequence[Rule], post: Post, listings: Sequence[ParsedListing]) -> Optional[Rule]:
    for rule in rules:
        if rule_matches(rule, post, listings):
            return rule
    return None
