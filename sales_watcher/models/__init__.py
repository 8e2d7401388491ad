from .records import ParsedListing, Post, Rule, RuleMatch

__all__ = [
    "Post",
    "ParsedListing",
    "Rule",
    "RuleMatch",
]
