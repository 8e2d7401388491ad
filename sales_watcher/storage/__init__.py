from .database import Database
from .listing_store import ParsedListingStore
from .match_store import RuleMatchStore
from .post_store import PostQuery, PostStore
from .rule_store import RuleStore

__all__ = [
    "Database",
    "PostStore",
    "PostQuery",
    "ParsedListingStore",
    "RuleStore",
    "RuleMatchStore",
]
