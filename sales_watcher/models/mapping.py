"""Mapping functions to convert Reddit API listing payloads to our data models."""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from sales_watcher.models.records import Post

logger = logging.getLogger(__name__)

DEFAULT_SUBREDDIT = "buildapcsales"


def _optional_int(value: Any) -> Optional[int]:
    if value is None:
        return None
    return int(value)


def format_created_utc(created_utc: Any) -> str:
    """
    Normalise a Reddit ``created_utc`` value to a string.

    Reddit sends a Unix timestamp as a float; it is rendered as an ISO 8601 UTC
    string. Strings are passed through untouched.
    """
    if isinstance(created_utc, str):
        return created_utc
    dt = datetime.fromtimestamp(float(created_utc), tz=timezone.utc)
    return dt.isoformat().replace("+00:00", "Z")


def post_from_reddit(data: Dict[str, Any]) -> Post:
    """
    Convert the ``data`` object of one listing child into a Post.

    Args:
        data: Submission fields as returned by ``/r/<sub>/new.json``

    Returns:
        A Post record

    Raises:
        KeyError: If ``id``, ``title`` or ``created_utc`` is missing
    """
    return Post(
        id=data["id"],
        created_utc=format_created_utc(data["created_utc"]),
        title=data["title"],
        downs=_optional_int(data.get("downs")),
        ups=_optional_int(data.get("ups")),
        link_flair_text=data.get("link_flair_text") or None,
        url=data.get("url"),
    )


def posts_from_listing(listing: Dict[str, Any]) -> List[Post]:
    """
    Convert a whole listing response (``{"data": {"children": [...]}}``) to Posts.

    Children that cannot be mapped are logged and skipped.
    """
    children: Iterable[Dict[str, Any]] = listing.get("data", {}).get("children", [])
    posts = []

    for child in children:
        data = child.get("data", {})
        try:
            posts.append(post_from_reddit(data))
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Failed to convert listing child {data.get('id', 'UNKNOWN_ID')}: {e}")

    return posts


def comments_url(post_id: str, subreddit: str = DEFAULT_SUBREDDIT) -> str:
    """Link to the post's comment page."""
    return f"https://www.reddit.com/r/{subreddit}/comments/{post_id}"
