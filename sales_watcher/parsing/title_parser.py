"""Extract product listings from deal post titles.

Titles follow the ``[TYPE] description $price extra`` convention, e.g.::

    [GPU] ASUS TUF RTX 4070 Ti 12GB $799.99
    [PSU] Corsair HX1000 - $163.19 ($254.99-$91.80) MICROCENTER IN STORE ONLY

Parsing is best effort. A title that does not follow the convention gives an
empty list, never an exception.
"""

import logging
import re
from typing import List, Optional

from sales_watcher.models.records import MAX_PRICE_DOLLARS, ParsedListing

logger = logging.getLogger(__name__)

TITLE_RE = re.compile(
    r"\[(?P<type>[ \w]+)\]"
    r"(?P<desc>[^$]*)"
    r"\$(?P<dollars>\d{1,3}(?:,\d{3})+|\d+)"
    r"(?:\.(?P<cents>\d+))?"
    r"(?P<extra>[^\d].*)?"
)


def _cents(raw: Optional[str]) -> Optional[int]:
    """Turn the digits after the decimal point into cents; None if there are too many."""
    if raw is None:
        return 0
    if len(raw) == 1:
        return int(raw) * 10
    if len(raw) == 2:
        return int(raw)
    return None


def parse_title(title: str, post_id: str, link_flair_text: Optional[str] = None) -> List[ParsedListing]:
    """
    Parse a post title into listings.

    Args:
        title: The post title
        post_id: Id of the post the title belongs to
        link_flair_text: The post's flair; accepted for parsers that use it,
            ignored by this grammar

    Returns:
        Zero or one ParsedListing
    """
    if not title:
        return []

    match = TITLE_RE.search(title)
    if match is None:
        logger.debug(f"No listing structure in title of post {post_id}: {title!r}")
        return []

    cents = _cents(match.group("cents"))
    if cents is None:
        logger.debug(f"Unreadable cents {match.group('cents')!r} in title of post {post_id}")
        return []

    dollars = int(match.group("dollars").replace(",", ""))
    if dollars > MAX_PRICE_DOLLARS:
        logger.debug(f"Price ${dollars} out of range in title of post {post_id}")
        return []

    extra = match.group("extra")
    extra = extra.strip() if extra else None

    listing = ParsedListing(
        post_id=post_id,
        product_type=match.group("type").strip(),
        description=match.group("desc").strip(),
        price_dollars=dollars,
        price_cents=cents,
        extra_details=extra or None,
    )
    return [listing]
