"""Domain records passed between the stores, the title parser and the rule evaluator.

These are plain dataclasses; the SQLAlchemy tables in ``sales_watcher.models.orm``
mirror them column for column. Each record knows how to check its own
invariants so every store rejects bad input the same way.
"""

import base64
import hashlib
from dataclasses import dataclass, field
from typing import Optional

from sales_watcher.errors import PatternSyntaxError, ValidationError
from sales_watcher.rules.pattern import parse_pattern

UNNAMED_RULE = "(unnamed rule)"

PATTERN_FIELDS = ("link_flair_pattern", "product_type_pattern", "description_pattern")

# Largest dollar amount a listing can hold (signed 32-bit)
MAX_PRICE_DOLLARS = 2**31 - 1


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


@dataclass
class Post:
    """One scraped marketplace post. ``created_utc`` is kept as the source's string."""

    id: str
    created_utc: str
    title: str
    downs: Optional[int] = None
    ups: Optional[int] = None
    link_flair_text: Optional[str] = None
    url: Optional[str] = None

    def validate(self) -> None:
        if not self.id:
            raise ValidationError("post id must not be empty")
        if not self.title or not self.title.strip():
            raise ValidationError(f"post {self.id!r}: title must not be empty")
        if self.created_utc is None:
            raise ValidationError(f"post {self.id!r}: created_utc is required")
        for name in ("downs", "ups"):
            value = getattr(self, name)
            if value is not None and not _is_int(value):
                raise ValidationError(f"post {self.id!r}: {name} must be an integer, got {value!r}")


@dataclass
class ParsedListing:
    """Structured product data extracted from a post title.

    ``id`` is the storage row id, assigned on insert and ignored by equality.
    """

    post_id: str
    product_type: str
    description: str
    price_dollars: int
    price_cents: int
    extra_details: Optional[str] = None
    id: Optional[int] = field(default=None, compare=False)

    @property
    def price(self) -> float:
        return self.price_dollars + self.price_cents / 100

    def validate(self) -> None:
        if not self.post_id:
            raise ValidationError("listing post_id must not be empty")
        if self.product_type is None or self.description is None:
            raise ValidationError(f"listing for post {self.post_id!r}: product_type and description are required")
        if not _is_int(self.price_dollars) or not 0 <= self.price_dollars <= MAX_PRICE_DOLLARS:
            raise ValidationError(
                f"listing for post {self.post_id!r}: price_dollars must be an integer in [0, {MAX_PRICE_DOLLARS}], "
                f"got {self.price_dollars!r}"
            )
        if not _is_int(self.price_cents) or not 0 <= self.price_cents <= 99:
            raise ValidationError(f"listing for post {self.post_id!r}: price_cents must be an integer in [0, 99], got {self.price_cents!r}")


@dataclass
class Rule:
    """A user-defined filter. ``None`` on a pattern or bound means no constraint."""

    id: str
    name: Optional[str] = None
    link_flair_pattern: Optional[str] = None
    product_type_pattern: Optional[str] = None
    description_pattern: Optional[str] = None
    price_min: Optional[float] = None
    price_max: Optional[float] = None

    @property
    def display_name(self) -> str:
        return self.name if self.name else UNNAMED_RULE

    def validate(self) -> None:
        if not self.id:
            raise ValidationError("rule id must not be empty")
        if self.price_min is not None and self.price_max is not None and self.price_min > self.price_max:
            raise ValidationError(
                f"rule {self.id!r}: price_min ({self.price_min}) is greater than price_max ({self.price_max})"
            )
        for field_name in PATTERN_FIELDS:
            source = getattr(self, field_name)
            if source is None:
                continue
            try:
                parse_pattern(source)
            except PatternSyntaxError as e:
                raise ValidationError(f"rule {self.id!r} {field_name} {source!r}: {e}") from e

    @staticmethod
    def content_id(
        name: Optional[str] = None,
        link_flair_pattern: Optional[str] = None,
        product_type_pattern: Optional[str] = None,
        description_pattern: Optional[str] = None,
        price_min: Optional[float] = None,
        price_max: Optional[float] = None,
    ) -> str:
        """Derive a stable id from the rule's fields, for rules declared without one."""
        hasher = hashlib.md5()
        for label, value in (
            ("name", name),
            ("link_flair_pattern", link_flair_pattern),
            ("product_type_pattern", product_type_pattern),
            ("description_pattern", description_pattern),
            ("price_min", price_min),
            ("price_max", price_max),
        ):
            if value is not None:
                hasher.update(f"{label}={value!r};".encode("utf-8"))
        return base64.b64encode(hasher.digest()).decode("ascii")


@dataclass
class RuleMatch:
    """One recorded instance of a rule matching a post."""

    rule_id: str
    post_id: str
    created_utc: str
    id: Optional[int] = field(default=None, compare=False)
