"""SQLAlchemy ORM tables for posts, parsed titles, rules and rule matches."""

from typing import Optional

from sqlalchemy import Float, ForeignKey, Index, Integer, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from sales_watcher.models.records import ParsedListing, Post, Rule, RuleMatch


class Base(DeclarativeBase):
    pass


class PostORM(Base):
    """
    Raw scraped post. Append-only.

    Schema:
      id               TEXT PRIMARY KEY NOT NULL,
      created_utc      TEXT NOT NULL,
      downs            INTEGER,
      link_flair_text  TEXT,
      title            TEXT NOT NULL,
      ups              INTEGER,
      url              TEXT
    """
    __tablename__ = "posts"

    id: Mapped[str] = mapped_column(Text, primary_key=True, comment="External post id from the source platform")
    created_utc: Mapped[str] = mapped_column(Text, nullable=False, comment="Creation timestamp in the source's format")
    downs: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    link_flair_text: Mapped[Optional[str]] = mapped_column(Text, nullable=True, comment="Category label supplied by the source")
    title: Mapped[str] = mapped_column(Text, nullable=False)
    ups: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    @classmethod
    def from_record(cls, post: Post) -> "PostORM":
        return cls(
            id=post.id,
            created_utc=post.created_utc,
            downs=post.downs,
            link_flair_text=post.link_flair_text,
            title=post.title,
            ups=post.ups,
            url=post.url,
        )

    def to_record(self) -> Post:
        return Post(
            id=self.id,
            created_utc=self.created_utc,
            title=self.title,
            downs=self.downs,
            ups=self.ups,
            link_flair_text=self.link_flair_text,
            url=self.url,
        )

    def __repr__(self) -> str:
        return f"<PostORM(id='{self.id}', created_utc='{self.created_utc}', title='{self.title[:40]}')>"


class ParsedListingORM(Base):
    """
    One structured interpretation of a post title. Immutable once written.

    ``id`` is a surrogate key; it also fixes insertion order for ``list_for``.
    """
    __tablename__ = "parsed_titles"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    post_id: Mapped[str] = mapped_column(Text, ForeignKey("posts.id"), nullable=False)
    product_type: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    price_dollars: Mapped[int] = mapped_column(Integer, nullable=False)
    price_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    extra_details: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    __table_args__ = (
        Index("ix_parsed_titles_post_id", "post_id"),
    )

    @classmethod
    def from_record(cls, listing: ParsedListing) -> "ParsedListingORM":
        return cls(
            post_id=listing.post_id,
            product_type=listing.product_type,
            description=listing.description,
            price_dollars=listing.price_dollars,
            price_cents=listing.price_cents,
            extra_details=listing.extra_details,
        )

    def to_record(self) -> ParsedListing:
        return ParsedListing(
            post_id=self.post_id,
            product_type=self.product_type,
            description=self.description,
            price_dollars=self.price_dollars,
            price_cents=self.price_cents,
            extra_details=self.extra_details,
            id=self.id,
        )

    def __repr__(self) -> str:
        return (
            f"<ParsedListingORM(id={self.id}, post_id='{self.post_id}', product_type='{self.product_type}', "
            f"price={self.price_dollars}.{self.price_cents:02d})>"
        )


class RuleORM(Base):
    """User-defined matching rule. Mutable configuration, overwritten by id."""
    __tablename__ = "rules"

    id: Mapped[str] = mapped_column(Text, primary_key=True)
    name: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    link_flair_pattern: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    product_type_pattern: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    description_pattern: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    price_min: Mapped[Optional[float]] = mapped_column(Float, nullable=True, comment="Inclusive lower bound in dollars")
    price_max: Mapped[Optional[float]] = mapped_column(Float, nullable=True, comment="Inclusive upper bound in dollars")

    @classmethod
    def from_record(cls, rule: Rule) -> "RuleORM":
        return cls(
            id=rule.id,
            name=rule.name,
            link_flair_pattern=rule.link_flair_pattern,
            product_type_pattern=rule.product_type_pattern,
            description_pattern=rule.description_pattern,
            price_min=rule.price_min,
            price_max=rule.price_max,
        )

    def to_record(self) -> Rule:
        return Rule(
            id=self.id,
            name=self.name,
            link_flair_pattern=self.link_flair_pattern,
            product_type_pattern=self.product_type_pattern,
            description_pattern=self.description_pattern,
            price_min=self.price_min,
            price_max=self.price_max,
        )

    def __repr__(self) -> str:
        return f"<RuleORM(id='{self.id}', name='{self.name}')>"


class RuleMatchORM(Base):
    """
    Audit log of rule matches.

    No unique constraint on (rule_id, post_id): the match store's duplicate
    policy decides whether a repeated match is stored.
    """
    __tablename__ = "rule_matches"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    rule_id: Mapped[str] = mapped_column(Text, ForeignKey("rules.id"), nullable=False)
    post_id: Mapped[str] = mapped_column(Text, ForeignKey("posts.id"), nullable=False)
    created_utc: Mapped[str] = mapped_column(Text, nullable=False)

    __table_args__ = (
        Index("ix_rule_matches_rule_id", "rule_id"),
        Index("ix_rule_matches_post_id", "post_id"),
    )

    def to_record(self) -> RuleMatch:
        return RuleMatch(rule_id=self.rule_id, post_id=self.post_id, created_utc=self.created_utc, id=self.id)

    def __repr__(self) -> str:
        return f"<RuleMatchORM(id={self.id}, rule_id='{self.rule_id}', post_id='{self.post_id}')>"
