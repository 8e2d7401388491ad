"""Append-only store for scraped posts."""

import logging
from typing import Iterator, List, Optional

from sqlalchemy import and_, func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.sql import Select

from sales_watcher.errors import NotFoundError
from sales_watcher.models.orm import ParsedListingORM, PostORM, RuleMatchORM
from sales_watcher.models.records import Post
from sales_watcher.storage.database import Database

logger = logging.getLogger(__name__)


class PostQuery:
    """
    Lazy, restartable view over stored posts.

    Nothing is read until iteration starts, and every ``iter()`` runs the query
    again from the beginning. Rows are fetched in pages ordered by
    ``(created_utc, id)``, each page in its own short session.
    """

    def __init__(
        self,
        db: Database,
        link_flair_text: Optional[str] = None,
        created_after: Optional[str] = None,
        created_before: Optional[str] = None,
        has_listings: Optional[bool] = None,
        has_matches: Optional[bool] = None,
    ):
        self.db = db
        self.link_flair_text = link_flair_text
        self.created_after = created_after
        self.created_before = created_before
        self.has_listings = has_listings
        self.has_matches = has_matches

    def _filtered(self, stmt: Select) -> Select:
        if self.link_flair_text is not None:
            stmt = stmt.where(PostORM.link_flair_text == self.link_flair_text)
        # created_utc is opaque text, so bounds compare lexicographically
        if self.created_after is not None:
            stmt = stmt.where(PostORM.created_utc >= self.created_after)
        if self.created_before is not None:
            stmt = stmt.where(PostORM.created_utc <= self.created_before)

        if self.has_listings is not None:
            listing_exists = select(ParsedListingORM.id).where(ParsedListingORM.post_id == PostORM.id).exists()
            stmt = stmt.where(listing_exists if self.has_listings else ~listing_exists)
        if self.has_matches is not None:
            match_exists = select(RuleMatchORM.id).where(RuleMatchORM.post_id == PostORM.id).exists()
            stmt = stmt.where(match_exists if self.has_matches else ~match_exists)

        return stmt

    def _pages(self) -> Iterator[List[Post]]:
        chunk_size = self.db.chunk_size
        last_key = None

        while True:
            stmt = self._filtered(select(PostORM))
            if last_key is not None:
                last_created, last_id = last_key
                stmt = stmt.where(
                    or_(
                        PostORM.created_utc > last_created,
                        and_(PostORM.created_utc == last_created, PostORM.id > last_id),
                    )
                )
            stmt = stmt.order_by(PostORM.created_utc, PostORM.id).limit(chunk_size)

            with self.db.transaction() as session:
                page = [row.to_record() for row in session.scalars(stmt)]

            if not page:
                return
            yield page
            if len(page) < chunk_size:
                return
            last_key = (page[-1].created_utc, page[-1].id)

    def __iter__(self) -> Iterator[Post]:
        for page in self._pages():
            yield from page

    def count(self) -> int:
        stmt = self._filtered(select(func.count()).select_from(PostORM))
        with self.db.transaction() as session:
            return session.scalar(stmt)


class PostStore:
    """Store for raw posts. Posts are inserted once and never updated or deleted."""

    def __init__(self, db: Database):
        self.db = db

    def put(self, post: Post) -> bool:
        """
        Insert a post unless one with the same id already exists.

        Re-observing a post is expected when polling, so a duplicate id is a
        no-op rather than an error.

        Args:
            post: Post to insert

        Returns:
            True if the post was inserted, False if the id was already stored

        Raises:
            ValidationError: If the id or title is empty
        """
        post.validate()

        try:
            with self.db.transaction() as session:
                if session.get(PostORM, post.id) is not None:
                    logger.debug(f"Post {post.id} already stored, skipping")
                    return False
                session.add(PostORM.from_record(post))
        except IntegrityError:
            # Another writer inserted the same id between our check and commit
            logger.debug(f"Post {post.id} inserted concurrently, skipping")
            return False

        logger.info(f"Stored post {post.id}: {post.title[:60]}")
        return True

    def get(self, post_id: str) -> Post:
        """
        Fetch a post by id.

        Raises:
            NotFoundError: If no post has this id
        """
        with self.db.transaction() as session:
            row = session.get(PostORM, post_id)
            if row is None:
                raise NotFoundError("post", post_id)
            return row.to_record()

    def exists(self, post_id: str) -> bool:
        with self.db.transaction() as session:
            return session.get(PostORM, post_id) is not None

    def list(
        self,
        link_flair_text: Optional[str] = None,
        created_after: Optional[str] = None,
        created_before: Optional[str] = None,
        has_listings: Optional[bool] = None,
        has_matches: Optional[bool] = None,
    ) -> PostQuery:
        """
        Query posts, optionally filtered.

        Args:
            link_flair_text: Only posts with exactly this flair
            created_after: Only posts with ``created_utc >= created_after``
            created_before: Only posts with ``created_utc <= created_before``
            has_listings: True for parsed posts, False for posts with no parsed listing
            has_matches: True for posts with a recorded rule match, False for posts without

        Returns:
            A lazy PostQuery; iterate it as many times as needed
        """
        return PostQuery(
            self.db,
            link_flair_text=link_flair_text,
            created_after=created_after,
            created_before=created_before,
            has_listings=has_listings,
            has_matches=has_matches,
        )

    def count(self) -> int:
        return self.list().count()
