"""Store for listings parsed out of post titles."""

import logging
from typing import List

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError

from sales_watcher.errors import ReferentialIntegrityError
from sales_watcher.models.orm import ParsedListingORM, PostORM
from sales_watcher.models.records import ParsedListing
from sales_watcher.storage.database import Database

logger = logging.getLogger(__name__)


class ParsedListingStore:
    """Insert-only store; re-parsing a post adds new rows instead of updating old ones."""

    def __init__(self, db: Database):
        self.db = db

    def put(self, listing: ParsedListing) -> ParsedListing:
        """
        Insert a parsed listing for an existing post.

        Args:
            listing: Listing to insert; its ``id`` is ignored

        Returns:
            The stored listing with its row id set

        Raises:
            ValidationError: If the price parts or required text fields are invalid
            ReferentialIntegrityError: If ``listing.post_id`` is not a stored post
        """
        listing.validate()

        try:
            with self.db.transaction() as session:
                if session.get(PostORM, listing.post_id) is None:
                    raise ReferentialIntegrityError(f"parsed listing references unknown post {listing.post_id!r}")
                row = ParsedListingORM.from_record(listing)
                session.add(row)
                session.flush()
                stored = row.to_record()
        except ReferentialIntegrityError as e:
            logger.warning(f"Rejected parsed listing: {e}")
            raise
        except IntegrityError as e:
            logger.warning(f"Database rejected parsed listing for post {listing.post_id}: {e.orig}")
            raise ReferentialIntegrityError(f"parsed listing references unknown post {listing.post_id!r}") from e

        logger.debug(f"Stored parsed listing {stored.id} for post {stored.post_id}")
        return stored

    def list_for(self, post_id: str) -> List[ParsedListing]:
        """All listings for a post, in insertion order (empty if none)."""
        stmt = select(ParsedListingORM).where(ParsedListingORM.post_id == post_id).order_by(ParsedListingORM.id)
        with self.db.transaction() as session:
            return [row.to_record() for row in session.scalars(stmt)]

    def count(self) -> int:
        with self.db.transaction() as session:
            return session.scalar(select(func.count()).select_from(ParsedListingORM))
