"""Audit log of rule matches."""

import logging
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError

from sales_watcher.config import DEDUPE, DUPLICATE_POLICIES, LOG_ALL
from sales_watcher.errors import ReferentialIntegrityError
from sales_watcher.models.orm import PostORM, RuleMatchORM, RuleORM
from sales_watcher.models.records import RuleMatch
from sales_watcher.storage.database import Database

logger = logging.getLogger(__name__)


def utc_now() -> str:
    """Current UTC time as an ISO 8601 string ending in ``Z``, like the mapped post timestamps."""
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


class RuleMatchStore:
    """
    Append-only store of rule matches.

    With the ``log_all`` policy every ``record`` call appends a row, so repeated
    evaluation runs leave one entry per run. With ``dedupe`` a second match for
    the same (rule, post) pair returns the first entry instead.
    """

    def __init__(self, db: Database, duplicate_policy: str = LOG_ALL):
        if duplicate_policy not in DUPLICATE_POLICIES:
            raise ValueError(
                f"Unknown duplicate policy {duplicate_policy!r}, expected one of {', '.join(DUPLICATE_POLICIES)}"
            )
        self.db = db
        self.duplicate_policy = duplicate_policy

    def record(self, rule_id: str, post_id: str, created_utc: Optional[str] = None) -> RuleMatch:
        """
        Record that a rule matched a post.

        Args:
            rule_id: Id of a stored rule
            post_id: Id of a stored post
            created_utc: When the match was found; defaults to now

        Returns:
            The stored match (the earlier one under the ``dedupe`` policy)

        Raises:
            ReferentialIntegrityError: If the rule or the post does not exist
        """
        if created_utc is None:
            created_utc = utc_now()

        try:
            with self.db.transaction() as session:
                if session.get(RuleORM, rule_id) is None:
                    raise ReferentialIntegrityError(f"rule match references unknown rule {rule_id!r}")
                if session.get(PostORM, post_id) is None:
                    raise ReferentialIntegrityError(f"rule match references unknown post {post_id!r}")

                if self.duplicate_policy == DEDUPE:
                    existing = session.scalars(
                        select(RuleMatchORM)
                        .where(RuleMatchORM.rule_id == rule_id, RuleMatchORM.post_id == post_id)
                        .order_by(RuleMatchORM.id)
                        .limit(1)
                    ).first()
                    if existing is not None:
                        logger.debug(f"Rule {rule_id} already matched post {post_id}, not recording again")
                        return existing.to_record()

                row = RuleMatchORM(rule_id=rule_id, post_id=post_id, created_utc=created_utc)
                session.add(row)
                session.flush()
                match = row.to_record()
        except ReferentialIntegrityError as e:
            logger.warning(f"Rejected rule match: {e}")
            raise
        except IntegrityError as e:
            logger.warning(f"Database rejected rule match ({rule_id}, {post_id}): {e.orig}")
            raise ReferentialIntegrityError(
                f"rule match references unknown rule {rule_id!r} or post {post_id!r}"
            ) from e

        logger.info(f"Recorded match of rule {rule_id} on post {post_id}")
        return match

    def _matches_where(self, condition) -> List[RuleMatch]:
        stmt = select(RuleMatchORM).where(condition).order_by(RuleMatchORM.id)
        with self.db.transaction() as session:
            return [row.to_record() for row in session.scalars(stmt)]

    def matches_for_post(self, post_id: str) -> List[RuleMatch]:
        """Matches recorded for a post, in insertion order."""
        return self._matches_where(RuleMatchORM.post_id == post_id)

    def matches_for_rule(self, rule_id: str) -> List[RuleMatch]:
        """Matches recorded for a rule, in insertion order."""
        return self._matches_where(RuleMatchORM.rule_id == rule_id)

    def count(self) -> int:
        with self.db.transaction() as session:
            return session.scalar(select(func.count()).select_from(RuleMatchORM))
