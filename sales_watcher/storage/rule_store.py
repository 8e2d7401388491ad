"""Store for user-defined rules. Rules are configuration and may be overwritten or deleted."""

import logging
from typing import Iterable, List

from sqlalchemy import func, select

from sales_watcher.errors import NotFoundError, ReferentialIntegrityError
from sales_watcher.models.orm import RuleMatchORM, RuleORM
from sales_watcher.models.records import Rule
from sales_watcher.storage.database import Database

logger = logging.getLogger(__name__)


class RuleStore:
    """Insert-or-overwrite store keyed by rule id. Concurrent writers: last one wins."""

    def __init__(self, db: Database):
        self.db = db

    def put(self, rule: Rule) -> Rule:
        """
        Insert a rule or replace the stored rule with the same id.

        Raises:
            ValidationError: If ``price_min > price_max``, the id is empty, or a
                pattern does not parse
        """
        rule.validate()
        with self.db.transaction() as session:
            session.merge(RuleORM.from_record(rule))
        logger.info(f"Stored rule {rule.id} ({rule.display_name})")
        return rule

    def put_many(self, rules: Iterable[Rule]) -> List[Rule]:
        """Validate all rules first, then write them in a single transaction."""
        rules = list(rules)
        for rule in rules:
            rule.validate()

        with self.db.transaction() as session:
            for rule in rules:
                session.merge(RuleORM.from_record(rule))

        logger.info(f"Stored {len(rules)} rules")
        return rules

    def get(self, rule_id: str) -> Rule:
        """
        Fetch a rule by id.

        Raises:
            NotFoundError: If no rule has this id
        """
        with self.db.transaction() as session:
            row = session.get(RuleORM, rule_id)
            if row is None:
                raise NotFoundError("rule", rule_id)
            return row.to_record()

    def delete(self, rule_id: str) -> None:
        """
        Delete a rule.

        Raises:
            NotFoundError: If no rule has this id
            ReferentialIntegrityError: If matches recorded for the rule still reference it
        """
        with self.db.transaction() as session:
            row = session.get(RuleORM, rule_id)
            if row is None:
                raise NotFoundError("rule", rule_id)

            match_count = session.scalar(
                select(func.count()).select_from(RuleMatchORM).where(RuleMatchORM.rule_id == rule_id)
            )
            if match_count:
                logger.warning(f"Refusing to delete rule {rule_id}: {match_count} recorded matches reference it")
                raise ReferentialIntegrityError(
                    f"rule {rule_id!r} is referenced by {match_count} recorded matches"
                )

            session.delete(row)

        logger.info(f"Deleted rule {rule_id}")

    def list(self) -> List[Rule]:
        """All stored rules, in no particular order."""
        with self.db.transaction() as session:
            return [row.to_record() for row in session.scalars(select(RuleORM))]
