"""
Pytest fixtures shared by the sales watcher test-suite.

Every test gets its own in-memory SQLite database with the schema created
and foreign-key enforcement switched on.
"""

import pytest

from sales_watcher.models.records import ParsedListing, Post, Rule
from sales_watcher.storage.database import Database
from sales_watcher.storage.listing_store import ParsedListingStore
from sales_watcher.storage.match_store import RuleMatchStore
from sales_watcher.storage.post_store import PostStore
from sales_watcher.storage.rule_store import RuleStore


@pytest.fixture
def db():
    """In-memory database with all tables created; closed after the test."""
    database = Database("sqlite://", chunk_size=2)
    database.create_schema()
    yield database
    database.close()


@pytest.fixture
def post_store(db):
    return PostStore(db)


@pytest.fixture
def listing_store(db):
    return ParsedListingStore(db)


@pytest.fixture
def rule_store(db):
    return RuleStore(db)


@pytest.fixture
def match_store(db):
    return RuleMatchStore(db)


@pytest.fixture
def sample_post():
    return Post(
        id="p1",
        created_utc="2023-01-01T00:00:00Z",
        title="Selling iPhone 13 - $500",
    )


@pytest.fixture
def gpu_post():
    return Post(
        id="10abcd",
        created_utc="2023-02-16T04:22:03Z",
        title="[GPU] ASUS TUF NVIDIA GeForce RTX 4070 Ti 12GB $799.99",
        downs=0,
        ups=12,
        link_flair_text="GPU",
        url="https://www.example.com/asus-4070-ti",
    )


@pytest.fixture
def phone_listing():
    return ParsedListing(
        post_id="p1",
        product_type="phone",
        description="iPhone 13",
        price_dollars=500,
        price_cents=0,
    )


@pytest.fixture
def phone_rule():
    return Rule(id="r1", product_type_pattern="phone", price_min=100, price_max=1000)
