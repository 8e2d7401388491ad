"""Tests for the mapping module."""

import unittest

from sales_watcher.models.mapping import (
    comments_url,
    format_created_utc,
    post_from_reddit,
    posts_from_listing,
)


class TestMapping(unittest.TestCase):
    """Test cases for the mapping functions."""

    def setUp(self):
        self.data = {
            "id": "10abcd",
            "created_utc": 1676521323.0,  # 2023-02-16 04:22:03 UTC
            "title": "[GPU] ASUS TUF RTX 4070 Ti $799.99",
            "downs": 0,
            "ups": 12,
            "link_flair_text": "GPU",
            "url": "https://www.example.com/asus-4070-ti",
            "selftext": "",
        }

    def test_post_from_reddit(self):
        """Test converting one listing child to a Post."""
        post = post_from_reddit(self.data)

        self.assertEqual(post.id, "10abcd")
        self.assertEqual(post.created_utc, "2023-02-16T04:22:03Z")
        self.assertEqual(post.title, "[GPU] ASUS TUF RTX 4070 Ti $799.99")
        self.assertEqual(post.downs, 0)
        self.assertEqual(post.ups, 12)
        self.assertEqual(post.link_flair_text, "GPU")
        self.assertEqual(post.url, "https://www.example.com/asus-4070-ti")

    def test_post_without_optional_fields(self):
        """Test that absent or empty optional fields become None."""
        data = {"id": "x", "created_utc": 0, "title": "t", "link_flair_text": ""}
        post = post_from_reddit(data)

        self.assertIsNone(post.downs)
        self.assertIsNone(post.ups)
        self.assertIsNone(post.link_flair_text)
        self.assertIsNone(post.url)
        self.assertEqual(post.created_utc, "1970-01-01T00:00:00Z")

    def test_missing_required_field(self):
        """Test that a payload without a title is rejected."""
        del self.data["title"]
        with self.assertRaises(KeyError):
            post_from_reddit(self.data)

    def test_format_created_utc_passes_strings_through(self):
        self.assertEqual(format_created_utc("2023-01-01T00:00:00Z"), "2023-01-01T00:00:00Z")

    def test_posts_from_listing(self):
        """Test converting a whole listing, skipping broken children."""
        listing = {
            "kind": "Listing",
            "data": {
                "children": [
                    {"kind": "t3", "data": self.data},
                    {"kind": "t3", "data": {"id": "broken"}},
                    {"kind": "t3", "data": dict(self.data, id="second", ups="3")},
                ]
            },
        }

        with self.assertLogs("sales_watcher.models.mapping", level="WARNING") as logs:
            posts = posts_from_listing(listing)

        self.assertEqual([p.id for p in posts], ["10abcd", "second"])
        self.assertEqual(posts[1].ups, 3)
        self.assertIn("broken", logs.output[0])

    def test_empty_listing(self):
        self.assertEqual(posts_from_listing({}), [])

    def test_comments_url(self):
        self.assertEqual(
            comments_url("10abcd"),
            "https://www.reddit.com/r/buildapcsales/comments/10abcd",
        )


if __name__ == "__main__":
    unittest.main()
