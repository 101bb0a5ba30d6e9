"""
Unit tests for field extractors and their parsing helpers
"""

import pytest
from datetime import datetime
from ingestion.extractors.base import FieldExtractor
from ingestion.extractors.zomato_extractor import ZomatoExtractor
from ingestion.extractors.github_extractor import GithubExtractor
from ingestion.extractors.netflix_extractor import NetflixExtractor


class TestParsingHelpers:
    """Tolerant parse-or-null helpers"""

    @pytest.mark.parametrize("raw,expected", [
        ("₹450", 450.0),
        ("₹ 1,250.00", 1250.0),
        (320, 320.0),
        ("free", None),
        (None, None),
        (True, None),
    ])
    def test_parse_price(self, raw, expected):
        assert FieldExtractor.parse_price(raw) == expected

    def test_parse_datetime_zomato_format(self):
        """Test "Month DD, YYYY at HH:MM AM" timestamps"""
        parsed = FieldExtractor.parse_datetime("December 01, 2025 at 08:15 PM")
        assert parsed == datetime(2025, 12, 1, 20, 15)

    def test_parse_datetime_normalizes_to_naive_utc(self):
        parsed = FieldExtractor.parse_datetime("2025-12-06T23:45:00+05:30")
        assert parsed == datetime(2025, 12, 6, 18, 15)
        assert parsed.tzinfo is None

    def test_parse_datetime_epoch_millis(self):
        parsed = FieldExtractor.parse_datetime(1735689600000)
        assert parsed == datetime(2025, 1, 1, 0, 0)

    def test_parse_datetime_unparseable(self):
        assert FieldExtractor.parse_datetime("last tuesday") is None
        assert FieldExtractor.parse_datetime("") is None

    @pytest.mark.parametrize("raw,expected", [
        ("1h 30m", 90),
        ("45m", 45),
        ("1:30", 90),
        ("1:30:00", 90),
        (52, 52),
        ("n/a", None),
    ])
    def test_parse_duration_minutes(self, raw, expected):
        assert FieldExtractor.parse_duration_minutes(raw) == expected

    def test_split_dishes(self):
        assert FieldExtractor.split_dishes("2 x Chicken Biryani, 1 x Coke") == ["Chicken Biryani", "Coke"]
        assert FieldExtractor.split_dishes("Masala Dosa") == ["Masala Dosa"]
        assert FieldExtractor.split_dishes(None) == []

    def test_parse_int_rejects_non_numeric(self):
        assert FieldExtractor.parse_int("12") == 12
        assert FieldExtractor.parse_int("twelve") is None
        assert FieldExtractor.parse_int(float("nan")) is None


class TestZomatoExtractor:
    """Test Zomato order-history extraction"""

    def test_extract_orders(self, zomato_orders_payload):
        normalized = ZomatoExtractor().extract(zomato_orders_payload)

        assert len(normalized.orders) == 4
        first = normalized.orders[0]
        assert first.restaurant == "Domino's Pizza"
        assert first.price == 450.0
        assert first.dishes == ["Farmhouse Pizza", "Coke"]
        assert first.ordered_at == datetime(2025, 12, 1, 20, 15)

    def test_item_objects_become_dish_list(self, zomato_orders_payload):
        normalized = ZomatoExtractor().extract(zomato_orders_payload)

        third = normalized.orders[2]
        assert third.restaurant == "Local Dhaba"
        assert third.items == "1 x Paneer Tikka, 2 x Butter Naan"
        assert third.dishes == ["Paneer Tikka", "Butter Naan"]
        assert third.price == 1250.0

    def test_declared_totals(self, zomato_summary_payload):
        normalized = ZomatoExtractor().extract(zomato_summary_payload)

        assert normalized.orders == []
        assert normalized.declared_total_orders == 42
        assert normalized.declared_total_gmv == 1530.5
        assert normalized.city == "Mumbai"

    def test_orders_under_alternate_keys(self):
        payload = {"data": {"orders": [{"restaurant": "KFC", "price": "199"}]}}
        normalized = ZomatoExtractor().extract(payload)

        assert len(normalized.orders) == 1
        assert normalized.orders[0].price == 199.0

    def test_bad_fields_degrade_to_none(self):
        """A broken field never aborts the record"""
        payload = {
            "orders": [
                {"restaurant": "KFC", "price": "unknown", "timestamp": "yesterday"},
                "not-an-order",
            ],
            "pincode": "4000",
        }
        normalized = ZomatoExtractor().extract(payload)

        assert len(normalized.orders) == 1
        assert normalized.orders[0].price is None
        assert normalized.orders[0].ordered_at is None
        assert normalized.pincode is None

    def test_pii_in_free_text_is_scrubbed(self):
        payload = {
            "orders": [{
                "restaurant": "Cafe 9876543210",
                "items": "1 x Thali, note: mail me at someone@example.com",
            }]
        }
        order = ZomatoExtractor().extract(payload).orders[0]

        assert "9876543210" not in order.restaurant
        assert "someone@example.com" not in order.items

    def test_empty_payload(self):
        normalized = ZomatoExtractor().extract({})

        assert normalized.orders == []
        assert normalized.declared_total_orders is None
        assert normalized.declared_total_gmv is None


class TestGithubExtractor:
    """Test GitHub profile extraction"""

    def test_extract_profile(self, github_payload):
        normalized = GithubExtractor().extract(github_payload)

        assert normalized.has_username is True
        assert normalized.followers == 250
        assert normalized.contributions == 820
        assert normalized.created_at == datetime(2018, 3, 1)

    def test_username_is_not_kept(self, github_payload):
        normalized = GithubExtractor().extract(github_payload)
        assert "octocat" not in normalized.model_dump_json()

    def test_alternate_keys(self):
        normalized = GithubExtractor().extract({
            "login": "dev",
            "followerCount": "12",
            "contributionsLastYear": 30,
            "createdAt": "2020-01-01",
        })

        assert normalized.followers == 12
        assert normalized.contributions == 30
        assert normalized.created_at == datetime(2020, 1, 1)


class TestNetflixExtractor:
    """Test Netflix watch-history extraction"""

    def test_extract_history(self, netflix_payload):
        normalized = NetflixExtractor().extract(netflix_payload)

        assert len(normalized.titles) == 4
        first = normalized.titles[0]
        assert first.genres == ["sci-fi", "horror"]
        assert first.duration_minutes == 70
        assert first.watched_at == datetime(2025, 11, 1, 20, 0)

    def test_ratings_and_membership(self, netflix_payload):
        normalized = NetflixExtractor().extract(netflix_payload)

        assert normalized.ratings == [5.0, 4.0]
        assert normalized.ratings_count == 2
        assert normalized.membership.plan == "Premium"
        assert normalized.membership.member_since == datetime(2019, 5, 1)

    def test_titles_shows_movies_concatenated(self):
        normalized = NetflixExtractor().extract({
            "titles": [{"title": "A"}],
            "shows": [{"title": "B"}],
            "movies": [{"title": "C"}],
        })

        assert [t.title for t in normalized.titles] == ["A", "B", "C"]

    def test_no_membership(self):
        normalized = NetflixExtractor().extract({"watchHistory": [{"title": "A"}]})
        assert normalized.membership is None
