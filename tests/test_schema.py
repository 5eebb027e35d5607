"""
Tests for listing validation.
"""

import pytest
from jobfeed.schema import (
    validate_application,
    validate_category,
    validate_listing,
    validate_listing_strict,
    validate_profile,
)


class TestValidateListing:
    """Test basic validation function."""

    def test_valid_listing(self, valid_listing):
        """Valid listing should have no errors."""
        assert validate_listing(valid_listing) == []

    def test_missing_required_field(self):
        errors = validate_listing({"title": "Mow the lawn"})
        assert any("customer_id" in err for err in errors)

    def test_empty_title(self):
        errors = validate_listing({"customer_id": "c", "title": "   "})
        assert any("title" in err for err in errors)

    def test_title_length(self):
        too_short = validate_listing({"customer_id": "c", "title": "ab"})
        too_long = validate_listing({"customer_id": "c", "title": "A" * 250})
        assert any("length" in err for err in too_short)
        assert any("length" in err for err in too_long)

    def test_unknown_status(self, valid_listing):
        valid_listing["status"] = "archived"
        assert any("status" in err for err in validate_listing(valid_listing))

    def test_optional_string_type(self, valid_listing):
        valid_listing["city"] = 42
        assert any("city" in err for err in validate_listing(valid_listing))

    @pytest.mark.parametrize("field", ["fixed_price", "budget_min", "budget_max"])
    def test_negative_price(self, valid_listing, field):
        valid_listing[field] = -1
        assert any(field in err for err in validate_listing(valid_listing))

    def test_price_must_be_number(self, valid_listing):
        valid_listing["fixed_price"] = "120"
        assert any("fixed_price" in err for err in validate_listing(valid_listing))

    def test_budget_range_order(self, valid_listing):
        valid_listing.update(budget_min=100, budget_max=50)
        assert any("budget_min" in err for err in validate_listing(valid_listing))

    def test_coordinates_together(self, valid_listing):
        del valid_listing["longitude"]
        assert any("together" in err for err in validate_listing(valid_listing))

    @pytest.mark.parametrize("lat,lng", [(91, 0), (-91, 0), (0, 181), (0, -181)])
    def test_coordinate_ranges(self, valid_listing, lat, lng):
        valid_listing.update(latitude=lat, longitude=lng)
        assert validate_listing(valid_listing) != []

    def test_bad_timestamp(self, valid_listing):
        valid_listing["created_at"] = "last tuesday"
        assert any("created_at" in err for err in validate_listing(valid_listing))

    def test_photos_must_be_strings(self, valid_listing):
        valid_listing["photos"] = ["https://cdn.example.com/1.jpg", 7]
        assert any("photos" in err for err in validate_listing(valid_listing))


class TestValidateListingStrict:
    """Test strict validation function."""

    def test_valid_listing_strict(self, valid_listing):
        is_valid, errors = validate_listing_strict(valid_listing)
        assert is_valid
        assert errors == []

    def test_price_required(self, valid_listing):
        del valid_listing["fixed_price"]
        is_valid, errors = validate_listing_strict(valid_listing)
        assert not is_valid
        assert any("price" in err for err in errors)

    def test_budget_range_counts_as_price(self, valid_listing):
        del valid_listing["fixed_price"]
        valid_listing["budget_max"] = 200
        is_valid, _ = validate_listing_strict(valid_listing)
        assert is_valid


class TestValidateProfile:

    def test_valid_profile(self):
        assert validate_profile({"id": "c1", "full_name": "Casey", "user_type": "provider", "rating_count": 3}) == []

    def test_missing_full_name(self):
        assert any("full_name" in err for err in validate_profile({"id": "c1"}))

    @pytest.mark.parametrize(
        "field,value",
        [
            ("user_type", "admin"),
            ("id_verified", "yes"),
            ("rating_average", 7),
            ("rating_count", -1),
            ("created_at", "last week"),
        ],
    )
    def test_bad_field(self, field, value):
        errors = validate_profile({"full_name": "Casey", field: value})
        assert any(field in err for err in errors)


class TestValidateCategoryAndApplication:

    def test_category_requires_name(self):
        assert validate_category({"name": "Plumbing", "slug": "plumbing"}) == []
        assert any("name" in err for err in validate_category({"id": "cat-1"}))

    def test_application_requires_references(self):
        assert validate_application({"job_id": "j1", "provider_id": "p1"}) == []
        errors = validate_application({"job_id": "j1"})
        assert any("provider_id" in err for err in errors)
