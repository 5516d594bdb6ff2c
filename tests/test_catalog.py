"""Tests for the category catalog."""

import pytest

from expense_tracker.models.catalog import (
    CATEGORIES,
    MISC_CATEGORY,
    CategoryCatalog,
    UnknownCategoryError,
    get_default_catalog,
)


class TestCategoryCatalog:

    def test_categories_keep_declared_order(self):
        catalog = get_default_catalog()
        assert catalog.list_categories() == list(CATEGORIES)

    def test_sub_categories_keep_declared_order(self):
        catalog = get_default_catalog()
        assert catalog.list_sub_categories("Home") == [
            "Utilities", "Furniture", "Maintenance", "Supplies", "Cleaner",
        ]
        assert catalog.list_sub_categories("Yoshi") == ["Food", "Vet", "Supplies"]

    def test_unknown_category_raises(self):
        catalog = get_default_catalog()
        with pytest.raises(UnknownCategoryError) as exc_info:
            catalog.list_sub_categories("Boats")
        assert exc_info.value.category == "Boats"

    def test_sub_category_membership_is_per_category(self):
        catalog = get_default_catalog()
        assert catalog.is_valid_sub_category("Home", "Cleaner")
        assert not catalog.is_valid_sub_category("Yoshi", "Cleaner")
        assert not catalog.is_valid_sub_category("Boats", "Cleaner")

    def test_misc_category(self):
        catalog = get_default_catalog()
        assert catalog.misc_category == MISC_CATEGORY
        assert catalog.is_misc(MISC_CATEGORY)
        assert not catalog.is_misc("Home")
        assert catalog.has_category(MISC_CATEGORY)

    def test_catalog_is_not_affected_by_later_mutation(self):
        source = {"Travel": ["Flights"]}
        catalog = CategoryCatalog(source, misc_category="Travel")
        source["Travel"].append("Hotels")
        source["Food"] = ["Lunch"]
        assert catalog.list_sub_categories("Travel") == ["Flights"]
        assert not catalog.has_category("Food")

    def test_returned_lists_are_copies(self):
        catalog = get_default_catalog()
        catalog.list_sub_categories("Home").append("Boats")
        assert "Boats" not in catalog.list_sub_categories("Home")
