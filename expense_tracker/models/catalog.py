"""
Category Catalog

The closed mapping from expense category to its allowed sub-categories.

DESIGN DECISION: Categories are a fixed lookup table rather than free text.
This keeps records consistently categorized and lets the wizard offer the
right sub-category list for whatever category was picked.
"""

from types import MappingProxyType
from typing import Mapping, Optional, Sequence


MISC_CATEGORY = "Misc (please describe)"

CATEGORIES: dict[str, list[str]] = {
    "Transportation": ["Gas", "Maintenance", "Parking", "Public Transit"],
    "Gifts": ["Birthday", "Holiday", "Special Occasion"],
    "Fun & Entertainment": ["Movies", "Games", "Events", "Hobbies"],
    "Personal Care": ["Haircut", "Skincare", "Healthcare"],
    "Food & Beverage": ["Groceries", "Restaurants", "Coffee", "Snacks"],
    "Rental Property": ["Maintenance", "Utilities", "Insurance"],
    "Home": ["Utilities", "Furniture", "Maintenance", "Supplies", "Cleaner"],
    "Yoshi": ["Food", "Vet", "Supplies"],
    MISC_CATEGORY: ["Other"],
}


class UnknownCategoryError(KeyError):
    """Requested category is not in the catalog."""

    def __init__(self, category: str):
        self.category = category
        super().__init__(f"Unknown category: {category!r}")


class CategoryCatalog:
    """
    Read-only lookup of categories and their sub-categories.

    Order is preserved exactly as given, since it drives the order
    options are presented in.
    """

    def __init__(
        self,
        categories: Optional[Mapping[str, Sequence[str]]] = None,
        misc_category: str = MISC_CATEGORY,
    ):
        source = CATEGORIES if categories is None else categories
        self._categories = MappingProxyType(
            {name: tuple(subs) for name, subs in source.items()}
        )
        self._misc_category = misc_category

    @property
    def misc_category(self) -> str:
        """The "miscellaneous" sentinel category."""
        return self._misc_category

    def list_categories(self) -> list[str]:
        return list(self._categories)

    def list_sub_categories(self, category: str) -> list[str]:
        """
        Get the ordered sub-categories for a category.

        Raises:
            UnknownCategoryError: If the category is not in the catalog
        """
        try:
            return list(self._categories[category])
        except KeyError:
            raise UnknownCategoryError(category) from None

    def has_category(self, category: str) -> bool:
        return category in self._categories

    def is_valid_sub_category(self, category: str, sub_category: str) -> bool:
        if not self.has_category(category):
            return False
        return sub_category in self._categories[category]

    def is_misc(self, category: str) -> bool:
        return category == self._misc_category


def get_default_catalog() -> CategoryCatalog:
    """Catalog built from the built-in category table."""
    return CategoryCatalog()
