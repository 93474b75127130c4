"""
Category Models

The taxonomy is two levels deep: a category may own embedded subcategories
and may be the parent of other categories. Four reserved rows are created
with fixed identifiers:

- Two containers ("No Parent (Income)" / "No Parent (Expense)") that every
  top-level category is parented to. "Top level" therefore always means
  "parent is a container", never "parent is missing".
- Two sentinels ("No Category (Income)" / "No Category (Expense)") that
  transactions fall back to when their category no longer exists.

DESIGN DECISION: A subcategory stores its own type. It is set from the
parent when the subcategory is created, but moving categories across types
does not rewrite it. Sign resolution uses the subcategory's own type.
"""

from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field


class CategoryType(str, Enum):
    """Income or expense classification."""
    INCOME = "income"
    EXPENSE = "expense"

    @property
    def sign(self) -> int:
        return 1 if self is CategoryType.INCOME else -1

    @classmethod
    def for_amount(cls, amount: float) -> "CategoryType":
        """Type implied by a signed amount (zero counts as income)."""
        return cls.INCOME if amount >= 0 else cls.EXPENSE


# Reserved identifiers. The sentinel ids match the ones already present in
# stored transactions, so they must never change.
NO_CATEGORY_INCOME_ID = UUID("00000000-0000-0000-0000-000000000001")
NO_CATEGORY_EXPENSE_ID = UUID("00000000-0000-0000-0000-000000000002")
NO_PARENT_INCOME_ID = UUID("00000000-0000-0000-0000-000000000003")
NO_PARENT_EXPENSE_ID = UUID("00000000-0000-0000-0000-000000000004")

NO_CATEGORY_INCOME_NAME = "No Category (Income)"
NO_CATEGORY_EXPENSE_NAME = "No Category (Expense)"
NO_PARENT_INCOME_NAME = "No Parent (Income)"
NO_PARENT_EXPENSE_NAME = "No Parent (Expense)"

SENTINEL_IDS = frozenset({NO_CATEGORY_INCOME_ID, NO_CATEGORY_EXPENSE_ID})
CONTAINER_IDS = frozenset({NO_PARENT_INCOME_ID, NO_PARENT_EXPENSE_ID})
RESERVED_IDS = SENTINEL_IDS | CONTAINER_IDS


class Subcategory(BaseModel):
    """A subcategory embedded in its owning category."""
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    name: str = Field(..., min_length=1, max_length=100)
    emoji: str = Field(default="")
    type: CategoryType = Field(
        default=CategoryType.EXPENSE,
        description="Stored independently of the parent's type"
    )


class Category(BaseModel):
    """
    A category row.

    `parent_id` points at a container for top-level categories, at another
    category for child categories, and is None only for the containers.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    name: str = Field(..., min_length=1, max_length=100)
    emoji: str = Field(default="")
    type: CategoryType = CategoryType.EXPENSE
    parent_id: Optional[UUID] = None
    subcategories: list[Subcategory] = Field(default_factory=list)
    is_built_in: bool = False
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    @property
    def is_container(self) -> bool:
        return self.id in CONTAINER_IDS

    @property
    def is_sentinel(self) -> bool:
        return self.id in SENTINEL_IDS

    @property
    def is_reserved(self) -> bool:
        return self.id in RESERVED_IDS

    @property
    def is_top_level(self) -> bool:
        """Parented directly to a container."""
        return self.parent_id in CONTAINER_IDS


def reserved_categories() -> list[Category]:
    """Fresh copies of the four reserved rows."""
    return [
        Category(
            id=NO_PARENT_INCOME_ID,
            name=NO_PARENT_INCOME_NAME,
            emoji="📥",
            type=CategoryType.INCOME,
            is_built_in=True,
        ),
        Category(
            id=NO_PARENT_EXPENSE_ID,
            name=NO_PARENT_EXPENSE_NAME,
            emoji="📤",
            type=CategoryType.EXPENSE,
            is_built_in=True,
        ),
        Category(
            id=NO_CATEGORY_INCOME_ID,
            name=NO_CATEGORY_INCOME_NAME,
            emoji="❓",
            type=CategoryType.INCOME,
            parent_id=NO_PARENT_INCOME_ID,
            is_built_in=True,
        ),
        Category(
            id=NO_CATEGORY_EXPENSE_ID,
            name=NO_CATEGORY_EXPENSE_NAME,
            emoji="❓",
            type=CategoryType.EXPENSE,
            parent_id=NO_PARENT_EXPENSE_ID,
            is_built_in=True,
        ),
    ]


class CategoryLookup(BaseModel):
    """
    Result of a two-level lookup.

    Exactly one of `category` / `subcategory` is set when something was found.
    For a subcategory match, `parent` is the category that owns it.
    """

    category: Optional[Category] = None
    subcategory: Optional[Subcategory] = None
    parent: Optional[Category] = None

    @property
    def found(self) -> bool:
        return self.category is not None or self.subcategory is not None

    @property
    def is_subcategory(self) -> bool:
        return self.subcategory is not None

    @property
    def id(self) -> Optional[UUID]:
        if self.subcategory is not None:
            return self.subcategory.id
        return self.category.id if self.category is not None else None

    @property
    def name(self) -> Optional[str]:
        if self.subcategory is not None:
            return self.subcategory.name
        return self.category.name if self.category is not None else None

    @property
    def emoji(self) -> Optional[str]:
        if self.subcategory is not None:
            return self.subcategory.emoji
        return self.category.emoji if self.category is not None else None

    @property
    def type(self) -> Optional[CategoryType]:
        """Effective type for sign resolution; a subcategory's own type wins."""
        if self.subcategory is not None:
            return self.subcategory.type
        return self.category.type if self.category is not None else None


class CategoryGroup(BaseModel):
    """A parent and its children, as shown in grouped pickers."""

    parent: Category
    children: list[Category] = Field(default_factory=list)
    subcategories: list[Subcategory] = Field(default_factory=list)
