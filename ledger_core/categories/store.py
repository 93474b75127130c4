"""
Category Store

Owns the two-level taxonomy and keeps it consistent under renames,
reparenting and deletion.

STRUCTURE:
- Every real top-level category is parented to the container of its type.
- A top-level category may own embedded subcategories and child categories.
- A child category owns nothing (depth never exceeds two).
- Names are unique case-insensitively across every row and subcategory.

DESIGN DECISION: Every mutation follows the same sequence:

    snapshot -> mutate -> save_categories -> publish -> return

If persisting fails, or a subscriber reports a persistence failure while
reacting, the snapshot is restored and the caller gets an IO_ERROR result.
Refused edits are returned as OperationResult failures, never raised.
"""

from datetime import datetime
from typing import Callable, Optional, Union
from uuid import UUID

import structlog

from ledger_core.categories.defaults import default_categories
from ledger_core.errors import (
    CategoryNotFoundError,
    DuplicateNameError,
    HasChildrenError,
    InvalidOperationError,
    LedgerError,
    PersistenceError,
    ProtectedCategoryError,
)
from ledger_core.events.bus import ChangeBus
from ledger_core.models.category import (
    NO_CATEGORY_EXPENSE_ID,
    NO_CATEGORY_INCOME_ID,
    NO_PARENT_EXPENSE_ID,
    NO_PARENT_INCOME_ID,
    RESERVED_IDS,
    Category,
    CategoryGroup,
    CategoryLookup,
    CategoryType,
    Subcategory,
    reserved_categories,
)
from ledger_core.models.events import ChangeEvent, ChangeEventBuilder
from ledger_core.models.results import OperationResult
from ledger_core.services.storage.interface import LedgerStorageInterface, StorageError

CategoryRef = Union[str, UUID]


class CategoryStore:
    """
    Mutable category taxonomy with structural invariants.

    References (`ref`) accept a category name (case-insensitive) or an id.

    Usage:
        store = CategoryStore(storage, bus, seed_defaults=True)
        store.load()
        result = store.add_category("Coffee", "☕")
        if not result:
            print(result.failure, result.message)
    """

    def __init__(
        self,
        storage: LedgerStorageInterface,
        bus: ChangeBus,
        seed_defaults: bool = False,
    ):
        self._storage = storage
        self._bus = bus
        self._seed_defaults = seed_defaults
        self._logger = structlog.get_logger(__name__)

        self._categories: list[Category] = reserved_categories()
        if seed_defaults:
            self._categories.extend(default_categories())
        self._grouped_cache: Optional[list[CategoryGroup]] = None

    # =========================================================================
    # Loading
    # =========================================================================

    def load(self) -> OperationResult[int]:
        """
        Replace the in-memory taxonomy with the stored one.

        Missing reserved rows are re-created. An empty store is seeded with
        the built-in categories when seeding is enabled.
        """
        try:
            rows = self._storage.load_categories()
        except StorageError as e:
            self._logger.error("categories_load_failed", error=str(e))
            return OperationResult.fail(PersistenceError.failure, f"Could not load categories: {e}")

        seeded = not rows and self._seed_defaults
        if seeded:
            rows = default_categories()
        merged, repaired = self._with_reserved(rows)

        def replace() -> tuple[int, ChangeEvent]:
            self._categories = merged
            if seeded or repaired:
                self._storage.save_categories(self._categories)
            return len(merged), ChangeEventBuilder.categories_reloaded(len(merged))

        result = self._run("load", replace, persist=False)
        if result:
            self._logger.info("categories_loaded", count=result.value, seeded=seeded, repaired=repaired)
        return result

    def reset_to_defaults(self) -> OperationResult[int]:
        """Discard every user category and restore the built-in set."""

        def reset() -> tuple[int, ChangeEvent]:
            self._categories = reserved_categories() + default_categories()
            return len(self._categories), ChangeEventBuilder.categories_reloaded(len(self._categories))

        return self._run("reset_to_defaults", reset)

    @staticmethod
    def _with_reserved(rows: list[Category]) -> tuple[list[Category], bool]:
        """
        Put canonical reserved rows first and re-anchor rows whose parent
        is missing. Reports whether anything had to be repaired.
        """
        stored_ids = {row.id for row in rows}
        repaired = not RESERVED_IDS <= stored_ids
        known_ids = stored_ids | RESERVED_IDS
        user_rows = []
        for row in rows:
            if row.id in RESERVED_IDS:
                continue
            if row.parent_id is None or row.parent_id not in known_ids:
                row = row.model_copy(update={
                    "parent_id": NO_PARENT_INCOME_ID if row.type == CategoryType.INCOME else NO_PARENT_EXPENSE_ID,
                })
                repaired = True
            user_rows.append(row)
        return reserved_categories() + user_rows, repaired

    # =========================================================================
    # Category CRUD
    # =========================================================================

    def add_category(
        self,
        name: str,
        emoji: str = "",
        parent_category: Optional[CategoryRef] = None,
        target_type: Optional[CategoryType] = None,
    ) -> OperationResult[Category]:
        """
        Add a category.

        Without a parent it is attached to the container of `target_type`
        (expense by default). With a parent it inherits the parent's type.
        """

        def add() -> tuple[Category, ChangeEvent]:
            clean_name = self._require_name(name)
            self._ensure_unique(clean_name)
            if parent_category is None:
                parent = self._container(target_type or CategoryType.EXPENSE)
            else:
                parent = self._resolve_parent(parent_category)

            category = Category(
                name=clean_name,
                emoji=emoji,
                type=parent.type,
                parent_id=parent.id,
            )
            self._categories.append(category)
            self._logger.info(
                "category_added",
                category_id=str(category.id),
                name=category.name,
                type=category.type.value,
                parent=parent.name,
            )
            return category.model_copy(deep=True), ChangeEventBuilder.category_added(
                category.id, category.name, category.type.value
            )

        return self._run("add_category", add)

    def update_category(
        self,
        original_name: CategoryRef,
        new_name: str,
        new_emoji: str,
        parent_category: Optional[CategoryRef] = None,
    ) -> OperationResult[Category]:
        """
        Rename, re-emoji and optionally reparent a category.

        `parent_category=None` keeps the current parent; a container name
        moves the category to the top level of that type. A subcategory
        reference is promoted to a full category, keeping its id.
        """

        def update() -> tuple[Category, ChangeEvent]:
            lookup = self._lookup(original_name)
            if not lookup.found:
                raise CategoryNotFoundError(original_name)
            if lookup.is_subcategory:
                return self._promote(lookup, new_name, new_emoji, parent_category)

            category = lookup.category
            if category.is_reserved:
                raise ProtectedCategoryError(f"'{category.name}' is a reserved category and cannot be edited")

            clean_name = self._require_name(new_name)
            self._ensure_unique(clean_name, exclude_id=category.id)

            parent = self._by_id(category.parent_id)
            if parent_category is not None:
                requested = self._resolve_parent(parent_category)
                if requested.id == category.id:
                    raise InvalidOperationError(f"'{category.name}' cannot be its own parent")
                if requested.id != category.parent_id:
                    children = self._child_names(category)
                    if children:
                        raise HasChildrenError(category.name, children, "move")
                    parent = requested

            old_name, old_type = category.name, category.type
            category.name = clean_name
            category.emoji = new_emoji
            category.parent_id = parent.id
            category.type = parent.type
            category.updated_at = datetime.utcnow()

            self._logger.info(
                "category_updated",
                category_id=str(category.id),
                old_name=old_name,
                new_name=category.name,
                parent=parent.name,
                type_changed=old_type != category.type,
            )
            return category.model_copy(deep=True), ChangeEventBuilder.category_updated(
                category.id, old_name, category.name, old_type.value, category.type.value
            )

        return self._run("update_category", update)

    def _promote(
        self,
        lookup: CategoryLookup,
        new_name: str,
        new_emoji: str,
        parent_category: Optional[CategoryRef],
    ) -> tuple[Category, ChangeEvent]:
        """Turn a subcategory into a category with the same id."""
        subcategory, owner = lookup.subcategory, lookup.parent
        clean_name = self._require_name(new_name)
        self._ensure_unique(clean_name, exclude_id=subcategory.id)

        if parent_category is None:
            parent = self._container(subcategory.type)
        else:
            parent = self._resolve_parent(parent_category)

        owner.subcategories = [s for s in owner.subcategories if s.id != subcategory.id]
        owner.updated_at = datetime.utcnow()
        category = Category(
            id=subcategory.id,
            name=clean_name,
            emoji=new_emoji,
            type=parent.type,
            parent_id=parent.id,
        )
        self._categories.append(category)

        self._logger.info(
            "subcategory_promoted",
            category_id=str(category.id),
            old_name=subcategory.name,
            new_name=category.name,
            from_parent=owner.name,
            parent=parent.name,
        )
        return category.model_copy(deep=True), ChangeEventBuilder.category_updated(
            category.id,
            subcategory.name,
            category.name,
            subcategory.type.value,
            category.type.value,
            promoted_from_subcategory=True,
        )

    def delete_category(self, name: CategoryRef) -> OperationResult[Category]:
        """
        Delete a category that owns no children.

        Transactions still pointing at it resolve to the sentinel matching
        their own sign from now on. A subcategory reference deletes that
        subcategory.
        """
        lookup = self._lookup(name)
        if lookup.is_subcategory:
            return self.delete_subcategory(name)

        def delete() -> tuple[Category, ChangeEvent]:
            if not lookup.found:
                raise CategoryNotFoundError(name)
            category = lookup.category
            if category.is_reserved:
                raise ProtectedCategoryError(f"'{category.name}' is a reserved category and cannot be deleted")
            children = self._child_names(category)
            if children:
                raise HasChildrenError(category.name, children, "delete")

            self._categories = [row for row in self._categories if row.id != category.id]
            self._logger.info(
                "category_deleted",
                category_id=str(category.id),
                name=category.name,
                type=category.type.value,
            )
            return category.model_copy(deep=True), ChangeEventBuilder.category_deleted(
                category.id, category.name, category.type.value
            )

        return self._run("delete_category", delete)

    # =========================================================================
    # Subcategory CRUD
    # =========================================================================

    def add_subcategory(
        self,
        parent_category: CategoryRef,
        name: str,
        emoji: str = "",
        subcategory_type: Optional[CategoryType] = None,
    ) -> OperationResult[Subcategory]:
        """Embed a subcategory in a top-level category (type defaults to the parent's)."""

        def add() -> tuple[Subcategory, ChangeEvent]:
            parent = self._by_ref(parent_category)
            if parent is None:
                raise CategoryNotFoundError(parent_category)
            if parent.is_reserved:
                raise ProtectedCategoryError(f"'{parent.name}' is a reserved category and cannot own subcategories")
            if not parent.is_top_level:
                raise InvalidOperationError(
                    f"'{parent.name}' is already a child category; categories are at most two levels deep"
                )
            clean_name = self._require_name(name)
            self._ensure_unique(clean_name)

            subcategory = Subcategory(
                name=clean_name,
                emoji=emoji,
                type=subcategory_type or parent.type,
            )
            parent.subcategories.append(subcategory)
            parent.updated_at = datetime.utcnow()
            self._logger.info(
                "subcategory_added",
                subcategory_id=str(subcategory.id),
                name=subcategory.name,
                parent=parent.name,
                type=subcategory.type.value,
            )
            return subcategory.model_copy(), ChangeEventBuilder.subcategory_added(
                subcategory.id, subcategory.name, parent.name
            )

        return self._run("add_subcategory", add)

    def update_subcategory(
        self,
        original_name: CategoryRef,
        new_name: str,
        new_emoji: str,
    ) -> OperationResult[Subcategory]:
        def update() -> tuple[Subcategory, ChangeEvent]:
            lookup = self._lookup(original_name)
            if not lookup.is_subcategory:
                raise CategoryNotFoundError(original_name)
            subcategory = lookup.subcategory
            clean_name = self._require_name(new_name)
            self._ensure_unique(clean_name, exclude_id=subcategory.id)

            old_name = subcategory.name
            subcategory.name = clean_name
            subcategory.emoji = new_emoji
            lookup.parent.updated_at = datetime.utcnow()
            self._logger.info(
                "subcategory_updated",
                subcategory_id=str(subcategory.id),
                old_name=old_name,
                new_name=subcategory.name,
            )
            return subcategory.model_copy(), ChangeEventBuilder.subcategory_updated(
                subcategory.id, old_name, subcategory.name
            )

        return self._run("update_subcategory", update)

    def delete_subcategory(self, name: CategoryRef) -> OperationResult[Subcategory]:
        def delete() -> tuple[Subcategory, ChangeEvent]:
            lookup = self._lookup(name)
            if not lookup.is_subcategory:
                raise CategoryNotFoundError(name)
            subcategory, owner = lookup.subcategory, lookup.parent
            owner.subcategories = [s for s in owner.subcategories if s.id != subcategory.id]
            owner.updated_at = datetime.utcnow()
            self._logger.info(
                "subcategory_deleted",
                subcategory_id=str(subcategory.id),
                name=subcategory.name,
                parent=owner.name,
            )
            return subcategory.model_copy(), ChangeEventBuilder.subcategory_deleted(
                subcategory.id, subcategory.name, owner.name, subcategory.type.value
            )

        return self._run("delete_subcategory", delete)

    # =========================================================================
    # Lookup
    # =========================================================================

    def find_category(self, ref: CategoryRef) -> Optional[Category]:
        """Find a category row (not a subcategory) by name or id."""
        row = self._by_ref(ref)
        return row.model_copy(deep=True) if row is not None else None

    def find_category_or_subcategory(self, ref: CategoryRef) -> CategoryLookup:
        """Search both levels; a subcategory match reports its owning category."""
        lookup = self._lookup(ref)
        return CategoryLookup(
            category=lookup.category.model_copy(deep=True) if lookup.category else None,
            subcategory=lookup.subcategory.model_copy() if lookup.subcategory else None,
            parent=lookup.parent.model_copy(deep=True) if lookup.parent else None,
        )

    @property
    def categories(self) -> list[Category]:
        return [row.model_copy(deep=True) for row in self._categories]

    def user_categories(self, category_type: Optional[CategoryType] = None) -> list[Category]:
        """All non-reserved rows, optionally of one type."""
        return [
            row.model_copy(deep=True)
            for row in self._categories
            if not row.is_reserved and (category_type is None or row.type == category_type)
        ]

    def top_level(self, category_type: CategoryType) -> list[Category]:
        container_id = self._container(category_type).id
        return [
            row.model_copy(deep=True)
            for row in self._categories
            if row.parent_id == container_id and not row.is_reserved
        ]

    def children_of(self, ref: CategoryRef) -> list[Category]:
        """Categories whose parent is `ref` (not embedded subcategories)."""
        parent = self._by_ref(ref)
        if parent is None:
            return []
        return [row.model_copy(deep=True) for row in self._categories if row.parent_id == parent.id]

    def category_and_descendant_ids(self, category_id: UUID) -> set[UUID]:
        """
        The id itself plus every subcategory and child category below it.

        Used by budget matching, so a budget on "Food" also counts spending
        booked to "Groceries".
        """
        ids = {category_id}
        row = self._by_id(category_id)
        if row is None:
            return ids
        ids.update(sub.id for sub in row.subcategories)
        for child in self._categories:
            if child.parent_id == row.id:
                ids.add(child.id)
                ids.update(sub.id for sub in child.subcategories)
        return ids

    def sentinel_for(self, category_type: CategoryType) -> Category:
        """The 'No Category' row transactions of this type fall back to."""
        sentinel_id = NO_CATEGORY_INCOME_ID if category_type == CategoryType.INCOME else NO_CATEGORY_EXPENSE_ID
        return self._by_id(sentinel_id).model_copy(deep=True)

    def container_for(self, category_type: CategoryType) -> Category:
        return self._container(category_type).model_copy(deep=True)

    @staticmethod
    def is_reserved(category_id: UUID) -> bool:
        return category_id in RESERVED_IDS

    def grouped_categories(self, search_text: str = "") -> list[CategoryGroup]:
        """
        Top-level categories with their children and subcategories.

        A group whose parent matches `search_text` is returned whole;
        otherwise only its matching members are kept. The unfiltered
        grouping is cached and dropped on every mutation.
        """
        if self._grouped_cache is None:
            self._grouped_cache = self._build_groups()

        needle = search_text.strip().lower()
        if not needle:
            return [group.model_copy(deep=True) for group in self._grouped_cache]

        filtered = []
        for group in self._grouped_cache:
            if needle in group.parent.name.lower():
                filtered.append(group.model_copy(deep=True))
                continue
            children = [c for c in group.children if needle in c.name.lower()]
            subcategories = [s for s in group.subcategories if needle in s.name.lower()]
            if children or subcategories:
                filtered.append(CategoryGroup(
                    parent=group.parent.model_copy(deep=True),
                    children=[c.model_copy(deep=True) for c in children],
                    subcategories=[s.model_copy() for s in subcategories],
                ))
        return filtered

    def _build_groups(self) -> list[CategoryGroup]:
        groups = []
        for row in self._categories:
            if row.is_reserved or not row.is_top_level:
                continue
            groups.append(CategoryGroup(
                parent=row.model_copy(deep=True),
                children=[c.model_copy(deep=True) for c in self._categories if c.parent_id == row.id],
                subcategories=[s.model_copy() for s in row.subcategories],
            ))
        self._logger.debug("category_groups_rebuilt", count=len(groups))
        return groups

    # =========================================================================
    # Internals
    # =========================================================================

    def _run(
        self,
        operation: str,
        mutate: Callable[[], tuple[object, ChangeEvent]],
        persist: bool = True,
    ) -> OperationResult:
        """
        Apply `mutate` atomically from the caller's point of view.

        `mutate` changes self._categories and returns (value, event).
        """
        snapshot = [row.model_copy(deep=True) for row in self._categories]
        saved = False
        try:
            value, event = mutate()
            if persist:
                self._storage.save_categories(self._categories)
                saved = True
            self._grouped_cache = None
            self._bus.publish(event)
        except StorageError as e:
            self._rollback(snapshot, saved, operation)
            self._logger.error("category_persist_failed", operation=operation, error=str(e))
            return PersistenceError(f"Could not save categories: {e}").to_result()
        except PersistenceError as e:
            self._rollback(snapshot, saved, operation)
            self._logger.error("category_dependent_failed", operation=operation, error=str(e))
            return e.to_result()
        except LedgerError as e:
            self._categories = snapshot
            self._grouped_cache = None
            self._logger.warning(
                "category_operation_refused",
                operation=operation,
                failure=e.failure.value,
                reason=str(e),
            )
            return e.to_result()
        return OperationResult.ok(value)

    def _rollback(self, snapshot: list[Category], saved: bool, operation: str) -> None:
        """Restore the snapshot, and the stored copy if it was already overwritten."""
        self._categories = snapshot
        self._grouped_cache = None
        if not saved:
            return
        try:
            self._storage.save_categories(self._categories)
        except StorageError as e:
            self._logger.error("category_rollback_persist_failed", operation=operation, error=str(e))
        # Dependents already saw the rolled-back event; have them resync
        self._bus.publish(ChangeEventBuilder.categories_reloaded(len(self._categories)))

    @staticmethod
    def _require_name(name: str) -> str:
        clean = (name or "").strip()
        if not clean:
            raise InvalidOperationError("Category name cannot be empty")
        return clean

    def _ensure_unique(self, name: str, exclude_id: Optional[UUID] = None) -> None:
        """Case-insensitive uniqueness across rows and all subcategories."""
        needle = name.lower()
        for row in self._categories:
            if row.id != exclude_id and row.name.lower() == needle:
                raise DuplicateNameError(name)
            for sub in row.subcategories:
                if sub.id != exclude_id and sub.name.lower() == needle:
                    raise DuplicateNameError(name)

    def _child_names(self, category: Category) -> list[str]:
        names = [sub.name for sub in category.subcategories]
        names.extend(row.name for row in self._categories if row.parent_id == category.id)
        return names

    def _resolve_parent(self, ref: CategoryRef) -> Category:
        """
        Validate a requested parent.

        Containers mean "top level"; sentinels and child categories cannot
        be parents.
        """
        parent = self._by_ref(ref)
        if parent is None:
            raise CategoryNotFoundError(ref)
        if parent.is_container:
            return parent
        if parent.is_sentinel:
            raise InvalidOperationError(f"'{parent.name}' cannot be used as a parent category")
        if not parent.is_top_level:
            raise InvalidOperationError(
                f"'{parent.name}' is already a child category; categories are at most two levels deep"
            )
        return parent

    def _container(self, category_type: CategoryType) -> Category:
        container_id = NO_PARENT_INCOME_ID if category_type == CategoryType.INCOME else NO_PARENT_EXPENSE_ID
        return self._by_id(container_id)

    def _by_id(self, category_id: Optional[UUID]) -> Optional[Category]:
        for row in self._categories:
            if row.id == category_id:
                return row
        return None

    def _by_ref(self, ref: CategoryRef) -> Optional[Category]:
        if isinstance(ref, UUID):
            return self._by_id(ref)
        needle = str(ref).strip().lower()
        for row in self._categories:
            if row.name.lower() == needle:
                return row
        try:
            return self._by_id(UUID(str(ref)))
        except ValueError:
            return None

    def _lookup(self, ref: CategoryRef) -> CategoryLookup:
        """Live (uncopied) two-level lookup."""
        row = self._by_ref(ref)
        if row is not None:
            return CategoryLookup.model_construct(category=row, subcategory=None, parent=None)

        ref_id: Optional[UUID] = ref if isinstance(ref, UUID) else None
        if ref_id is None:
            try:
                ref_id = UUID(str(ref))
            except ValueError:
                ref_id = None
        needle = str(ref).strip().lower()

        for owner in self._categories:
            for sub in owner.subcategories:
                if sub.id == ref_id or sub.name.lower() == needle:
                    return CategoryLookup.model_construct(category=None, subcategory=sub, parent=owner)
        return CategoryLookup()

