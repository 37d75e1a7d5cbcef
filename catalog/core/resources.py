"""Per-resource rules the lifecycle manager is parameterized by.

A ResourceDefinition knows a resource's slots, who may write it, its
natural key, how to find its parents, where its blob subtree lives and how
to merge a sparse patch. The lifecycle manager owns the ordering; the
definitions own the resource-specific facts.

Tests:
    - tests/unit/test_lifecycle.py
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy import or_, select

from catalog.auth.context import AuthContext
from catalog.core.document_store import DocumentStore
from catalog.core.errors import ConflictError, NotFoundError, ValidationError
from catalog.core.reviews import ReviewService
from catalog.models import Book, Category, Review, generate_slug
from catalog.models_auth import SystemRole, User
from catalog.storage.assets import AssetDescriptor, AssetKind
from catalog.storage.service import StorageService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SlotSpec:
    """A named asset role on a resource.

    Attributes:
        name: Slot name, also the trailing folder segment.
        required: Must be staged on create.
        multiple: Holds a sequence of descriptors (gallery).
        kind: Blob kind, passed to the store on delete.
    """

    name: str
    required: bool = True
    multiple: bool = False
    kind: AssetKind = AssetKind.IMAGE


@dataclass
class Parents:
    """Parent records resolved for a create."""

    category: Category | None = None
    author: User | None = None


@dataclass
class FieldChanges:
    """Column values a sparse patch resolves to, not yet applied."""

    values: dict[str, Any] = field(default_factory=dict)

    def apply(self, doc: Any) -> None:
        for name, value in self.values.items():
            setattr(doc, name, value)

    def __bool__(self) -> bool:
        return bool(self.values)


class ResourceDefinition(ABC):
    """Base for the category, book and user definitions."""

    model: type
    label: str
    slots: tuple[SlotSpec, ...] = ()
    write_roles: frozenset[SystemRole] = frozenset()
    delete_roles: frozenset[SystemRole] | None = None
    delete_requires_owner: bool = True
    required_fields: tuple[str, ...] = ()
    patchable_fields: tuple[str, ...] = ()

    def slot(self, name: str) -> SlotSpec | None:
        for spec in self.slots:
            if spec.name == name:
                return spec
        return None

    @property
    def required_slots(self) -> list[str]:
        return [s.name for s in self.slots if s.required]

    def check_fields(self, fields: dict[str, Any]) -> None:
        missing = [
            name for name in self.required_fields
            if fields.get(name) is None or (isinstance(fields[name], str) and not fields[name].strip())
        ]
        if missing:
            raise ValidationError(f"{self.label} is missing required fields: {', '.join(missing)}")

    def check_slot_names(self, slots: list[str]) -> None:
        unknown = [s for s in slots if self.slot(s) is None]
        if unknown:
            raise ValidationError(f"Unknown asset slots for {self.label}: {', '.join(unknown)}")

    @property
    def roles_for_delete(self) -> frozenset[SystemRole]:
        return self.write_roles if self.delete_roles is None else self.delete_roles

    def owner_of(self, doc: Any) -> str | None:
        """User id the ownership rule compares the caller against."""
        return doc.added_by

    def is_live(self, doc: Any) -> bool:
        """False for records that exist but must be treated as missing."""
        return True

    @abstractmethod
    async def check_unique(
        self, store: DocumentStore, fields: dict[str, Any], parent_refs: dict[str, str]
    ) -> None:
        """Raise ConflictError when the natural key is taken."""

    async def resolve_parents(
        self, store: DocumentStore, parent_refs: dict[str, str]
    ) -> Parents:
        return Parents()

    @abstractmethod
    def parent_prefix(self, storage: StorageService, parents: Parents) -> str:
        pass

    @abstractmethod
    def stored_parent_prefix(self, storage: StorageService, doc: Any) -> str:
        """Parent prefix re-derived from a persisted record."""

    @abstractmethod
    def build(
        self,
        fields: dict[str, Any],
        parents: Parents,
        parent_refs: dict[str, str],
        folder_id: str,
        assets: dict[str, list[AssetDescriptor]],
        auth: AuthContext,
    ) -> Any:
        """New, unsaved record holding `fields` and the uploaded `assets`."""

    async def merge_fields(
        self, store: DocumentStore, doc: Any, patch: dict[str, Any]
    ) -> FieldChanges:
        """Resolve a sparse patch. Absent or None fields are no-ops."""
        changes = FieldChanges()
        for name in self.patchable_fields:
            value = patch.get(name)
            if value is None:
                continue
            if isinstance(value, str) and not value.strip():
                raise ValidationError(f"{name} must not be empty")
            changes.values[name] = value
        return changes

    def get_slot(self, doc: Any, name: str) -> list[AssetDescriptor]:
        """Descriptors currently held by a slot."""
        spec = self.slot(name)
        value = getattr(doc, name)
        if spec.multiple:
            return [AssetDescriptor.model_validate(v) for v in value or []]
        descriptor = AssetDescriptor.from_json(value)
        return [descriptor] if descriptor else []

    def set_slot(self, doc: Any, name: str, descriptors: list[AssetDescriptor]) -> None:
        spec = self.slot(name)
        if spec.multiple:
            setattr(doc, name, [d.model_dump() for d in descriptors])
        else:
            setattr(doc, name, descriptors[0].model_dump() if descriptors else None)

    def stored_assets(self, doc: Any) -> list[tuple[AssetDescriptor, AssetKind]]:
        return [
            (descriptor, spec.kind)
            for spec in self.slots
            for descriptor in self.get_slot(doc, spec.name)
        ]

    async def check_deletable(self, store: DocumentStore, doc: Any) -> None:
        """Raise before any blob is touched when `doc` must not be deleted."""

    async def remove_dependents(self, store: DocumentStore, doc: Any) -> None:
        """Delete records that cannot outlive `doc`."""


def _whole_number(name: str, value: Any, minimum: int, maximum: int | None = None) -> int:
    """Coerce a form value to int within bounds, or raise ValidationError."""
    if isinstance(value, bool):
        raise ValidationError(f"{name} must be a whole number")
    try:
        number = int(str(value).strip())
    except ValueError:
        raise ValidationError(f"{name} must be a whole number") from None
    if number < minimum or (maximum is not None and number > maximum):
        upper = f" and at most {maximum}" if maximum is not None else ""
        raise ValidationError(f"{name} must be at least {minimum}{upper}")
    return number


class CategoryDefinition(ResourceDefinition):
    """Category: one required image, unique name."""

    model = Category
    label = "Category"
    slots = (SlotSpec("image"),)
    write_roles = frozenset({SystemRole.ADMIN, SystemRole.SUPER_ADMIN})
    required_fields = ("name",)
    patchable_fields = ("name",)

    async def check_unique(self, store, fields, parent_refs):
        if await store.find_one(Category, name=fields["name"]):
            raise ConflictError(f"Category {fields['name']!r} already exists")

    def parent_prefix(self, storage, parents):
        return storage.category_parent_prefix()

    def stored_parent_prefix(self, storage, doc):
        return storage.category_parent_prefix()

    def build(self, fields, parents, parent_refs, folder_id, assets, auth):
        return Category(
            name=fields["name"],
            slug=generate_slug(fields["name"]),
            image=assets["image"][0].model_dump(),
            folder_id=folder_id,
            added_by=auth.caller_id,
        )

    async def merge_fields(self, store, doc, patch):
        changes = await super().merge_fields(store, doc, patch)
        name = changes.values.get("name")
        if name is not None:
            if name == doc.name:
                raise ValidationError("Please enter a different category name")
            if await store.find_one(Category, name=name):
                raise ConflictError(f"Category {name!r} already exists")
            changes.values["slug"] = generate_slug(name)
        return changes

    async def remove_dependents(self, store, doc):
        books = await store.find_many(select(Book.id).where(Book.category_id == doc.id))
        if books:
            await store.delete_where(Review, book_id=books)
        removed = await store.delete_where(Book, category_id=doc.id)
        if removed:
            logger.info(f"Removed {removed} books of category {doc.id}")


class BookDefinition(ResourceDefinition):
    """Book: required cover and document, optional gallery."""

    model = Book
    label = "Book"
    slots = (
        SlotSpec("cover"),
        SlotSpec("document", kind=AssetKind.RAW),
        SlotSpec("gallery", required=False, multiple=True),
    )
    write_roles = frozenset({SystemRole.AUTHOR, SystemRole.ADMIN, SystemRole.SUPER_ADMIN})
    required_fields = ("title", "description", "language", "release_date", "pages")
    patchable_fields = ("title", "description", "language", "release_date", "pages")

    def check_fields(self, fields):
        super().check_fields(fields)
        fields["pages"] = _whole_number("pages", fields["pages"], minimum=1)

    async def check_unique(self, store, fields, parent_refs):
        existing = await store.find_one(
            Book,
            title=fields["title"],
            category_id=parent_refs.get("category_id"),
            author_id=parent_refs.get("author_id"),
        )
        if existing:
            raise ConflictError(f"Book {fields['title']!r} already exists")

    async def resolve_parents(self, store, parent_refs):
        category_id = parent_refs.get("category_id")
        author_id = parent_refs.get("author_id")
        if not category_id or not author_id:
            raise ValidationError("category_id and author_id are required")

        category = await store.find_by_id(Category, category_id)
        if category is None:
            raise NotFoundError("Category not found")
        author = await store.find_by_id(User, author_id)
        if author is None:
            raise NotFoundError("Author not found")
        return Parents(category=category, author=author)

    def parent_prefix(self, storage, parents):
        return storage.book_parent_prefix(parents.category.folder_id)

    def stored_parent_prefix(self, storage, doc):
        return storage.book_parent_prefix(doc.category_folder_id)

    def build(self, fields, parents, parent_refs, folder_id, assets, auth):
        return Book(
            title=fields["title"],
            slug=generate_slug(fields["title"]),
            description=fields["description"],
            language=fields["language"],
            release_date=str(fields["release_date"]),
            pages=fields["pages"],
            folder_id=folder_id,
            category_folder_id=parents.category.folder_id,
            cover=assets["cover"][0].model_dump(),
            document=assets["document"][0].model_dump(),
            gallery=[d.model_dump() for d in assets.get("gallery", [])],
            category_id=parents.category.id,
            author_id=parents.author.id,
            added_by=auth.caller_id,
        )

    async def merge_fields(self, store, doc, patch):
        changes = await super().merge_fields(store, doc, patch)
        if "release_date" in changes.values:
            changes.values["release_date"] = str(changes.values["release_date"])
        if "pages" in changes.values:
            changes.values["pages"] = _whole_number("pages", changes.values["pages"], minimum=1)
        title = changes.values.get("title")
        if title is not None and title != doc.title:
            existing = await store.find_one(
                Book, title=title, category_id=doc.category_id, author_id=doc.author_id
            )
            if existing is not None and existing.id != doc.id:
                raise ConflictError(f"Book {title!r} already exists")
            changes.values["slug"] = generate_slug(title)
        return changes

    async def remove_dependents(self, store, doc):
        await store.delete_where(Review, book_id=doc.id)


MIN_AGE = 12
MAX_AGE = 100


class UserDefinition(ResourceDefinition):
    """User: optional profile image, unique email.

    The ownership rule compares against the user itself, so users edit their
    own profile and the super admin edits anyone. Hard delete is an admin
    action without the ownership rule and is refused while books or
    categories still reference the user.
    """

    model = User
    label = "User"
    slots = (SlotSpec("image", required=False),)
    write_roles = frozenset(SystemRole)
    delete_roles = frozenset({SystemRole.ADMIN, SystemRole.SUPER_ADMIN})
    delete_requires_owner = False
    required_fields = ("username", "email")
    patchable_fields = ("username", "full_name", "email", "age", "description")

    def owner_of(self, doc):
        return doc.id

    def is_live(self, doc):
        return not doc.is_deleted

    def check_fields(self, fields):
        super().check_fields(fields)
        if fields.get("age") is not None:
            fields["age"] = _whole_number("age", fields["age"], MIN_AGE, MAX_AGE)

    async def check_unique(self, store, fields, parent_refs):
        if await store.find_one(User, email=fields["email"]):
            raise ConflictError("Email already exists")

    def parent_prefix(self, storage, parents):
        return storage.user_parent_prefix()

    def stored_parent_prefix(self, storage, doc):
        return storage.user_parent_prefix()

    def build(self, fields, parents, parent_refs, folder_id, assets, auth):
        image = assets.get("image")
        return User(
            username=fields["username"],
            email=fields["email"],
            full_name=fields.get("full_name"),
            age=fields.get("age"),
            role=fields.get("role") or SystemRole.USER,
            description=fields.get("description"),
            image=image[0].model_dump() if image else None,
            folder_id=folder_id,
        )

    async def merge_fields(self, store, doc, patch):
        changes = await super().merge_fields(store, doc, patch)
        if "age" in changes.values:
            changes.values["age"] = _whole_number("age", changes.values["age"], MIN_AGE, MAX_AGE)
        email = changes.values.get("email")
        if email is not None:
            if email == doc.email:
                raise ConflictError("New email is the same as the old email")
            if await store.find_one(User, email=email):
                raise ConflictError("Email already exists")
        return changes

    async def check_deletable(self, store, doc):
        books = await store.find_many(
            select(Book.id)
            .where(or_(Book.author_id == doc.id, Book.added_by == doc.id, Book.updated_by == doc.id))
            .limit(1)
        )
        categories = await store.find_many(
            select(Category.id)
            .where(or_(Category.added_by == doc.id, Category.updated_by == doc.id))
            .limit(1)
        )
        if books or categories:
            raise ConflictError("User is still referenced by catalog content; soft delete instead")

    async def remove_dependents(self, store, doc):
        touched = await ReviewService(store).remove_user_reviews(doc.id)
        if touched:
            logger.info(f"Removed reviews of user {doc.id} on {len(touched)} books")


CATEGORY = CategoryDefinition()
BOOK = BookDefinition()
USER = UserDefinition()
