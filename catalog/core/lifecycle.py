"""Create, update and delete for composite resources.

A composite resource is a record in the document store plus a subtree of
blobs in the blob store. Each operation runs one ordered workflow:

    Create: Pending → Validated → FolderDerived → AssetsUploaded → DocumentPersisted
    Update: Pending → Loaded → Authorized → FieldsMerged → AssetsReplaced → Persisted
    Delete: Pending → Authorized → Loaded → BlobsBestEffortRemoved → DocumentRemoved

Checks that can fail (validation, not found, conflict, forbidden) all run
before the first blob upload or destructive call. Blobs uploaded by an
operation that later fails are deleted again, once, best effort. Updates
upload the replacement before retiring the old blob. Deletes remove the
document even when blob removal partially fails.

Examples:
    >>> manager = ResourceLifecycleManager(DocumentStore(session), storage)
    >>> result = await manager.create_resource(
    ...     BOOK, fields, {"category_id": cid, "author_id": aid}, auth, batch
    ... )
    >>> result.folder_prefix
    'catalog/Categories/a3f2/Books/9c1e'

Tests:
    - tests/unit/test_lifecycle.py
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, NoReturn

from catalog.auth.context import AuthContext
from catalog.core.document_store import DocumentStore
from catalog.core.errors import (
    CatalogError,
    ForbiddenError,
    NotFoundError,
    UpstreamFailure,
    ValidationError,
)
from catalog.core.resources import ResourceDefinition
from catalog.storage.assets import AssetDescriptor, AssetKind, UploadBatch
from catalog.storage.deleter import CleanupOutcome, CleanupReport, CleanupTarget
from catalog.storage.naming import derive, generate_folder_id, resource_prefix
from catalog.storage.service import StorageService
from catalog.storage.uploader import UploadResult

logger = logging.getLogger(__name__)


class LifecycleStep(str, Enum):
    """Workflow states reached by a lifecycle operation."""

    PENDING = "pending"
    VALIDATED = "validated"
    FOLDER_DERIVED = "folder_derived"
    ASSETS_UPLOADED = "assets_uploaded"
    DOCUMENT_PERSISTED = "document_persisted"
    LOADED = "loaded"
    AUTHORIZED = "authorized"
    FIELDS_MERGED = "fields_merged"
    ASSETS_REPLACED = "assets_replaced"
    PERSISTED = "persisted"
    BLOBS_REMOVED = "blobs_best_effort_removed"
    DOCUMENT_REMOVED = "document_removed"


@dataclass
class LifecycleResult:
    """Outcome of a successful create or update.

    Attributes:
        resource: The persisted record.
        folder_prefix: The resource's blob subtree.
        cleanup: Retirement of replaced blobs (update only). Failures here
            are logged orphans, not errors.
        steps: Workflow states reached, in order.
    """

    resource: Any
    folder_prefix: str
    cleanup: CleanupReport = field(default_factory=CleanupReport)
    steps: list[LifecycleStep] = field(default_factory=list)


@dataclass
class DeletionReport:
    """Outcome of a delete.

    Attributes:
        resource_id: Id of the removed record.
        folder_prefix: Blob subtree that was removed.
        cleanup: Per-item blob/folder outcomes.
        document_removed: Whether the document delete went through.
    """

    resource_id: str
    folder_prefix: str
    cleanup: CleanupReport = field(default_factory=CleanupReport)
    document_removed: bool = False
    steps: list[LifecycleStep] = field(default_factory=list)

    @property
    def blob_outcomes(self) -> list[CleanupOutcome]:
        return [o for o in self.cleanup.outcomes if o.target == CleanupTarget.BLOB]

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.resource_id,
            "folder": self.folder_prefix,
            "document_removed": self.document_removed,
            "cleanup": self.cleanup.to_dict(),
        }


class ResourceLifecycleManager:
    """Runs create/update/delete workflows for one request.

    Attributes:
        store: Document store for the request's session.
        storage: Blob store with its uploader and deleter.
    """

    def __init__(self, store: DocumentStore, storage: StorageService) -> None:
        self.store = store
        self.storage = storage

    def _check_role(
        self, definition: ResourceDefinition, auth: AuthContext, action: str, roles=None
    ) -> None:
        if not auth.has_role(definition.write_roles if roles is None else roles):
            raise ForbiddenError(f"You are not authorized to {action} a {definition.label.lower()}")

    async def _load(self, definition: ResourceDefinition, resource_id: str) -> Any:
        doc = await self.store.find_by_id(definition.model, resource_id)
        if doc is None or not definition.is_live(doc):
            raise NotFoundError(f"{definition.label} not found")
        return doc

    def _check_owner(
        self, definition: ResourceDefinition, doc: Any, auth: AuthContext, action: str
    ) -> None:
        if not auth.may_modify(definition.owner_of(doc)):
            raise ForbiddenError(f"You are not authorized to {action} this {definition.label.lower()}")

    def _check_batch(self, definition: ResourceDefinition, batch: UploadBatch) -> None:
        definition.check_slot_names(batch.slots)
        for name in batch.slots:
            spec = definition.slot(name)
            if not spec.multiple and len(batch.for_slot(name)) > 1:
                raise ValidationError(f"Only one file allowed for {name}")

    async def _compensate(self, uploaded: list[tuple[AssetDescriptor, AssetKind]], reason: str) -> None:
        if not uploaded:
            return
        logger.warning(f"Compensating {len(uploaded)} uploaded blobs after {reason}")
        report = await self.storage.deleter.delete_all(uploaded)
        if report.has_failures:
            logger.error(
                f"Compensation left {len(report.failures)} orphaned blobs: "
                f"{[o.path for o in report.failures]}"
            )

    def _reraise(self, definition: ResourceDefinition, error: Exception) -> NoReturn:
        """Re-raise a persist failure as a CatalogError."""
        if isinstance(error, CatalogError) and not isinstance(error, UpstreamFailure):
            raise error
        label = definition.label.lower()
        if not isinstance(error, CatalogError):
            logger.error(f"Unexpected failure saving {label}: {error!r}")
        raise UpstreamFailure(f"Could not save {label}") from error

    async def _upload(
        self,
        batch: UploadBatch,
        parent_prefix: str,
        folder_id: str,
    ) -> UploadResult:
        slot_paths = {slot: derive(parent_prefix, folder_id, slot) for slot in batch.slots}
        result = await self.storage.uploader.upload(batch, slot_paths)
        if not result.ok:
            await self._compensate(result.stored(), "upload failure")
            raise UpstreamFailure(f"Upload failed: {result.failure_summary()}")
        return result

    async def create_resource(
        self,
        definition: ResourceDefinition,
        fields: dict[str, Any],
        parent_refs: dict[str, str] | None,
        auth: AuthContext,
        batch: UploadBatch,
    ) -> LifecycleResult:
        """Create a resource and upload its assets.

        Args:
            definition: CATEGORY, BOOK or USER.
            fields: Scalar fields of the new record.
            parent_refs: Parent ids (book: category_id, author_id).
            auth: Caller.
            batch: Staged files per slot.

        Returns:
            LifecycleResult with the persisted record and its folder prefix.

        Raises:
            ForbiddenError: Caller's role may not create this resource.
            ConflictError: Natural key taken, or a unique index rejected
                the record.
            NotFoundError: A parent does not exist.
            ValidationError: Missing field or required slot.
            UpstreamFailure: An upload, building the record or the document
                write failed. Uploaded blobs are removed again first.
        """
        parent_refs = parent_refs or {}
        steps = [LifecycleStep.PENDING]
        self._check_role(definition, auth, "add")

        definition.check_fields(fields)
        await definition.check_unique(self.store, fields, parent_refs)
        parents = await definition.resolve_parents(self.store, parent_refs)

        missing = [name for name in definition.required_slots if not batch.has_slot(name)]
        if missing:
            raise ValidationError(f"Missing required files: {', '.join(missing)}")
        self._check_batch(definition, batch)
        steps.append(LifecycleStep.VALIDATED)

        folder_id = generate_folder_id()
        parent_prefix = definition.parent_prefix(self.storage, parents)
        folder_prefix = resource_prefix(parent_prefix, folder_id)
        steps.append(LifecycleStep.FOLDER_DERIVED)

        result = await self._upload(batch, parent_prefix, folder_id)
        steps.append(LifecycleStep.ASSETS_UPLOADED)

        try:
            doc = definition.build(
                fields, parents, parent_refs, folder_id, result.descriptors, auth
            )
            doc = await self.store.create(doc)
        except Exception as e:
            await self._compensate(result.stored(), f"failed {definition.label} persist")
            self._reraise(definition, e)
        steps.append(LifecycleStep.DOCUMENT_PERSISTED)

        logger.info(f"{definition.label} {doc.id} created under {folder_prefix}")
        return LifecycleResult(resource=doc, folder_prefix=folder_prefix, steps=steps)

    async def update_resource(
        self,
        definition: ResourceDefinition,
        resource_id: str,
        patch: dict[str, Any],
        auth: AuthContext,
        batch: UploadBatch | None = None,
    ) -> LifecycleResult:
        """Sparse update; replaced slots are uploaded before the old blobs go.

        Absent fields and slots are left untouched. A staged slot replaces
        the slot's whole content, including the whole gallery sequence.

        Raises:
            ForbiddenError: Caller is neither the creator nor super admin.
            NotFoundError: No such resource.
            ValidationError: Empty field, same category name, bad slot.
            ConflictError: New name or title is taken.
            UpstreamFailure: Replacement upload or save failed; the stored
                record is unchanged.
        """
        batch = batch or UploadBatch()
        steps = [LifecycleStep.PENDING]
        self._check_role(definition, auth, "update")

        doc = await self._load(definition, resource_id)
        steps.append(LifecycleStep.LOADED)

        self._check_owner(definition, doc, auth, "update")
        steps.append(LifecycleStep.AUTHORIZED)

        changes = await definition.merge_fields(self.store, doc, patch)
        self._check_batch(definition, batch)
        steps.append(LifecycleStep.FIELDS_MERGED)

        parent_prefix = definition.stored_parent_prefix(self.storage, doc)
        folder_prefix = resource_prefix(parent_prefix, doc.folder_id)

        retired: list[tuple[AssetDescriptor, AssetKind]] = []
        uploaded: list[tuple[AssetDescriptor, AssetKind]] = []
        replacements: dict[str, list[AssetDescriptor]] = {}
        if len(batch):
            result = await self._upload(batch, parent_prefix, doc.folder_id)
            uploaded = result.stored()
            for name in batch.slots:
                spec = definition.slot(name)
                retired.extend((d, spec.kind) for d in definition.get_slot(doc, name))
                replacements[name] = result.all(name)
            steps.append(LifecycleStep.ASSETS_REPLACED)

        try:
            changes.apply(doc)
            for name, descriptors in replacements.items():
                definition.set_slot(doc, name, descriptors)
            doc.updated_by = auth.caller_id
            doc = await self.store.save(doc)
        except Exception as e:
            await self._compensate(uploaded, f"failed {definition.label} save")
            self._reraise(definition, e)
        steps.append(LifecycleStep.PERSISTED)

        cleanup = CleanupReport()
        if retired:
            cleanup = await self.storage.deleter.delete_all(retired)
            if cleanup.has_failures:
                logger.warning(
                    f"{definition.label} {doc.id} updated; {len(cleanup.failures)} "
                    f"replaced blobs could not be retired"
                )

        logger.info(f"{definition.label} {doc.id} updated ({', '.join(replacements) or 'fields only'})")
        return LifecycleResult(resource=doc, folder_prefix=folder_prefix, cleanup=cleanup, steps=steps)

    async def delete_resource(
        self,
        definition: ResourceDefinition,
        resource_id: str,
        auth: AuthContext,
    ) -> DeletionReport:
        """Delete the document and, best effort, its blob subtree.

        Blob failures are reported, never raised. Only a failed document
        delete raises.

        Raises:
            ForbiddenError: Role gate or ownership check failed.
            NotFoundError: No such resource.
            ConflictError: Other records still need this one.
            UpstreamFailure: The document delete itself failed.
        """
        steps = [LifecycleStep.PENDING]
        self._check_role(definition, auth, "delete", definition.roles_for_delete)

        doc = await self._load(definition, resource_id)
        if definition.delete_requires_owner:
            self._check_owner(definition, doc, auth, "delete")
        steps.append(LifecycleStep.AUTHORIZED)
        steps.append(LifecycleStep.LOADED)
        await definition.check_deletable(self.store, doc)

        folder_prefix = resource_prefix(
            definition.stored_parent_prefix(self.storage, doc), doc.folder_id
        )
        cleanup = await self.storage.deleter.delete_all(
            definition.stored_assets(doc), [folder_prefix]
        )
        if cleanup.has_failures:
            logger.warning(
                f"Orphaned blobs under {folder_prefix}: "
                f"{[o.path for o in cleanup.failures]}"
            )
        steps.append(LifecycleStep.BLOBS_REMOVED)

        await definition.remove_dependents(self.store, doc)
        await self.store.delete(doc)
        steps.append(LifecycleStep.DOCUMENT_REMOVED)

        logger.info(f"{definition.label} {resource_id} deleted")
        return DeletionReport(
            resource_id=resource_id,
            folder_prefix=folder_prefix,
            cleanup=cleanup,
            document_removed=True,
            steps=steps,
        )
