"""Multipart upload staging.

Incoming files are checked (extension, size, count), written under a
per-request directory below UPLOAD_DIR with a random name, and collected
into an UploadBatch. The uploader removes each staged file once its upload
finishes; `cleanup()` removes whatever is left when the request ends.

Examples:
    >>> stager = UploadStager(settings.get_storage_config())
    >>> try:
    ...     await stager.stage(BOOK_SLOTS["cover"], cover_file)
    ...     batch = stager.batch
    ... finally:
    ...     stager.cleanup()

Tests:
    - tests/unit/test_staging.py
"""

from __future__ import annotations

import logging
import shutil
import uuid
from dataclasses import dataclass
from pathlib import Path

from fastapi import UploadFile
from PIL import Image, UnidentifiedImageError

from catalog.core.errors import ValidationError
from catalog.storage.assets import AssetKind, StagedFile, UploadBatch
from catalog.storage.config import StorageConfig

logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS = frozenset({".png", ".jpg", ".jpeg", ".gif", ".webp"})
DOCUMENT_EXTENSIONS = frozenset({".pdf", ".doc", ".docx", ".txt"})
MAX_GALLERY_FILES = 10
CHUNK_SIZE = 1024 * 1024


@dataclass(frozen=True)
class SlotRule:
    """What a slot accepts."""

    slot: str
    extensions: frozenset[str]
    kind: AssetKind = AssetKind.IMAGE
    max_files: int = 1


CATEGORY_SLOTS = {"image": SlotRule("image", IMAGE_EXTENSIONS)}
USER_SLOTS = {"image": SlotRule("image", IMAGE_EXTENSIONS)}
BOOK_SLOTS = {
    "cover": SlotRule("cover", IMAGE_EXTENSIONS),
    "document": SlotRule("document", DOCUMENT_EXTENSIONS, AssetKind.RAW),
    "gallery": SlotRule("gallery", IMAGE_EXTENSIONS, max_files=MAX_GALLERY_FILES),
}


def verify_image(path: Path) -> None:
    """Reject files that Pillow cannot identify as an image."""
    try:
        with Image.open(path) as img:
            img.verify()
    except (UnidentifiedImageError, OSError, SyntaxError) as e:
        raise ValidationError(f"{path.suffix} file is not a valid image") from e


def file_extension(filename: str | None) -> str:
    if not filename:
        raise ValidationError("No filename provided")
    if ".." in filename or "/" in filename or "\\" in filename:
        raise ValidationError("Invalid filename")
    return Path(filename).suffix.lower()


class UploadStager:
    """Stages one request's uploads on local disk."""

    def __init__(self, config: StorageConfig) -> None:
        self.max_bytes = config.max_upload_bytes
        self.directory = Path(config.upload_dir) / uuid.uuid4().hex
        self.batch = UploadBatch()

    async def stage(self, rule: SlotRule, upload: UploadFile) -> StagedFile:
        """Validate one file and write it to the request directory.

        Raises:
            ValidationError: Bad extension, too large, too many files for
                the slot, or an image Pillow cannot read.
        """
        if len(self.batch.for_slot(rule.slot)) >= rule.max_files:
            raise ValidationError(f"At most {rule.max_files} file(s) allowed for {rule.slot}")

        ext = file_extension(upload.filename)
        if ext not in rule.extensions:
            raise ValidationError(
                f"Invalid file type for {rule.slot}. Allowed: {', '.join(sorted(rule.extensions))}"
            )
        if upload.size is not None and upload.size > self.max_bytes:
            raise ValidationError(f"File too large. Maximum size is {self.max_bytes // (1024 * 1024)}MB")

        self.directory.mkdir(parents=True, exist_ok=True)
        path = self.directory / f"{uuid.uuid4().hex}{ext}"
        written = 0
        with path.open("wb") as out:
            while chunk := await upload.read(CHUNK_SIZE):
                written += len(chunk)
                if written > self.max_bytes:
                    out.close()
                    path.unlink(missing_ok=True)
                    raise ValidationError(
                        f"File too large. Maximum size is {self.max_bytes // (1024 * 1024)}MB"
                    )
                out.write(chunk)

        if rule.kind == AssetKind.IMAGE:
            try:
                verify_image(path)
            except ValidationError:
                path.unlink(missing_ok=True)
                raise

        staged = StagedFile(slot=rule.slot, local_path=str(path), kind=rule.kind)
        self.batch.add(staged)
        return staged

    async def stage_many(
        self, rules: dict[str, SlotRule], files: dict[str, list[UploadFile] | UploadFile | None]
    ) -> UploadBatch:
        """Stage every file of every slot present in `files`."""
        for slot, uploads in files.items():
            if uploads is None:
                continue
            if not isinstance(uploads, list):
                uploads = [uploads]
            for upload in uploads:
                await self.stage(rules[slot], upload)
        return self.batch

    def cleanup(self) -> None:
        """Remove the request directory and anything still in it."""
        if self.directory.exists():
            shutil.rmtree(self.directory, ignore_errors=True)
            logger.debug(f"Removed staging directory {self.directory}")
