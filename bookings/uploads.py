from __future__ import annotations

import enum
import logging
import os
import uuid
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType

from django.core.exceptions import SuspiciousFileOperation
from django.core.files.storage import FileSystemStorage


logger = logging.getLogger(__name__)


CONTENT_TYPES_BY_EXTENSION = MappingProxyType(
    {
        "jpg": "image/jpeg",
        "jpeg": "image/jpeg",
        "png": "image/png",
        "gif": "image/gif",
        "webp": "image/webp",
        "pdf": "application/pdf",
    }
)
DEFAULT_CONTENT_TYPE = "application/octet-stream"


class RejectionReason(str, enum.Enum):
    MISSING_FILE = "missing_file"
    SIZE_EXCEEDED = "size_exceeded"
    EXTENSION_NOT_ALLOWED = "extension_not_allowed"
    CONTENT_TYPE_NOT_ALLOWED = "content_type_not_allowed"


@dataclass(frozen=True)
class UploadPolicy:
    name: str
    max_size_bytes: int
    allowed_extensions: frozenset[str]
    allowed_content_types: frozenset[str]
    storage_dir: Path

    @classmethod
    def from_config(cls, name: str, config: dict, upload_root: Path) -> "UploadPolicy":
        return cls(
            name=name,
            max_size_bytes=int(config["max_size_bytes"]),
            allowed_extensions=frozenset(e.lower().lstrip(".") for e in config["allowed_extensions"]),
            allowed_content_types=frozenset(c.lower() for c in config["allowed_content_types"]),
            storage_dir=Path(upload_root) / config.get("subdir", name),
        )

    @property
    def storage(self) -> FileSystemStorage:
        return file_storage(self.storage_dir)


@dataclass(frozen=True)
class Accepted:
    stored_name: str


@dataclass(frozen=True)
class Rejected:
    reason: RejectionReason
    message: str


def file_storage(storage_dir) -> FileSystemStorage:
    return FileSystemStorage(location=storage_dir)


def build_policies(config: dict, upload_root) -> MappingProxyType:
    """Build the immutable policy table once, at app start."""
    return MappingProxyType(
        {name: UploadPolicy.from_config(name, options, Path(upload_root)) for name, options in config.items()}
    )


def extract_extension(filename: str | None) -> str:
    """Lower-cased extension of the supplied name, without the dot ("" if none)."""
    base = safe_basename(filename or "")
    _, ext = os.path.splitext(base)
    return ext[1:].lower()


def safe_basename(name: str | None) -> str:
    """
    Strip every directory component, whatever the separator.
    Returns "" for names that do not denote a plain file.
    """
    base = (name or "").replace("\\", "/").split("/")[-1].strip()
    if base in ("", ".", ".."):
        return ""
    return base


def _human_size(num_bytes: int) -> str:
    if num_bytes % (1024 * 1024) == 0:
        return f"{num_bytes // (1024 * 1024)}MB"
    return f"{num_bytes} bytes"


def check_upload(file, policy: UploadPolicy) -> Rejected | None:
    """
    Run the policy checks in order: size, extension, declared content type.
    The first failing check wins. Nothing is written.
    """
    if file is None:
        return Rejected(RejectionReason.MISSING_FILE, "No file uploaded.")

    if file.size is None or file.size > policy.max_size_bytes:
        return Rejected(
            RejectionReason.SIZE_EXCEEDED,
            f"File size exceeds the maximum allowed size of {_human_size(policy.max_size_bytes)}.",
        )

    ext = extract_extension(file.name)
    if not ext or ext not in policy.allowed_extensions:
        allowed = ", ".join(f".{e}" for e in sorted(policy.allowed_extensions))
        return Rejected(
            RejectionReason.EXTENSION_NOT_ALLOWED,
            f"File type not allowed. Allowed types: {allowed}",
        )

    content_type = (file.content_type or "").strip().lower()
    if content_type not in policy.allowed_content_types:
        return Rejected(RejectionReason.CONTENT_TYPE_NOT_ALLOWED, "Invalid file content type.")

    return None


def store_upload(file, policy: UploadPolicy) -> Accepted:
    """
    Write an already-checked file under a freshly generated name.
    Only the extension is taken from the supplied filename.
    """
    ext = extract_extension(file.name)
    stored_name = f"{uuid.uuid4().hex}.{ext}"

    storage = policy.storage
    try:
        stored_name = storage.save(stored_name, file)
    except BaseException:
        # Storage leaves a partially written file behind.
        storage.delete(stored_name)
        raise

    logger.info("Stored upload %s under policy %s (%s bytes)", stored_name, policy.name, file.size)
    return Accepted(stored_name=stored_name)


def validate_upload(file, policy: UploadPolicy) -> Accepted | Rejected:
    rejected = check_upload(file, policy)
    if rejected is not None:
        logger.warning(
            "Rejected upload under policy %s: %s",
            policy.name,
            rejected.reason.value,
        )
        return rejected
    return store_upload(file, policy)


def resolve_stored_file(storage_dir, requested_name: str | None) -> Path | None:
    """
    Map a requested filename to a file directly inside storage_dir.
    Any directory component in the request is discarded first.
    """
    base = safe_basename(requested_name)
    if not base:
        return None

    storage = file_storage(storage_dir)
    try:
        candidate = Path(storage.path(base)).resolve()
    except SuspiciousFileOperation:
        return None

    root = Path(storage.location).resolve()
    if candidate.parent != root or not candidate.is_file():
        return None
    return candidate


def delete_stored_file(storage_dir, name: str | None) -> bool:
    path = resolve_stored_file(storage_dir, name)
    if path is None:
        return False
    file_storage(storage_dir).delete(path.name)
    logger.info("Deleted stored file %s", path.name)
    return True


def content_type_for(name: str | None) -> str:
    return CONTENT_TYPES_BY_EXTENSION.get(extract_extension(name), DEFAULT_CONTENT_TYPE)
