"""Local-disk document storage."""

import logging
import mimetypes
import re
import uuid
from pathlib import Path
from typing import Iterable, Optional

from researchhub.errors import NotFound, ValidationFailed
from researchhub.models.submission import FileRef, UploadedFile

logger = logging.getLogger(__name__)

MAX_FILE_SIZE = 25 * 1024 * 1024  # 25 MB

PDF_MIME = "application/pdf"
DOCX_MIME = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
ALLOWED_MIME_TYPES = frozenset({PDF_MIME, DOCX_MIME})

_EXTENSIONS = {PDF_MIME: ".pdf", DOCX_MIME: ".docx"}
_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


def guess_mime_type(name: str) -> str:
    """Guess a MIME type from a file name (PDF/DOCX known without system tables)."""
    suffix = Path(name).suffix.lower()
    for mime_type, extension in _EXTENSIONS.items():
        if suffix == extension:
            return mime_type
    return mimetypes.guess_type(name)[0] or "application/octet-stream"


def safe_filename(name: str) -> str:
    """Reduce a client-supplied file name to a safe basename."""
    base = Path(name.replace("\\", "/")).name
    base = _UNSAFE_CHARS.sub("_", base).strip("._")
    return base or "upload"


class FileStorage:
    """Stores uploaded documents under a root directory, one folder per owner."""

    def __init__(
        self,
        root_dir: Path,
        max_file_size: int = MAX_FILE_SIZE,
        allowed_mime_types: Optional[Iterable[str]] = None,
    ):
        """Initialize storage.

        Args:
            root_dir: Directory that holds every stored file
            max_file_size: Largest accepted upload in bytes
            allowed_mime_types: Accepted MIME types (defaults to PDF and DOCX)
        """
        self.root_dir = Path(root_dir)
        self.root_dir.mkdir(parents=True, exist_ok=True)
        self.max_file_size = max_file_size
        self.allowed_mime_types = frozenset(allowed_mime_types or ALLOWED_MIME_TYPES)

    def validate(self, upload: UploadedFile) -> None:
        """Raise ``ValidationFailed`` for empty, oversized, or unsupported files."""
        if upload.size == 0:
            raise ValidationFailed("The attached file is empty.", field="file")
        if upload.size > self.max_file_size:
            limit_mb = self.max_file_size // (1024 * 1024)
            raise ValidationFailed(
                f"Please upload a file smaller than {limit_mb} MB.", field="file"
            )
        if upload.mime_type not in self.allowed_mime_types:
            raise ValidationFailed(
                "Only PDF or DOCX files are accepted.", field="file"
            )

    def save(self, owner_id: str, upload: UploadedFile) -> FileRef:
        """Validate and persist ``upload``; return its reference."""
        self.validate(upload)

        name = safe_filename(upload.name)
        if not Path(name).suffix:
            name += _EXTENSIONS.get(upload.mime_type, "")

        owner_dir = safe_filename(owner_id)
        storage_path = f"{owner_dir}/{uuid.uuid4().hex}_{name}"
        target = self._resolve(storage_path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(upload.content)
        logger.info("Stored %s (%d bytes) at %s", name, upload.size, storage_path)

        return FileRef(
            name=upload.name or name,
            storage_path=storage_path,
            mime_type=upload.mime_type,
            size=upload.size,
        )

    def path_for(self, storage_path: str) -> Path:
        """Return the on-disk path for a stored file.

        Raises:
            NotFound: the file is missing from storage
        """
        path = self._resolve(storage_path)
        if not path.is_file():
            raise NotFound("The stored file could not be found.")
        return path

    def discard(self, ref: Optional[FileRef]) -> bool:
        """Remove a stored file. Missing files are ignored.

        Returns:
            True if a file was removed
        """
        if ref is None:
            return False
        path = self._resolve(ref.storage_path)
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        logger.info("Removed stored file %s", ref.storage_path)
        return True

    def _resolve(self, storage_path: str) -> Path:
        """Map a storage path to disk, refusing paths outside the root."""
        root = self.root_dir.resolve()
        path = (root / storage_path).resolve()
        if root != path and root not in path.parents:
            raise NotFound("The stored file could not be found.")
        return path
