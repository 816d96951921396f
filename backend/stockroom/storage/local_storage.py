import logging
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Iterator, Optional
from fastapi import UploadFile
from stockroom.core.errors import validation_error

logger = logging.getLogger(__name__)

_EXTENSION_BY_TYPE = {
    "image/jpeg": ".jpg",
    "image/jpg": ".jpg",
    "image/png": ".png",
}


@dataclass(frozen=True)
class StoredImage:
    """An image persisted on disk and the public url it is served under"""
    path: Path
    public_url: str


class LocalImageStorage:
    """
    Product images on the local filesystem.

    Files are written to ``image_dir`` under a fresh uuid-based name, so
    concurrent uploads never collide, and are served under ``public_prefix``
    (see the /uploads static mount in main.py).
    """

    def __init__(
        self,
        image_dir: Path,
        public_prefix: str = "/uploads/products",
        max_size: int = 5 * 1024 * 1024,
        allowed_types: Iterable[str] = ("image/jpeg", "image/jpg", "image/png"),
    ) -> None:
        self.image_dir = Path(image_dir)
        self.public_prefix = public_prefix.rstrip("/")
        self.max_size = max_size
        self.allowed_types = {t.lower() for t in allowed_types}
        self.image_dir.mkdir(parents=True, exist_ok=True)

    async def save_uploaded_file(self, upload: UploadFile) -> StoredImage:
        """Validate and save an uploaded image, returning where it landed"""
        content_type = (upload.content_type or "").lower()
        if content_type not in self.allowed_types:
            raise validation_error(
                "Invalid file type. Only JPG, JPEG and PNG files are allowed."
            )

        # Read one byte past the limit to detect oversized files without
        # buffering the whole upload
        content = await upload.read(self.max_size + 1)
        if len(content) > self.max_size:
            raise validation_error(
                f"Image is too large. Maximum size is {self.max_size // (1024 * 1024)}MB."
            )

        unique_filename = f"product-{uuid.uuid4().hex}{self._extension_for(upload, content_type)}"
        file_path = self.image_dir / unique_filename
        try:
            with open(file_path, "wb") as f:
                f.write(content)
        except OSError:
            # No partial file may outlive a failed write
            file_path.unlink(missing_ok=True)
            raise

        logger.debug(f"Stored product image {unique_filename} ({len(content)} bytes)")
        return StoredImage(path=file_path, public_url=f"{self.public_prefix}/{unique_filename}")

    @staticmethod
    def _extension_for(upload: UploadFile, content_type: str) -> str:
        suffix = Path(upload.filename or "").suffix.lower()
        if suffix in {".jpg", ".jpeg", ".png"}:
            return suffix
        return _EXTENSION_BY_TYPE.get(content_type, "")

    def path_for_url(self, public_url: Optional[str]) -> Optional[Path]:
        """Resolve a stored public url back to a file path in image_dir"""
        if not public_url or not public_url.startswith(self.public_prefix + "/"):
            return None
        filename = public_url[len(self.public_prefix) + 1:]
        # Only bare filenames; anything with a separator isn't ours
        if not filename or Path(filename).name != filename:
            return None
        return self.image_dir / filename

    def delete_file(self, path: Path) -> bool:
        """
        Delete a file.

        Returns False when the file is already gone; other OS errors propagate
        so the caller decides whether they matter.
        """
        try:
            Path(path).unlink()
        except FileNotFoundError:
            return False
        return True

    def file_exists(self, path: Path) -> bool:
        """Check if file exists"""
        return Path(path).exists()

    def iter_files(self) -> Iterator[Path]:
        """All regular files currently in the image directory"""
        for entry in self.image_dir.iterdir():
            if entry.is_file():
                yield entry
