"""Cover image storage on the local filesystem."""

import secrets
import time
from pathlib import Path
from typing import BinaryIO, Protocol

from loguru import logger

from src.library.core.exceptions import ValidationError
from src.library.entities.service.book.entity import DEFAULT_COVER
from src.library.runtime.config.config_data import UploadsConfig

_CHUNK_SIZE = 64 * 1024


class CoverStore(Protocol):
    """What the book services need from a cover image backend."""

    def save(self, filename: str, stream: BinaryIO) -> str: ...

    def release(self, reference: str) -> None: ...


class LocalCoverStorage:
    """Stores uploaded cover images in a directory and deletes released ones."""

    def __init__(self, config: UploadsConfig) -> None:
        self._config = config
        self._directory = Path(config.directory)
        self._allowed = {ext.lower() for ext in config.allowed_extensions}

    @property
    def directory(self) -> Path:
        return self._directory

    def save(self, filename: str, stream: BinaryIO) -> str:
        """Copy ``stream`` to a fresh file and return its reference.

        Raises:
            ValidationError: unsupported extension or file too large
        """
        extension = Path(filename or "").suffix.lower()
        if extension not in self._allowed:
            allowed = ", ".join(sorted(ext.lstrip(".") for ext in self._allowed))
            raise ValidationError(f"Only images are allowed ({allowed})")

        self._directory.mkdir(parents=True, exist_ok=True)
        reference = f"book-{int(time.time() * 1000)}-{secrets.randbelow(10**9)}{extension}"
        path = self._directory / reference

        written = 0
        try:
            with open(path, "wb") as out:
                while chunk := stream.read(_CHUNK_SIZE):
                    written += len(chunk)
                    if written > self._config.max_bytes:
                        raise ValidationError(
                            f"Image exceeds the {self._config.max_bytes // (1024 * 1024)} MB limit"
                        )
                    out.write(chunk)
        except ValidationError:
            path.unlink(missing_ok=True)
            raise

        logger.bind(cover=reference, size=written).info("cover.saved")
        return reference

    def release(self, reference: str) -> None:
        """Delete a stored cover. The default cover is never deleted."""
        if not reference or reference == DEFAULT_COVER:
            return
        # References are bare file names; anything else is not ours to delete.
        if Path(reference).name != reference:
            logger.warning("Refusing to release cover outside upload dir: {}", reference)
            return
        path = self._directory / reference
        if path.exists():
            path.unlink()
            logger.bind(cover=reference).info("cover.released")
