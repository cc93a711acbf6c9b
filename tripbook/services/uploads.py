"""
Media upload storage.

Files land in settings.UPLOAD_DIR under a uuid4 name that keeps the original
(lower-cased) extension, and are addressed as "/uploads/<name>".
"""
from __future__ import annotations

import logging
import uuid
from pathlib import Path, PurePosixPath
from typing import Iterable

from fastapi import UploadFile

from tripbook.core.errors import FileTooLargeError, InvalidFileTypeError
from tripbook.schemas.memory import MEDIA_EXTENSIONS

logger = logging.getLogger(__name__)

URL_PREFIX = "/uploads/"
_CHUNK = 64 * 1024


def _extension(filename: str) -> str:
    return PurePosixPath(filename).suffix.lower()


def selected_files(files: Iterable[UploadFile] | None) -> list[UploadFile]:
    """Drop the empty parts browsers send for an untouched file input."""
    return [f for f in (files or []) if f is not None and f.filename]


def save_uploads(files: list[UploadFile], upload_dir: Path, max_bytes: int) -> list[str]:
    """
    Validate every extension first, then stream each file to disk.
    On any failure the files written by this call are removed again.
    """
    for f in files:
        ext = _extension(f.filename or "")
        if ext not in MEDIA_EXTENSIONS:
            logger.info("Rejected upload %r: invalid extension", f.filename)
            raise InvalidFileTypeError(ext)

    upload_dir.mkdir(parents=True, exist_ok=True)
    written: list[Path] = []
    try:
        for f in files:
            target = upload_dir / f"{uuid.uuid4()}{_extension(f.filename or '')}"
            written.append(target)
            size = 0
            with target.open("wb") as out:
                while True:
                    chunk = f.file.read(_CHUNK)
                    if not chunk:
                        break
                    size += len(chunk)
                    if size > max_bytes:
                        logger.info("Rejected upload %r: larger than %d bytes", f.filename, max_bytes)
                        raise FileTooLargeError(f.filename or target.name, max_bytes)
                    out.write(chunk)
    except BaseException:
        for path in written:
            path.unlink(missing_ok=True)
        raise

    return [URL_PREFIX + p.name for p in written]


def remove_media(urls: Iterable[str], upload_dir: Path) -> None:
    """Delete stored media files; missing files are ignored."""
    for url in urls:
        name = PurePosixPath(url).name
        if not url.startswith(URL_PREFIX) or not name:
            continue
        path = upload_dir / name
        try:
            path.unlink()
        except FileNotFoundError:
            logger.debug("Media file %s already gone", path)
