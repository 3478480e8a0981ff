"""
Photo ingestion: validate, store and record guest uploads for an event.

Each file is handled on its own. A failure (bad type, too large, storage
write error, database error) produces an error result for that file and the
rest of the batch carries on. The caller decides how to report the batch.
"""

import os
import secrets
import time
from dataclasses import dataclass
from typing import Iterable, List, Optional

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.utils import secure_filename

from eventsnap import db
from eventsnap.models import Event, Photo
from eventsnap.services.photo_rules import check_photo, fit_filename, MAX_FILE_BYTES, MAX_FILES_PER_UPLOAD
from eventsnap.services.storage_service import storage_service, StorageError


@dataclass
class IngestResult:
    """Outcome for one uploaded file: either a stored photo or an error."""
    filename: str
    photo: Optional[Photo] = None
    url: Optional[str] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.photo is not None

    def to_dict(self) -> dict:
        if self.ok:
            return {
                'id': self.photo.id,
                'filename': self.filename,
                'url': self.url,
                'storagePath': self.photo.storage_path,
            }
        return {'filename': self.filename, 'error': self.error}


def build_storage_path(event_code: str, filename: str) -> str:
    """
    Storage key for a new upload: events/<code>/<millis>-<random>-<name>.

    The random part keeps two uploads of the same filename in the same
    millisecond apart.
    """
    safe_name = secure_filename(filename) or 'photo'
    millis = int(time.time() * 1000)
    return f"events/{event_code}/{millis}-{secrets.token_hex(4)}-{safe_name}"


def _measure(file_storage) -> int:
    stream = file_storage.stream
    stream.seek(0, os.SEEK_END)
    size = stream.tell()
    stream.seek(0)
    return size


def ingest_photo(event: Event, file_storage, guest_name: Optional[str] = None,
                 max_bytes: int = MAX_FILE_BYTES) -> IngestResult:
    """Validate, upload and record a single file."""
    filename = file_storage.filename or ''
    mime = file_storage.mimetype
    size = _measure(file_storage)

    reason = check_photo(mime, size, max_bytes)
    if reason:
        current_app.logger.info(f"Rejected {filename} for event {event.code}: {reason}")
        return IngestResult(filename=filename, error=reason)

    storage_path = build_storage_path(event.code, filename)
    try:
        storage_service.upload_fileobj(file_storage.stream, storage_path, mime)
    except StorageError as e:
        current_app.logger.error(f"Upload error for {filename} (event {event.code}): {e}")
        return IngestResult(filename=filename, error='Storage upload failed')

    url = storage_service.public_url(storage_path)

    photo = Photo(
        event_id=event.id,
        filename=fit_filename(filename),
        storage_path=storage_path,
        mime=mime,
        bytes=size,
        guest_name=guest_name,
    )
    try:
        db.session.add(photo)
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.error(f"Could not record {storage_path}: {e}")
        if not storage_service.delete_file(storage_path):
            current_app.logger.error(f"Orphaned storage object left behind: {storage_path}")
        return IngestResult(filename=filename, error='Failed to save photo')

    current_app.logger.info(f"Stored photo {photo.id} for event {event.code}: {storage_path}")
    return IngestResult(filename=filename, photo=photo, url=url)


def ingest_photos(event: Event, files: Iterable, guest_name: Optional[str] = None,
                  max_files: int = MAX_FILES_PER_UPLOAD,
                  max_bytes: int = MAX_FILE_BYTES) -> List[IngestResult]:
    """
    Ingest a batch of uploaded files for an event.

    Files past `max_files` are rejected without being looked at, so the
    same oversized request always keeps the same leading files.

    Returns:
        One IngestResult per file, in request order.
    """
    results = []
    for index, file_storage in enumerate(files):
        if index >= max_files:
            results.append(IngestResult(
                filename=file_storage.filename or '',
                error=f'Too many files in one upload (max {max_files})'
            ))
            continue
        results.append(ingest_photo(event, file_storage, guest_name, max_bytes))
    return results
