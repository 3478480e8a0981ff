"""
HTTP client for the EventSnap API.

Besides thin wrappers around each endpoint, this holds the guest upload
orchestrator: selected files are checked locally, split into small groups
and sent one file per request, a group at a time, while an UploadProgress
object records what happened to each file.

Requires: requests
"""

import io
import logging
import mimetypes
import os
import secrets
import string
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Callable, Dict, List, Optional, Tuple

import requests

from eventsnap.services.photo_rules import (
    check_photo,
    too_many_files_message,
    MAX_FILE_BYTES,
    MAX_FILES_PER_UPLOAD,
    MAX_GUEST_NAME_LENGTH,
)

logger = logging.getLogger(__name__)

BATCH_SIZE = 3
BATCH_DELAY_SECONDS = 0.2

CODE_ALPHABET = string.ascii_uppercase + string.digits
CODE_LENGTH = 6


def generate_event_code(length: int = CODE_LENGTH) -> str:
    """Random short public code, e.g. 'K7Q2ZD'."""
    return ''.join(secrets.choice(CODE_ALPHABET) for _ in range(length))


class EventSnapAPIError(Exception):
    """Non-2xx response from the API."""

    def __init__(self, status_code: int, message: str, payload: Optional[dict] = None):
        super().__init__(message)
        self.status_code = status_code
        self.message = message
        self.payload = payload or {}


# ============== PROGRESS TRACKING ==============

class UploadStatus(str, Enum):
    PENDING = 'pending'
    UPLOADING = 'uploading'
    COMPLETED = 'completed'
    FAILED = 'failed'


_ALLOWED_TRANSITIONS = {
    UploadStatus.PENDING: {UploadStatus.UPLOADING},
    UploadStatus.UPLOADING: {UploadStatus.COMPLETED, UploadStatus.FAILED},
    UploadStatus.COMPLETED: set(),
    UploadStatus.FAILED: set(),
}


@dataclass(frozen=True)
class FileProgress:
    filename: str
    status: UploadStatus = UploadStatus.PENDING
    progress: int = 0
    error: Optional[str] = None


class UploadProgress:
    """
    Per-file upload state keyed by file id, plus overall counts.

    Files move pending -> uploading -> completed | failed and nothing else;
    any other move raises ValueError. The optional listener is called with
    (file_id, FileProgress, UploadProgress) after every change, which is how
    a display layer follows along. Safe to update from worker threads.
    """

    def __init__(self, listener: Optional[Callable[[str, FileProgress, 'UploadProgress'], None]] = None):
        self._entries: Dict[str, FileProgress] = {}
        self._lock = threading.Lock()
        self.listener = listener

    def add(self, file_id: str, filename: str) -> None:
        with self._lock:
            if file_id in self._entries:
                raise ValueError(f'Duplicate file id: {file_id}')
            self._entries[file_id] = FileProgress(filename=filename)

    def start(self, file_id: str) -> None:
        self._transition(file_id, UploadStatus.UPLOADING, progress=0)

    def complete(self, file_id: str) -> None:
        self._transition(file_id, UploadStatus.COMPLETED, progress=100)

    def fail(self, file_id: str, error: str) -> None:
        self._transition(file_id, UploadStatus.FAILED, progress=0, error=error)

    def _transition(self, file_id: str, status: UploadStatus, progress: int, error: Optional[str] = None) -> None:
        with self._lock:
            current = self._entries[file_id]
            if status not in _ALLOWED_TRANSITIONS[current.status]:
                raise ValueError(f'{file_id}: cannot go from {current.status.value} to {status.value}')
            updated = replace(current, status=status, progress=progress, error=error)
            self._entries[file_id] = updated
        if self.listener:
            try:
                self.listener(file_id, updated, self)
            except Exception:
                logger.exception(f'Progress listener failed for {file_id}')

    def get(self, file_id: str) -> FileProgress:
        with self._lock:
            return self._entries[file_id]

    def snapshot(self) -> Dict[str, FileProgress]:
        with self._lock:
            return dict(self._entries)

    def _count(self, *statuses) -> int:
        with self._lock:
            return sum(1 for entry in self._entries.values() if entry.status in statuses)

    @property
    def total(self) -> int:
        with self._lock:
            return len(self._entries)

    @property
    def completed(self) -> int:
        """Files that have settled, successfully or not."""
        return self._count(UploadStatus.COMPLETED, UploadStatus.FAILED)

    @property
    def succeeded(self) -> int:
        return self._count(UploadStatus.COMPLETED)

    @property
    def failed(self) -> int:
        return self._count(UploadStatus.FAILED)

    @property
    def percent(self) -> int:
        total = self.total
        return round(self.completed * 100 / total) if total else 0


# ============== LOCAL FILES ==============

@dataclass
class LocalPhoto:
    """A file picked for upload. `data` is used instead of reading `path` when given."""
    filename: str
    mime: str
    size: int
    path: Optional[str] = None
    data: Optional[bytes] = None

    @classmethod
    def from_path(cls, path: str) -> 'LocalPhoto':
        mime = mimetypes.guess_type(path)[0] or 'application/octet-stream'
        return cls(filename=os.path.basename(path), mime=mime, size=os.path.getsize(path), path=path)

    @classmethod
    def from_bytes(cls, filename: str, data: bytes, mime: Optional[str] = None) -> 'LocalPhoto':
        mime = mime or mimetypes.guess_type(filename)[0] or 'application/octet-stream'
        return cls(filename=filename, mime=mime, size=len(data), data=data)

    def open(self):
        if self.data is not None:
            return io.BytesIO(self.data)
        return open(self.path, 'rb')


def prevalidate(files: List[LocalPhoto], max_files: int = MAX_FILES_PER_UPLOAD,
                max_bytes: int = MAX_FILE_BYTES) -> Tuple[List[LocalPhoto], List[str], Optional[str]]:
    """
    Apply the upload rules before anything is sent.

    Returns:
        (valid files, rejection messages, error). When the selection is over
        the file limit, nothing is valid and error explains why.
    """
    if len(files) > max_files:
        return [], [], too_many_files_message(max_files)

    valid, rejected = [], []
    for photo in files:
        reason = check_photo(photo.mime, photo.size, max_bytes)
        if reason:
            rejected.append(f'{photo.filename} ({reason})')
        else:
            valid.append(photo)
    return valid, rejected, None


@dataclass
class UploadOutcome:
    success: bool
    message: str
    photos: List[dict] = field(default_factory=list)
    failed: List[dict] = field(default_factory=list)
    rejected: List[str] = field(default_factory=list)


# ============== API CLIENT ==============

class EventSnapClient:
    """Client for the EventSnap JSON API."""

    def __init__(self, base_url: str, session=None, timeout: float = 30,
                 batch_size: int = BATCH_SIZE, batch_delay: float = BATCH_DELAY_SECONDS,
                 sleep: Callable[[float], None] = time.sleep):
        self.base_url = base_url.rstrip('/')
        self.session = session or requests.Session()
        self.timeout = timeout
        self.batch_size = batch_size
        self.batch_delay = batch_delay
        self._sleep = sleep

    def _request(self, method: str, path: str, **kwargs) -> dict:
        response = self.session.request(method, f'{self.base_url}{path}', timeout=self.timeout, **kwargs)
        try:
            data = response.json()
        except ValueError:
            data = {}
        if not isinstance(data, dict):
            data = {}

        if response.status_code >= 400:
            message = data.get('error') or f'API error: {response.status_code}'
            raise EventSnapAPIError(response.status_code, message, data)
        return data

    def signup(self, user_id: str, email: str, name: Optional[str] = None) -> dict:
        data = self._request('POST', '/api/auth/signup',
                             json={'userId': user_id, 'email': email, 'name': name})
        return data['user']

    def list_events(self, user_id: str) -> List[dict]:
        return self._request('GET', '/api/events', params={'userId': user_id})['events']

    def create_event(self, owner_id: str, title: str, description: Optional[str] = None,
                     date=None, location: Optional[str] = None, code: Optional[str] = None,
                     attempts: int = 3) -> dict:
        """
        Create an event. Without an explicit code a random one is generated,
        and a fresh one is tried if the server reports it is taken.
        """
        if hasattr(date, 'isoformat'):
            date = date.isoformat()

        tries = 1 if code else attempts
        for attempt in range(1, tries + 1):
            event_code = code or generate_event_code()
            body = {
                'title': title,
                'description': description,
                'date': date,
                'location': location,
                'code': event_code,
                'ownerId': owner_id,
            }
            try:
                return self._request('POST', '/api/events', json=body)['event']
            except EventSnapAPIError as e:
                if e.status_code != 409 or attempt == tries:
                    raise
                logger.info(f'Event code {event_code} taken, retrying with a new one')

    def get_event(self, code: str) -> dict:
        return self._request('GET', f'/api/events/{code}')['event']

    def list_photos(self, code: str) -> List[dict]:
        return self._request('GET', f'/api/events/{code}/photos')['photos']

    # ============== GUEST UPLOAD ==============

    def upload_photos(self, code: str, files: List[LocalPhoto], guest_name: Optional[str] = None,
                      progress: Optional[UploadProgress] = None) -> UploadOutcome:
        """
        Upload files to an event, `batch_size` concurrent requests at a time.

        Each request carries a single file. A group must fully settle before
        the next one starts, with a short pause in between. Failed files are
        recorded and not retried.
        """
        guest_name = (guest_name or '').strip() or None
        valid, rejected, error = prevalidate(files)
        if error:
            return UploadOutcome(success=False, message=error)
        if guest_name and len(guest_name) > MAX_GUEST_NAME_LENGTH:
            return UploadOutcome(success=False,
                                 message=f'Guest name must be at most {MAX_GUEST_NAME_LENGTH} characters')
        if not valid:
            return UploadOutcome(success=False, message='No valid files selected', rejected=rejected)

        progress = progress if progress is not None else UploadProgress()
        entries = []
        for index, photo in enumerate(valid):
            file_id = f'{index}-{photo.filename}'
            progress.add(file_id, photo.filename)
            entries.append((file_id, photo))

        batches = [entries[i:i + self.batch_size] for i in range(0, len(entries), self.batch_size)]
        uploaded, failed = [], []

        with ThreadPoolExecutor(max_workers=self.batch_size) as executor:
            for batch_index, batch in enumerate(batches):
                futures = [
                    executor.submit(self._upload_one, code, file_id, photo, guest_name, progress)
                    for file_id, photo in batch
                ]
                for (file_id, photo), future in zip(batch, futures):
                    photos, upload_error = future.result()
                    if upload_error:
                        failed.append({'filename': photo.filename, 'error': upload_error})
                    else:
                        uploaded.extend(photos)

                if batch_index < len(batches) - 1:
                    self._sleep(self.batch_delay)

        if uploaded:
            return UploadOutcome(
                success=True,
                message=f'Successfully uploaded {len(uploaded)} photo(s)!',
                photos=uploaded,
                failed=failed,
                rejected=rejected,
            )
        return UploadOutcome(
            success=False,
            message='No photos were uploaded successfully',
            failed=failed,
            rejected=rejected,
        )

    def _upload_one(self, code: str, file_id: str, photo: LocalPhoto, guest_name: Optional[str],
                    progress: UploadProgress) -> Tuple[List[dict], Optional[str]]:
        progress.start(file_id)
        form = {'guestName': guest_name} if guest_name else {}
        try:
            with photo.open() as fh:
                data = self._request(
                    'POST',
                    f'/api/events/{code}/photos',
                    files=[('files', (photo.filename, fh, photo.mime))],
                    data=form,
                )
        except EventSnapAPIError as e:
            details = e.payload.get('failed') or [{}]
            message = details[0].get('error') or e.message
            logger.warning(f'Upload of {photo.filename} failed: {message}')
            progress.fail(file_id, message)
            return [], message
        except (requests.RequestException, OSError) as e:
            logger.warning(f'Upload of {photo.filename} failed: {e}')
            progress.fail(file_id, str(e))
            return [], str(e)

        photos = data.get('photos')
        if not photos:
            message = 'Server did not return the uploaded photo'
            logger.warning(f'Upload of {photo.filename} failed: {message}')
            progress.fail(file_id, message)
            return [], message

        progress.complete(file_id)
        return photos, None
