"""
Upload rules shared by the ingestion service and the upload client.

The server is the authority; the client runs the same checks before
sending anything so obviously bad files never leave the machine.
"""

import os
from typing import Optional

ALLOWED_MIME_TYPES = frozenset({
    'image/jpeg',
    'image/jpg',
    'image/png',
    'image/gif',
    'image/webp',
})

MAX_FILE_BYTES = 10 * 1024 * 1024  # 10MB
MAX_FILES_PER_UPLOAD = 20

# Must match the column sizes on Photo
MAX_FILENAME_LENGTH = 255
MAX_GUEST_NAME_LENGTH = 100


def check_photo(mime: Optional[str], size: int, max_bytes: int = MAX_FILE_BYTES) -> Optional[str]:
    """
    Check one file against the upload rules.

    Returns:
        A human-readable rejection reason, or None if the file is acceptable.
    """
    if (mime or '').lower() not in ALLOWED_MIME_TYPES:
        return 'invalid file type'
    if size > max_bytes:
        return f'file too large - max {max_bytes // (1024 * 1024)}MB'
    return None


def too_many_files_message(max_files: int = MAX_FILES_PER_UPLOAD) -> str:
    return f'Maximum {max_files} files allowed at once'


def fit_filename(filename: str, max_length: int = MAX_FILENAME_LENGTH) -> str:
    """Shorten a filename to fit its column, keeping the extension."""
    if len(filename) <= max_length:
        return filename
    stem, ext = os.path.splitext(filename)
    if len(ext) >= max_length:
        return filename[:max_length]
    return stem[:max_length - len(ext)] + ext
