from eventsnap.services.photo_rules import (
    check_photo,
    fit_filename,
    too_many_files_message,
    MAX_FILE_BYTES,
    MAX_FILENAME_LENGTH,
)


def test_accepts_allowed_image_types():
    for mime in ('image/jpeg', 'image/jpg', 'image/png', 'image/gif', 'image/webp', 'IMAGE/PNG'):
        assert check_photo(mime, 100) is None


def test_rejects_other_types():
    assert check_photo('image/tiff', 100) == 'invalid file type'
    assert check_photo('application/pdf', 100) == 'invalid file type'
    assert check_photo(None, 100) == 'invalid file type'


def test_size_limit_is_inclusive():
    assert check_photo('image/png', MAX_FILE_BYTES) is None
    assert check_photo('image/png', MAX_FILE_BYTES + 1) == 'file too large - max 10MB'


def test_custom_size_limit():
    assert check_photo('image/png', 2 * 1024 * 1024, max_bytes=1024 * 1024) == 'file too large - max 1MB'


def test_too_many_files_message():
    assert too_many_files_message() == 'Maximum 20 files allowed at once'


def test_fit_filename_keeps_short_names():
    assert fit_filename('beach.jpg') == 'beach.jpg'


def test_fit_filename_trims_stem_and_keeps_extension():
    fitted = fit_filename('a' * 300 + '.jpeg')

    assert len(fitted) == MAX_FILENAME_LENGTH
    assert fitted.endswith('.jpeg')
