import pytest

from eventsnap.services.upload_client import UploadProgress, UploadStatus


def test_new_files_start_pending():
    progress = UploadProgress()
    progress.add('0-a.jpg', 'a.jpg')

    entry = progress.get('0-a.jpg')
    assert entry.status is UploadStatus.PENDING
    assert entry.progress == 0
    assert progress.total == 1
    assert progress.completed == 0
    assert progress.percent == 0


def test_success_and_failure_paths():
    progress = UploadProgress()
    progress.add('a', 'a.jpg')
    progress.add('b', 'b.jpg')

    progress.start('a')
    progress.start('b')
    progress.complete('a')
    progress.fail('b', 'Storage upload failed')

    assert progress.get('a').status is UploadStatus.COMPLETED
    assert progress.get('a').progress == 100
    assert progress.get('b').status is UploadStatus.FAILED
    assert progress.get('b').error == 'Storage upload failed'
    assert (progress.completed, progress.succeeded, progress.failed) == (2, 1, 1)
    assert progress.percent == 100


@pytest.mark.parametrize('moves', [
    ['complete'],
    ['fail'],
    ['start', 'start'],
    ['start', 'complete', 'fail'],
    ['start', 'fail', 'start'],
])
def test_illegal_transitions_raise(moves):
    progress = UploadProgress()
    progress.add('a', 'a.jpg')

    with pytest.raises(ValueError):
        for move in moves:
            if move == 'fail':
                progress.fail('a', 'x')
            else:
                getattr(progress, move)('a')


def test_duplicate_file_id_rejected():
    progress = UploadProgress()
    progress.add('a', 'a.jpg')

    with pytest.raises(ValueError):
        progress.add('a', 'other.jpg')


def test_listener_sees_every_transition():
    seen = []
    progress = UploadProgress(listener=lambda file_id, entry, p: seen.append((file_id, entry.status, p.completed)))
    progress.add('a', 'a.jpg')

    progress.start('a')
    progress.complete('a')

    assert seen == [('a', UploadStatus.UPLOADING, 0), ('a', UploadStatus.COMPLETED, 1)]


def test_snapshot_is_a_copy():
    progress = UploadProgress()
    progress.add('a', 'a.jpg')
    snapshot = progress.snapshot()

    progress.start('a')

    assert snapshot['a'].status is UploadStatus.PENDING


def test_listener_errors_do_not_block_transitions():
    def broken(file_id, entry, progress):
        raise RuntimeError('display broke')

    progress = UploadProgress(listener=broken)
    progress.add('a', 'a.jpg')

    progress.start('a')
    progress.complete('a')

    assert progress.get('a').status is UploadStatus.COMPLETED
