import io
import threading
from unittest.mock import patch

import pytest

from eventsnap import create_app, db
from eventsnap.models import User, Event
from eventsnap.services.storage_service import storage_service, StorageError


class FakeBucket:
    """In-memory stand-in for the object store. Keys ending in a name from
    `fail_names` fail to upload."""

    def __init__(self):
        self.objects = {}
        self.deleted = []
        self.fail_names = set()

    def upload_fileobj(self, file_obj, key, content_type):
        if any(key.endswith(f'-{name}') for name in self.fail_names):
            raise StorageError(f'Error uploading {key}: simulated outage')
        file_obj.seek(0)
        self.objects[key] = (file_obj.read(), content_type)
        return key

    def public_url(self, key):
        return f'https://photos.example.com/{key}'

    def delete_file(self, key):
        self.deleted.append(key)
        return self.objects.pop(key, None) is not None


class FakeResponse:
    def __init__(self, status_code, payload):
        self.status_code = status_code
        self._payload = payload

    def json(self):
        if self._payload is None:
            raise ValueError('No JSON body')
        return self._payload


class FlaskSession:
    """Routes EventSnapClient calls into the Flask test client, one at a time."""

    def __init__(self, test_client, base_url='http://testserver'):
        self.client = test_client
        self.base_url = base_url
        self.calls = []
        self._lock = threading.Lock()

    def request(self, method, url, timeout=None, json=None, params=None, files=None, data=None):
        path = url[len(self.base_url):]
        kwargs = {}
        if json is not None:
            kwargs['json'] = json
        if params:
            kwargs['query_string'] = params
        if files is not None:
            form = dict(data or {})
            for field_name, (filename, fh, mime) in files:
                form.setdefault(field_name, []).append((io.BytesIO(fh.read()), filename, mime))
            kwargs['data'] = form
            kwargs['content_type'] = 'multipart/form-data'

        with self._lock:
            self.calls.append((method, path))
            response = self.client.open(path, method=method, **kwargs)
            return FakeResponse(response.status_code, response.get_json(silent=True))


@pytest.fixture
def app():
    app = create_app('testing')
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def bucket():
    fake = FakeBucket()
    with patch.object(storage_service, 'upload_fileobj', side_effect=fake.upload_fileobj), \
            patch.object(storage_service, 'public_url', side_effect=fake.public_url), \
            patch.object(storage_service, 'delete_file', side_effect=fake.delete_file):
        yield fake


@pytest.fixture
def owner(app):
    user = User(id='user_1', email='olive@example.com', name='Olive Owner')
    db.session.add(user)
    db.session.commit()
    return user


@pytest.fixture
def event(app, owner):
    event = Event(title='Summer Party', code='PARTY1', owner_id=owner.id, location='Rooftop')
    db.session.add(event)
    db.session.commit()
    return event


def image(name='photo.jpg', size=1024, mime='image/jpeg'):
    """Multipart file tuple for the Flask test client."""
    return (io.BytesIO(b'\xff' * size), name, mime)
