from datetime import datetime, timedelta

from eventsnap import db
from eventsnap.models import Event, Photo


def _create(client, **overrides):
    body = {
        'title': 'Wedding',
        'code': 'WED123',
        'ownerId': 'user_1',
        'description': 'Ceremony and reception',
        'date': '2026-06-20T15:00:00Z',
        'location': 'Lakeside',
    }
    body.update(overrides)
    return client.post('/api/events', json=body)


def test_create_event(client, owner):
    response = _create(client)

    assert response.status_code == 201
    event = response.get_json()['event']
    assert event['code'] == 'WED123'
    assert event['title'] == 'Wedding'
    assert event['ownerId'] == 'user_1'
    assert event['date'] == '2026-06-20T15:00:00'
    assert event['uploadUrl'] == 'http://localhost:5000/upload/WED123'


def test_create_event_requires_title_code_and_owner(client, owner):
    assert _create(client, title='').status_code == 400
    assert _create(client, code=None).status_code == 400
    assert _create(client, ownerId='').status_code == 400
    assert Event.query.count() == 0


def test_create_event_rejects_bad_date(client, owner):
    response = _create(client, date='next tuesday')

    assert response.status_code == 400
    assert response.get_json()['error'] == 'Invalid date'


def test_create_event_rejects_unknown_owner(client, owner):
    assert _create(client, ownerId='nobody').status_code == 400


def test_duplicate_event_code_is_handled(client, owner):
    assert _create(client).status_code == 201

    response = _create(client, title='Another wedding')

    assert response.status_code == 409
    assert response.get_json()['error'] == 'Event code already exists'
    assert Event.query.count() == 1


def test_list_events_newest_first(client, owner):
    older = Event(title='Old', code='OLD001', owner_id='user_1',
                  created_at=datetime(2025, 1, 1))
    newer = Event(title='New', code='NEW001', owner_id='user_1',
                  created_at=datetime(2026, 1, 1))
    db.session.add_all([older, newer])
    db.session.commit()

    response = client.get('/api/events?userId=user_1')

    assert response.status_code == 200
    assert [e['code'] for e in response.get_json()['events']] == ['NEW001', 'OLD001']


def test_list_events_only_returns_owners_events(client, owner, event):
    response = client.get('/api/events?userId=someone_else')

    assert response.status_code == 200
    assert response.get_json()['events'] == []


def test_list_events_requires_user_id(client):
    response = client.get('/api/events')

    assert response.status_code == 400
    assert response.get_json()['error'] == 'User ID is required'


def test_get_event_includes_owner_name(client, event):
    response = client.get('/api/events/PARTY1')

    assert response.status_code == 200
    data = response.get_json()['event']
    assert data['title'] == 'Summer Party'
    assert data['owner'] == {'name': 'Olive Owner'}


def test_unknown_event_is_not_found(client, event):
    response = client.get('/api/events/NOPE99')

    assert response.status_code == 404
    assert response.get_json() == {'error': 'Event not found'}


def test_unknown_event_photos_not_found(client, event):
    response = client.get('/api/events/NOPE99/photos')

    assert response.status_code == 404
    assert 'photos' not in response.get_json()


def test_photos_listed_newest_first(client, event, bucket):
    base = datetime(2026, 5, 1, 12, 0, 0)
    for i, minutes in enumerate([5, 30, 10, 0]):
        db.session.add(Photo(
            event_id=event.id,
            filename=f'p{i}.jpg',
            storage_path=f'events/PARTY1/p{i}.jpg',
            mime='image/jpeg',
            bytes=100,
            uploaded_at=base + timedelta(minutes=minutes),
        ))
    db.session.commit()

    response = client.get('/api/events/PARTY1/photos')

    assert response.status_code == 200
    photos = response.get_json()['photos']
    assert len(photos) == 4
    assert [p['filename'] for p in photos] == ['p1.jpg', 'p2.jpg', 'p0.jpg', 'p3.jpg']
    assert photos[0]['url'] == 'https://photos.example.com/events/PARTY1/p1.jpg'
    assert photos[0]['guestName'] is None


def test_photos_for_other_events_are_excluded(client, owner, event, bucket):
    other = Event(title='Other', code='OTHER1', owner_id=owner.id)
    db.session.add(other)
    db.session.commit()
    db.session.add(Photo(event_id=other.id, filename='x.jpg', storage_path='events/OTHER1/x.jpg',
                         mime='image/jpeg', bytes=1))
    db.session.commit()

    response = client.get('/api/events/PARTY1/photos')

    assert response.get_json()['photos'] == []


def test_health(client):
    assert client.get('/health').get_json()['status'] == 'healthy'


def test_create_event_rejects_non_object_body(client, owner):
    response = client.post('/api/events', json=['x'])

    assert response.status_code == 400
    assert response.get_json()['error'] == 'Request body must be a JSON object'
    assert Event.query.count() == 0
