"""
Event and photo routes (JSON).

Includes:
- Owner event list and event creation
- Public event lookup by code
- Gallery photo list
- Guest photo upload
"""

from datetime import datetime, timezone

from flask import Blueprint, request, jsonify, current_app
from sqlalchemy.exc import IntegrityError

from eventsnap import db
from eventsnap.models import Event, Photo, User
from eventsnap.services.ingestion import ingest_photos
from eventsnap.services.photo_rules import MAX_GUEST_NAME_LENGTH

events_bp = Blueprint('events', __name__, url_prefix='/api/events')


def event_to_dict(event, include_owner=False):
    data = {
        'id': event.id,
        'title': event.title,
        'description': event.description,
        'date': event.date.isoformat() if event.date else None,
        'location': event.location,
        'code': event.code,
        'ownerId': event.owner_id,
        'createdAt': event.created_at.isoformat() if event.created_at else None,
        'uploadUrl': f"{current_app.config['APP_URL'].rstrip('/')}/upload/{event.code}",
    }
    if include_owner:
        data['owner'] = {'name': event.owner.name if event.owner else None}
    return data


def photo_to_dict(photo):
    return {
        'id': photo.id,
        'filename': photo.filename,
        'storagePath': photo.storage_path,
        'mime': photo.mime,
        'bytes': photo.bytes,
        'guestName': photo.guest_name,
        'uploadedAt': photo.uploaded_at.isoformat() if photo.uploaded_at else None,
        'eventId': photo.event_id,
        'url': photo.url,
    }


def parse_event_date(value):
    """Parse an ISO-8601 date or datetime. Aware values are stored as naive UTC."""
    if not value:
        return None
    parsed = datetime.fromisoformat(value.replace('Z', '+00:00'))
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


# ============== OWNER EVENTS ==============

@events_bp.route('', methods=['GET'])
def list_events():
    """
    List an owner's events, newest first.

    Query params:
        userId: owner id (required)
    """
    user_id = request.args.get('userId', '').strip()
    if not user_id:
        return jsonify({'error': 'User ID is required'}), 400

    try:
        events = Event.query.filter_by(owner_id=user_id).order_by(
            Event.created_at.desc(), Event.id.desc()
        ).all()
        return jsonify({'events': [event_to_dict(e) for e in events]})
    except Exception as e:
        current_app.logger.error(f"Error fetching events for {user_id}: {e}")
        return jsonify({'error': 'Failed to fetch events'}), 500


@events_bp.route('', methods=['POST'])
def create_event():
    """
    Create an event.

    JSON body:
        title, code, ownerId (required)
        description, date (ISO-8601), location (optional)
    """
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        return jsonify({'error': 'Request body must be a JSON object'}), 400
    title = str(data.get('title') or '').strip()
    code = str(data.get('code') or '').strip()
    owner_id = str(data.get('ownerId') or '').strip()

    if not title or not code or not owner_id:
        return jsonify({'error': 'Title, code, and ownerId are required'}), 400

    try:
        event_date = parse_event_date(data.get('date'))
    except (AttributeError, TypeError, ValueError):
        return jsonify({'error': 'Invalid date'}), 400

    try:
        if db.session.get(User, owner_id) is None:
            return jsonify({'error': 'Unknown ownerId'}), 400
        if Event.query.filter_by(code=code).first():
            return jsonify({'error': 'Event code already exists'}), 409

        event = Event(
            title=title,
            description=data.get('description') or None,
            date=event_date,
            location=data.get('location') or None,
            code=code,
            owner_id=owner_id,
        )
        db.session.add(event)
        db.session.commit()
    except IntegrityError as e:
        db.session.rollback()
        current_app.logger.info(f"Event create rejected for code {code}: {e.orig}")
        return jsonify({'error': 'Event code already exists'}), 409
    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Error creating event {code}: {e}")
        return jsonify({'error': 'Failed to create event'}), 500

    current_app.logger.info(f"Created event {event.code} for owner {owner_id}")
    return jsonify({'event': event_to_dict(event)}), 201


# ============== PUBLIC EVENT PAGES ==============

@events_bp.route('/<code>', methods=['GET'])
def get_event(code):
    """Fetch one event by its public code, including the owner's name."""
    try:
        event = Event.query.filter_by(code=code).first()
        if not event:
            return jsonify({'error': 'Event not found'}), 404
        return jsonify({'event': event_to_dict(event, include_owner=True)})
    except Exception as e:
        current_app.logger.error(f"Error fetching event {code}: {e}")
        return jsonify({'error': 'Failed to fetch event'}), 500


@events_bp.route('/<code>/photos', methods=['GET'])
def list_photos(code):
    """All photos for an event, most recently uploaded first."""
    try:
        event = Event.query.filter_by(code=code).first()
        if not event:
            return jsonify({'error': 'Event not found'}), 404

        photos = Photo.query.filter_by(event_id=event.id).order_by(
            Photo.uploaded_at.desc(), Photo.id.desc()
        ).all()
        return jsonify({'photos': [photo_to_dict(p) for p in photos]})
    except Exception as e:
        current_app.logger.error(f"Error fetching photos for {code}: {e}")
        return jsonify({'error': 'Failed to fetch photos'}), 500


@events_bp.route('/<code>/photos', methods=['POST'])
def upload_photos(code):
    """
    Guest photo upload.

    Multipart form:
        files: one or more image files
        guestName: optional display name

    Returns 200 with the stored photos when at least one file made it,
    500 when none did. Per-file failures are listed under 'failed'.
    """
    files = [f for f in request.files.getlist('files') if f and f.filename]
    guest_name = request.form.get('guestName', '').strip() or None

    if not files:
        return jsonify({'error': 'No files provided'}), 400

    if guest_name and len(guest_name) > MAX_GUEST_NAME_LENGTH:
        return jsonify({'error': f'Guest name must be at most {MAX_GUEST_NAME_LENGTH} characters'}), 400

    try:
        event = Event.query.filter_by(code=code).first()
        if not event:
            return jsonify({'error': 'Event not found'}), 404

        results = ingest_photos(
            event,
            files,
            guest_name=guest_name,
            max_files=current_app.config['MAX_PHOTOS_PER_UPLOAD'],
            max_bytes=current_app.config['MAX_PHOTO_BYTES'],
        )
    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Error uploading photos for {code}: {e}")
        return jsonify({'error': 'Failed to upload photos'}), 500

    uploaded = [r.to_dict() for r in results if r.ok]
    failed = [r.to_dict() for r in results if not r.ok]

    if not uploaded:
        current_app.logger.error(f"No files stored for event {code} ({len(failed)} failed)")
        return jsonify({'error': 'Failed to upload any files', 'failed': failed}), 500

    return jsonify({
        'message': f'Successfully uploaded {len(uploaded)} photo(s)',
        'photos': uploaded,
        'failed': failed,
    })
