from datetime import datetime
from eventsnap import db


class Photo(db.Model):
    """Guest-uploaded photo stored in object storage."""
    __tablename__ = 'photos'

    id = db.Column(db.Integer, primary_key=True)
    event_id = db.Column(db.Integer, db.ForeignKey('events.id'), nullable=False, index=True)
    filename = db.Column(db.String(255), nullable=False)
    storage_path = db.Column(db.String(500), unique=True, nullable=False)
    mime = db.Column(db.String(100), nullable=False)
    bytes = db.Column(db.Integer, nullable=False)
    guest_name = db.Column(db.String(100), nullable=True)  # None for anonymous uploads
    uploaded_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)

    @property
    def url(self):
        from eventsnap.services.storage_service import storage_service
        return storage_service.public_url(self.storage_path)

    def __repr__(self):
        return f'<Photo {self.id} event={self.event_id}>'
