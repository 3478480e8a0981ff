from datetime import datetime
from eventsnap import db


class Event(db.Model):
    """Owner-created collection point for guest photos, addressed by its code."""
    __tablename__ = 'events'

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=True)
    date = db.Column(db.DateTime, nullable=True)
    location = db.Column(db.String(255), nullable=True)
    code = db.Column(db.String(32), unique=True, nullable=False, index=True)
    owner_id = db.Column(db.String(64), db.ForeignKey('users.id'), nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    # Relationships
    photos = db.relationship('Photo', backref='event', lazy='dynamic')

    def __repr__(self):
        return f'<Event {self.code}>'
