# Import all models here so they're registered with SQLAlchemy
from eventsnap.models.user import User
from eventsnap.models.event import Event
from eventsnap.models.photo import Photo

__all__ = ['User', 'Event', 'Photo']
