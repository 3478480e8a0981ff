# Business logic services
from eventsnap.services.storage_service import storage_service, StorageError
from eventsnap.services.ingestion import ingest_photos, IngestResult

__all__ = [
    'storage_service',
    'StorageError',
    'ingest_photos',
    'IngestResult',
]
