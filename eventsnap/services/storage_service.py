import os
import boto3
from botocore.exceptions import BotoCoreError, ClientError


class StorageError(Exception):
    """Raised when an object cannot be written to the bucket."""


class StorageService:
    """S3-compatible object storage (Cloudflare R2 by default)."""

    def __init__(self):
        self.s3_client = None
        self.bucket_name = os.environ.get('R2_BUCKET_NAME')
        self.account_id = os.environ.get('R2_ACCOUNT_ID')
        self.access_key = os.environ.get('R2_ACCESS_KEY_ID')
        self.secret_key = os.environ.get('R2_SECRET_ACCESS_KEY')
        self.public_domain = os.environ.get('R2_PUBLIC_DOMAIN')
        self.endpoint_url = os.environ.get('R2_ENDPOINT_URL')

        if not self.endpoint_url and self.account_id:
            self.endpoint_url = f'https://{self.account_id}.r2.cloudflarestorage.com'

        if all([self.bucket_name, self.endpoint_url, self.access_key, self.secret_key]):
            self.s3_client = boto3.client(
                's3',
                endpoint_url=self.endpoint_url,
                aws_access_key_id=self.access_key,
                aws_secret_access_key=self.secret_key,
                region_name='auto'  # R2 requires a region, 'auto' is fine
            )

    def is_configured(self) -> bool:
        return self.s3_client is not None

    def upload_fileobj(self, file_obj, key: str, content_type: str) -> str:
        """
        Upload a file-like object to the bucket under `key`.

        Returns the key. Raises StorageError if the write fails.
        """
        if not self.s3_client:
            raise StorageError('Storage not configured. Check R2 settings.')

        try:
            file_obj.seek(0)
            self.s3_client.upload_fileobj(
                file_obj,
                self.bucket_name,
                key,
                ExtraArgs={'ContentType': content_type}
            )
        except (BotoCoreError, ClientError) as e:
            raise StorageError(f'Error uploading {key}: {e}') from e
        return key

    def delete_file(self, key: str) -> bool:
        """Delete an object by key. Returns False if it could not be deleted."""
        if not self.s3_client:
            return False

        try:
            self.s3_client.delete_object(Bucket=self.bucket_name, Key=key)
            return True
        except (BotoCoreError, ClientError):
            return False

    def public_url(self, key: str):
        """
        Resolve a URL guests can load the object from.

        Uses the public bucket domain when one is set, otherwise a presigned URL.
        """
        if self.public_domain:
            return f"{self.public_domain.rstrip('/')}/{key}"
        return self.get_presigned_url(key)

    def get_presigned_url(self, key, expiration=3600):
        """Generate a presigned URL to share an S3 object"""
        if not self.s3_client:
            return None
        try:
            return self.s3_client.generate_presigned_url('get_object',
                                                         Params={'Bucket': self.bucket_name,
                                                                 'Key': key},
                                                         ExpiresIn=expiration)
        except (BotoCoreError, ClientError):
            return None


storage_service = StorageService()
