"""
Object storage for payment evidence (S3-compatible: MinIO, AWS S3, Spaces).

Transfer receipts uploaded at checkout are stored public-read so the
operators reviewing the draft order in Shopify can open them from the
order note.

Uploads never raise to the caller: a failed upload comes back as an
``EvidenceResult.failed`` and the order is placed with a fallback note.
"""
import logging
import mimetypes
import os
import time
from typing import Optional

import boto3
from botocore.client import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError

from b2b_portal.services.results import EvidenceResult

logger = logging.getLogger(__name__)


class EvidenceStorage:
    """
    S3-compatible storage for payment evidence.

    Usage:
        storage = EvidenceStorage.from_config(app.config)
        result = storage.upload_evidence(data, 'application/pdf', 'pago.pdf', 'a@b.cl')
        if result.succeeded:
            print(result.url)
    """

    def __init__(
        self,
        bucket: str,
        public_url: str,
        folder: str = 'comprobantes',
        client=None,
        endpoint: Optional[str] = None,
        access_key: Optional[str] = None,
        secret_key: Optional[str] = None,
        region: Optional[str] = None,
        timeout: int = 10
    ):
        self.bucket = bucket
        self.public_url = public_url.rstrip('/')
        self.folder = folder.strip('/')

        # boto3 client with bounded timeouts; evidence upload must not stall checkout
        self.client = client or boto3.client(
            's3',
            endpoint_url=endpoint,
            aws_access_key_id=access_key,
            aws_secret_access_key=secret_key,
            region_name=region,
            config=BotoConfig(
                signature_version='s3v4',
                connect_timeout=timeout,
                read_timeout=timeout,
                retries={'max_attempts': 1}
            )
        )

    @classmethod
    def from_config(cls, config) -> 'EvidenceStorage':
        """Build the storage from Flask config values."""
        return cls(
            bucket=config['S3_BUCKET'],
            public_url=config['S3_PUBLIC_URL'],
            folder=config.get('EVIDENCE_FOLDER', 'comprobantes'),
            endpoint=config['S3_ENDPOINT'],
            access_key=config['S3_ACCESS_KEY'],
            secret_key=config['S3_SECRET_KEY'],
            region=config['S3_REGION'],
            timeout=config.get('S3_TIMEOUT', 10)
        )

    def evidence_key(self, customer_email: str, filename: str, timestamp_ms: Optional[int] = None) -> str:
        """
        Object key for a customer's evidence file.

        The email is obfuscated (``@`` -> ``-at-``) and prefixed with the upload
        time in milliseconds, e.g. ``comprobantes/comprobante-1700000000000-ana-at-acme.cl.pdf``.
        """
        if timestamp_ms is None:
            timestamp_ms = int(time.time() * 1000)
        obfuscated = customer_email.replace('@', '-at-')
        extension = os.path.splitext(filename or '')[1].lower()
        return f"{self.folder}/comprobante-{timestamp_ms}-{obfuscated}{extension}"

    def upload_evidence(
        self,
        data: bytes,
        content_type: Optional[str],
        filename: str,
        customer_email: str
    ) -> EvidenceResult:
        """
        Upload a payment evidence file.

        Args:
            data: File contents (size and type already validated at the request boundary)
            content_type: MIME type (guessed from filename if None)
            filename: Original filename, kept for the fallback note
            customer_email: Owner of the evidence, used in the object key

        Returns:
            EvidenceResult with the public URL, or a failure marker
        """
        if not content_type:
            content_type = mimetypes.guess_type(filename)[0] or 'application/octet-stream'

        object_name = self.evidence_key(customer_email, filename)

        try:
            logger.info(f"[STORAGE] Uploading evidence '{object_name}' to bucket '{self.bucket}'...")
            self.client.put_object(
                Bucket=self.bucket,
                Key=object_name,
                Body=data,
                ContentType=content_type,
                ACL='public-read',
                Metadata={'original-filename': _ascii_filename(filename)}
            )
            url = self.get_public_url(object_name)
            logger.info(f"[STORAGE] ✓ Evidence uploaded: {url}")
            return EvidenceResult.uploaded(url, filename)

        except (ClientError, BotoCoreError) as e:
            logger.exception(f"[STORAGE] ✗ Evidence upload failed: {e}")
            return EvidenceResult.failed(filename, str(e))

    def get_public_url(self, object_name: str) -> str:
        """
        Get public URL for an object.

        Returns:
            Public URL (e.g., 'http://localhost:9000/uploads/comprobantes/comprobante-...pdf')
        """
        return f"{self.public_url}/{self.bucket}/{object_name}"


def _ascii_filename(filename: str) -> str:
    # S3 user metadata must be ASCII
    return (filename or '').encode('ascii', 'ignore').decode('ascii')
