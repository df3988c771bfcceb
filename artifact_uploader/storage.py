"""
Module wrapping the S3-compatible object store client.
"""
import logging
from typing import BinaryIO, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from .config import StorageSettings
from .errors import RegionConflictError, StorageError

logger = logging.getLogger(__name__)

DEFAULT_REGION = "us-east-1"

MISSING_BUCKET_CODES = {"404", "NoSuchBucket", "NotFound"}

REGION_CONFLICT_CODES = {
    "IllegalLocationConstraintException",
    "InvalidLocationConstraint",
    "AuthorizationHeaderMalformed",
}


def error_code(exception: ClientError) -> str:
    """Get the S3 error code of a client error."""
    return str(exception.response.get("Error", {}).get("Code", ""))


def create_client(settings: StorageSettings):
    """Create a boto3 S3 client for the configured server.

    Path-style addressing is used so bucket names never have to resolve as
    host names, which self-hosted servers such as MinIO require.
    """
    return boto3.client(
        "s3",
        endpoint_url=settings.server_url,
        aws_access_key_id=settings.access_key,
        aws_secret_access_key=settings.secret_key,
        region_name=settings.region or DEFAULT_REGION,
        config=Config(s3={"addressing_style": "path"}),
    )


class StorageGateway:
    """Bucket and object operations against the object store.

    Every method makes a single attempt; failures surface as StorageError.
    """

    def __init__(self, settings: StorageSettings, client=None):
        """Initialize the gateway.

        Args:
            settings: Connection settings for the object store
            client: Preconfigured boto3 S3 client, created from settings if None
        """
        self.settings = settings
        self.s3_client = client if client is not None else create_client(settings)

    @classmethod
    def from_settings(cls, settings: StorageSettings) -> "StorageGateway":
        return cls(settings)

    def bucket_exists(self, name: str) -> bool:
        """Check whether a bucket exists.

        Args:
            name: Bucket name

        Returns:
            True if the bucket exists, False otherwise

        Raises:
            StorageError: On transport or authentication failures
        """
        try:
            self.s3_client.head_bucket(Bucket=name)
            return True
        except ClientError as e:
            if error_code(e) in MISSING_BUCKET_CODES:
                return False
            raise StorageError(f"Error checking bucket {name}: {e}", code=error_code(e)) from e
        except BotoCoreError as e:
            raise StorageError(f"Error checking bucket {name}: {e}") from e

    def make_bucket(self, name: str) -> None:
        """Create a bucket in the configured region.

        Raises:
            RegionConflictError: If the server refuses the bucket's region
            StorageError: On any other failure
        """
        kwargs = {"Bucket": name}
        region = self.settings.region
        if region and region != DEFAULT_REGION:
            kwargs["CreateBucketConfiguration"] = {"LocationConstraint": region}

        try:
            self.s3_client.create_bucket(**kwargs)
        except ClientError as e:
            code = error_code(e)
            if code == "BucketAlreadyOwnedByYou":
                logger.debug(f"Bucket {name} already owned by us")
                return
            if code in REGION_CONFLICT_CODES:
                raise RegionConflictError(
                    f"Region conflict creating bucket {name}: {e}", code=code
                ) from e
            raise StorageError(f"Error creating bucket {name}: {e}", code=code) from e
        except BotoCoreError as e:
            raise StorageError(f"Error creating bucket {name}: {e}") from e

        logger.info(f"Created bucket {name}")

    def ensure_bucket(self, name: str) -> None:
        """Create the bucket unless it already exists."""
        if self.bucket_exists(name):
            logger.debug(f"Bucket {name} already exists")
            return
        self.make_bucket(name)

    def put_object(self, bucket: str, key: str, stream: BinaryIO,
                   size: Optional[int] = None) -> None:
        """Upload a single object from a byte stream.

        Args:
            bucket: Bucket name
            key: Object key
            stream: Readable binary stream with the object body
            size: Length of the body in bytes, if known

        Raises:
            StorageError: On transport, authentication or protocol failures
        """
        kwargs = {"Bucket": bucket, "Key": key, "Body": stream}
        if size is not None:
            kwargs["ContentLength"] = size

        try:
            self.s3_client.put_object(**kwargs)
        except ClientError as e:
            raise StorageError(
                f"Error uploading {key} to bucket {bucket}: {e}", code=error_code(e)
            ) from e
        except BotoCoreError as e:
            raise StorageError(f"Error uploading {key} to bucket {bucket}: {e}") from e

        logger.debug(f"Uploaded {key} to bucket {bucket}")
