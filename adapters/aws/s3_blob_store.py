"""
AWS Blob Store: S3.

Objects are addressed as s3://{bucket}/{key}. Works against real S3 or a
local emulation endpoint; emulators need path-style addressing.
"""

from typing import Optional, Union

import boto3
from botocore.config import Config
from botocore.exceptions import ClientError

from service.interfaces.blob_store import (
    DEFAULT_CONTENT_TYPE,
    DEFAULT_MAX_KEYS,
    BlobNotFound,
    BlobObject,
    BlobStore,
    BlobSummary,
    DeleteBlobResult,
    ListBlobsResult,
    PutBlobResult,
    to_bytes,
)

MISSING_BUCKET_CODES = ("NoSuchBucket",)
MISSING_KEY_CODES = ("NoSuchKey", "404", "NotFound")


class S3BlobStore(BlobStore):
    """S3-backed object storage."""

    def __init__(
        self,
        region: str = "us-east-1",
        endpoint_url: Optional[str] = None,
        aws_access_key_id: Optional[str] = None,
        aws_secret_access_key: Optional[str] = None,
        path_style: bool = False,
        client=None,
    ):
        self.endpoint_url = endpoint_url
        config = Config(s3={"addressing_style": "path"}) if path_style else None
        self.client = client or boto3.client(
            "s3",
            region_name=region,
            endpoint_url=endpoint_url,
            aws_access_key_id=aws_access_key_id,
            aws_secret_access_key=aws_secret_access_key,
            config=config,
        )

    async def put(
        self,
        bucket: str,
        key: str,
        body: Union[bytes, str],
        content_type: Optional[str] = None,
    ) -> PutBlobResult:
        response = self.client.put_object(
            Bucket=bucket,
            Key=key,
            Body=to_bytes(body),
            ContentType=content_type or DEFAULT_CONTENT_TYPE,
        )
        meta = response.get("ResponseMetadata", {})
        return PutBlobResult(
            etag=response.get("ETag", ""),
            status_code=meta.get("HTTPStatusCode", 200),
            request_id=meta.get("RequestId", ""),
        )

    async def get(self, bucket: str, key: str) -> BlobObject:
        try:
            response = self.client.get_object(Bucket=bucket, Key=key)
        except ClientError as e:
            code = e.response["Error"]["Code"]
            if code in MISSING_BUCKET_CODES:
                raise BlobNotFound(BlobNotFound.NO_SUCH_BUCKET, bucket, key)
            if code in MISSING_KEY_CODES:
                raise BlobNotFound(BlobNotFound.NO_SUCH_KEY, bucket, key)
            raise

        body = response["Body"].read()
        return BlobObject(
            key=key,
            body=body,
            content_type=response.get("ContentType", DEFAULT_CONTENT_TYPE),
            last_modified=response.get("LastModified"),
            content_length=response.get("ContentLength", len(body)),
        )

    async def list(
        self,
        bucket: str,
        prefix: str = "",
        max_keys: int = DEFAULT_MAX_KEYS,
    ) -> ListBlobsResult:
        try:
            response = self.client.list_objects_v2(
                Bucket=bucket,
                Prefix=prefix or "",
                MaxKeys=max_keys,
            )
        except ClientError as e:
            # A missing bucket is an empty namespace, not an error
            if e.response["Error"]["Code"] in MISSING_BUCKET_CODES:
                return ListBlobsResult()
            raise

        contents = [
            BlobSummary(
                key=obj["Key"],
                last_modified=obj.get("LastModified"),
                size=obj.get("Size", 0),
                storage_class=obj.get("StorageClass", "STANDARD"),
            )
            for obj in response.get("Contents", [])
        ]
        meta = response.get("ResponseMetadata", {})
        return ListBlobsResult(
            contents=contents,
            key_count=response.get("KeyCount", len(contents)),
            status_code=meta.get("HTTPStatusCode", 200),
            request_id=meta.get("RequestId", ""),
        )

    async def delete(self, bucket: str, key: str) -> DeleteBlobResult:
        try:
            response = self.client.delete_object(Bucket=bucket, Key=key)
        except ClientError as e:
            if e.response["Error"]["Code"] in MISSING_BUCKET_CODES:
                return DeleteBlobResult()
            raise
        meta = response.get("ResponseMetadata", {})
        return DeleteBlobResult(
            status_code=meta.get("HTTPStatusCode", 204),
            request_id=meta.get("RequestId", ""),
        )
