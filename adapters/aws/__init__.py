from adapters.aws.cloudwatch_observer import CloudWatchObserver
from adapters.aws.dynamodb_kv_store import DynamoDBKeyValueStore
from adapters.aws.s3_blob_store import S3BlobStore

__all__ = [
    "CloudWatchObserver",
    "DynamoDBKeyValueStore",
    "S3BlobStore",
]
