"""
Backend selection.

Decides, from an environment snapshot, which implementation backs the
key-value store, the blob store and the observer:

  1. USE_LOCALSTACK=true            → emulator (AWS clients on a local endpoint)
  2. not on AWS / test mode / USE_MOCK_AWS=true → in-process simulators
  3. otherwise                      → real AWS with ambient credentials

Both store handles are derived from the same BackendSignals, so one
request never mixes backends.
"""

import logging
import os
from dataclasses import dataclass
from enum import Enum
from typing import Mapping, Optional

from adapters.aws.cloudwatch_observer import CloudWatchObserver
from adapters.aws.dynamodb_kv_store import DynamoDBKeyValueStore
from adapters.aws.s3_blob_store import S3BlobStore
from adapters.local.log_observer import LogObserver
from adapters.local.memory_blob_store import InMemoryBlobStore
from adapters.local.memory_kv_store import InMemoryKeyValueStore
from service.config import Settings
from service.interfaces.blob_store import BlobStore
from service.interfaces.kv_store import KeyValueStore
from service.interfaces.observer import Observer

logger = logging.getLogger("lambda_service.backends")

# Fixed emulator wiring, LocalStack accepts any credentials
EMULATOR_ENDPOINT = "http://localhost:4566"
EMULATOR_REGION = "us-east-1"
EMULATOR_CREDENTIALS = {"aws_access_key_id": "test", "aws_secret_access_key": "test"}


class BackendMode(str, Enum):
    SIMULATOR = "simulator"
    EMULATOR = "emulator"
    REMOTE = "remote"


ENVIRONMENT_LABELS = {
    BackendMode.SIMULATOR: "local-mock",
    BackendMode.EMULATOR: "localstack",
    BackendMode.REMOTE: "aws",
}


@dataclass(frozen=True)
class BackendSignals:
    """The environment inputs to backend selection."""

    in_cloud_runtime: bool = False
    test_mode: bool = False
    force_mock: bool = False
    use_emulator: bool = False
    emulator_endpoint: str = EMULATOR_ENDPOINT

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "BackendSignals":
        env = os.environ if env is None else env
        return cls(
            in_cloud_runtime=bool(env.get("AWS_EXECUTION_ENV")),
            test_mode=env.get("SERVICE_ENV", "").lower() == "test",
            force_mock=env.get("USE_MOCK_AWS", "").lower() == "true",
            use_emulator=env.get("USE_LOCALSTACK", "").lower() == "true",
            emulator_endpoint=env.get("LOCALSTACK_ENDPOINT") or EMULATOR_ENDPOINT,
        )


def select_backend(signals: BackendSignals) -> BackendMode:
    """Pure decision function. First match wins."""
    if signals.use_emulator:
        return BackendMode.EMULATOR
    if not signals.in_cloud_runtime or signals.test_mode or signals.force_mock:
        return BackendMode.SIMULATOR
    return BackendMode.REMOTE


def create_kv_store(
    signals: BackendSignals,
    settings: Settings,
    simulator: Optional[InMemoryKeyValueStore] = None,
) -> KeyValueStore:
    """Build the key-value handle. `simulator` reuses an existing in-process store."""
    mode = select_backend(signals)
    if mode == BackendMode.EMULATOR:
        logger.info(f"Using LocalStack DynamoDB at {signals.emulator_endpoint}")
        return DynamoDBKeyValueStore(
            region=EMULATOR_REGION,
            endpoint_url=signals.emulator_endpoint,
            **EMULATOR_CREDENTIALS,
        )
    if mode == BackendMode.SIMULATOR:
        logger.info("Using simulated DynamoDB for local testing")
        return simulator if simulator is not None else InMemoryKeyValueStore()
    return DynamoDBKeyValueStore(region=settings.region)


def create_blob_store(
    signals: BackendSignals,
    settings: Settings,
    simulator: Optional[InMemoryBlobStore] = None,
) -> BlobStore:
    """Build the blob handle. `simulator` reuses an existing in-process store."""
    mode = select_backend(signals)
    if mode == BackendMode.EMULATOR:
        logger.info(f"Using LocalStack S3 at {signals.emulator_endpoint}")
        return S3BlobStore(
            region=EMULATOR_REGION,
            endpoint_url=signals.emulator_endpoint,
            path_style=True,
            **EMULATOR_CREDENTIALS,
        )
    if mode == BackendMode.SIMULATOR:
        logger.info("Using simulated S3 for local testing")
        return simulator if simulator is not None else InMemoryBlobStore()
    return S3BlobStore(region=settings.region)


def create_observer(signals: BackendSignals, settings: Settings) -> Observer:
    """CloudWatch only on real AWS with metrics enabled; the log otherwise."""
    if select_backend(signals) == BackendMode.REMOTE and settings.metrics_enabled:
        return CloudWatchObserver(settings.metrics_namespace, region=settings.region)
    return LogObserver()


@dataclass
class Backends:
    """Everything the router needs, resolved from one environment snapshot."""

    kv: KeyValueStore
    blobs: BlobStore
    observer: Observer
    mode: BackendMode

    @property
    def environment(self) -> str:
        return ENVIRONMENT_LABELS[self.mode]


def resolve_backends(
    settings: Settings,
    env: Optional[Mapping[str, str]] = None,
    signals: Optional[BackendSignals] = None,
) -> Backends:
    """Resolve all handles at once. Explicit `signals` win over `env`."""
    signals = signals or BackendSignals.from_env(env)
    mode = select_backend(signals)
    logger.info(f"Backend mode: {mode.value}")
    return Backends(
        kv=create_kv_store(signals, settings),
        blobs=create_blob_store(signals, settings),
        observer=create_observer(signals, settings),
        mode=mode,
    )
