"""
Service configuration.

Per-stage defaults live next to this file as {stage}.yaml. Environment
variables set by the deployment (TABLE_NAME, BUCKET_NAME, ...) win over
the YAML values.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

import yaml

CONFIG_DIR = Path(__file__).parent
STAGES = ("dev", "staging", "prod")
VERSION = "1.0.0"


@dataclass
class Settings:
    """Resolved configuration for one process or invocation."""

    stage: str = "dev"
    table_name: str = "mock-table"
    bucket_name: str = "mock-bucket"
    region: str = "us-east-1"
    log_level: str = "INFO"

    # Metrics
    metrics_enabled: bool = True
    metrics_namespace: str = "MyApp/Lambda"

    # Handler behaviour
    user_profiles: bool = True         # Companion profiles/{id}.json blobs
    upload_prefix: str = "uploads"
    default_folder: str = "uploads"
    scan_limit: int = 50
    list_max_keys: int = 1000

    version: str = VERSION


def _flag(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


def load_stage_file(stage: str) -> dict:
    """Read {stage}.yaml. Raises ValueError for unknown stages."""
    if stage not in STAGES:
        raise ValueError(f"Unknown stage '{stage}'. Known: {list(STAGES)}")

    with open(CONFIG_DIR / f"{stage}.yaml") as f:
        return yaml.safe_load(f) or {}


def load_settings(env: Optional[Mapping[str, str]] = None) -> Settings:
    """
    Build Settings from the stage file plus environment overrides.

    Args:
        env: Environment snapshot (defaults to os.environ)
    """
    env = os.environ if env is None else env
    stage = env.get("STAGE", "dev")
    config = load_stage_file(stage)

    metrics = config.get("metrics", {})
    handler = config.get("handler", {})

    settings = Settings(
        stage=stage,
        table_name=env.get("TABLE_NAME") or config.get("table_name", Settings.table_name),
        bucket_name=env.get("BUCKET_NAME") or config.get("bucket_name", Settings.bucket_name),
        region=env.get("AWS_REGION") or config.get("region", Settings.region),
        log_level=(env.get("LOG_LEVEL") or config.get("log_level", Settings.log_level)).upper(),
        metrics_enabled=metrics.get("enabled", Settings.metrics_enabled),
        metrics_namespace=env.get("METRICS_NAMESPACE") or metrics.get("namespace", Settings.metrics_namespace),
        user_profiles=handler.get("user_profiles", Settings.user_profiles),
        upload_prefix=handler.get("upload_prefix", Settings.upload_prefix).strip("/"),
        default_folder=handler.get("default_folder", Settings.default_folder).strip("/"),
        scan_limit=int(handler.get("scan_limit", Settings.scan_limit)),
        list_max_keys=int(handler.get("list_max_keys", Settings.list_max_keys)),
    )

    if "METRICS_ENABLED" in env:
        settings.metrics_enabled = _flag(env["METRICS_ENABLED"])

    return settings
