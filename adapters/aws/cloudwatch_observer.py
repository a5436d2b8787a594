"""
AWS Observer: CloudWatch custom metrics.

Metrics go to CloudWatch under the configured namespace; log events go to
the function's log stream (stdout → CloudWatch Logs).

put_metric_data runs on a single background worker so a slow or failing
CloudWatch call never holds up the response. Failures are logged and dropped.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from adapters.local.log_observer import log_event
from service.interfaces.observer import LOG, METRIC, Observer

logger = logging.getLogger("lambda_service.cloudwatch")
events_logger = logging.getLogger("lambda_service.events")


class CloudWatchObserver(Observer):
    """Sends metrics to CloudWatch, logs everything else."""

    def __init__(self, namespace: str, region: str = "us-east-1", client=None, executor=None):
        self.namespace = namespace
        self.client = client or boto3.client("cloudwatch", region_name=region)
        self.executor = executor or ThreadPoolExecutor(max_workers=1, thread_name_prefix="metrics")

    def on_event(self, kind: str, fields: dict) -> None:
        if kind == METRIC:
            self.executor.submit(self._put_metric, fields)
        elif kind == LOG:
            log_event(events_logger, fields)
        else:
            logger.warning(f"CloudWatchObserver ignoring event kind: {kind}")

    def _put_metric(self, fields: dict) -> None:
        datum = {
            "MetricName": fields["name"],
            "Value": float(fields["value"]),
            "Unit": fields.get("unit", "Count"),
            "Timestamp": datetime.now(timezone.utc),
        }
        dimensions = fields.get("dimensions") or {}
        if dimensions:
            datum["Dimensions"] = [
                {"Name": name, "Value": str(value)} for name, value in dimensions.items()
            ]

        try:
            self.client.put_metric_data(Namespace=self.namespace, MetricData=[datum])
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Failed to put custom metric {fields['name']}: {e}")
