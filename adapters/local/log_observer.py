"""
Local Observer: writes metrics and events to the log.

For local development and the simulator/emulator modes. No CloudWatch.
Metrics show up as "would send to CloudWatch" lines.
"""

import json
import logging

from service.interfaces.observer import LOG, METRIC, Observer

metrics_logger = logging.getLogger("lambda_service.metrics")
events_logger = logging.getLogger("lambda_service.events")

LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


class LogObserver(Observer):
    """Observer that only logs."""

    def on_event(self, kind: str, fields: dict) -> None:
        if kind == METRIC:
            dims = fields.get("dimensions") or {}
            metrics_logger.info(
                f"Mock metric (would send to CloudWatch): "
                f"{fields['name']}={fields['value']} {fields.get('unit', 'Count')}"
                + (f" {json.dumps(dims)}" if dims else "")
            )
        elif kind == LOG:
            log_event(events_logger, fields)
        else:
            events_logger.warning(f"LogObserver ignoring event kind: {kind}")


def log_event(logger: logging.Logger, fields: dict) -> None:
    """Write a log event as `message {json fields}` at its level."""
    extra = {k: v for k, v in fields.items() if k not in ("level", "message")}
    level = LEVELS.get(str(fields.get("level", "info")).lower(), logging.INFO)
    logger.log(level, f"{fields.get('message', '')} {json.dumps(extra, default=str)}")
