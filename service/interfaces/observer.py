"""
Observer Interface

Single telemetry seam for the router. Metrics and log events both arrive
as on_event(kind, fields).
Implementations: CloudWatchObserver (AWS), LogObserver (local).

Emission is fire-and-forget: a failing observer must never change the
response, so the helpers below swallow and log whatever on_event raises.
"""

import logging
from abc import ABC, abstractmethod
from typing import Optional

logger = logging.getLogger("lambda_service.observer")

METRIC = "metric"
LOG = "log"


class Observer(ABC):
    """Receives metric and log events from the router."""

    @abstractmethod
    def on_event(self, kind: str, fields: dict) -> None:
        """
        Handle one event.

        Args:
            kind: "metric" or "log"
            fields: For metrics: name, value, unit, dimensions.
                    For logs: level, message, plus arbitrary context.
        """
        ...

    def record_metric(
        self,
        name: str,
        value: float,
        unit: str = "Count",
        dimensions: Optional[dict] = None,
    ) -> None:
        self._emit(METRIC, {
            "name": name,
            "value": value,
            "unit": unit,
            "dimensions": dict(dimensions or {}),
        })

    def log_event(self, level: str, message: str, **fields) -> None:
        self._emit(LOG, {"level": level, "message": message, **fields})

    def _emit(self, kind: str, fields: dict) -> None:
        try:
            self.on_event(kind, fields)
        except Exception as e:
            logger.error(f"Observer {type(self).__name__} dropped {kind} event: {e}")
