"""
Prometheus metrics for notification delivery.

Labels are limited to channel name and outcome. Ticket refs, ids and
destinations never become label values.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from prometheus_client import Counter, Histogram
from prometheus_client.registry import CollectorRegistry

if TYPE_CHECKING:
    from ticketrelay.delivery.orchestrator import DeliveryReport
    from ticketrelay.delivery.retry import AttemptRecord


class DeliveryMetricsExporter:
    """
    Prometheus exporter fed by the DeliveryOrchestrator.

    Usage:
        registry = CollectorRegistry()
        exporter = DeliveryMetricsExporter(registry=registry)
        orchestrator = DeliveryOrchestrator.from_config(config, exporter=exporter)
        # generate_latest(registry) -> bytes for /metrics endpoint
    """

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        self._registry = registry or CollectorRegistry()

        self._attempts = Counter(
            "ticketrelay_delivery_attempts",
            "Channel send attempts by outcome",
            labelnames=("channel", "outcome"),
            registry=self._registry,
        )
        self._backoff_seconds = Counter(
            "ticketrelay_delivery_backoff_seconds",
            "Total time scheduled for backoff between attempts",
            labelnames=("channel",),
            registry=self._registry,
        )
        self._results = Counter(
            "ticketrelay_delivery_results",
            "Final delivery results per event",
            labelnames=("outcome",),
            registry=self._registry,
        )
        self._delivered_by = Counter(
            "ticketrelay_delivery_delivered_by",
            "Events delivered, by the channel that succeeded",
            labelnames=("channel",),
            registry=self._registry,
        )
        self._attempts_per_event = Histogram(
            "ticketrelay_delivery_attempts_per_event",
            "Attempts made across all channels for one event",
            buckets=(0, 1, 2, 3, 4, 6, 9),
            registry=self._registry,
        )

    @property
    def registry(self) -> CollectorRegistry:
        return self._registry

    def record_attempt(self, attempt: AttemptRecord) -> None:
        self._attempts.labels(channel=attempt.channel, outcome=attempt.status.value).inc()
        if attempt.wait_ms:
            self._backoff_seconds.labels(channel=attempt.channel).inc(attempt.wait_ms / 1000)

    def record_report(self, report: DeliveryReport) -> None:
        self._results.labels(outcome="delivered" if report.delivered else "failed").inc()
        if report.delivered and report.channel:
            self._delivered_by.labels(channel=report.channel).inc()
        self._attempts_per_event.observe(len(report.attempts))
