"""
Shared metrics configuration for the NACM access layer.
"""

from typing import Dict, Any, Optional

from prometheus_client import Counter, Histogram, Info, CollectorRegistry


class MetricsCollector:
    """Centralized metrics collector for the decision service."""

    def __init__(self, service_name: str, registry: Optional[CollectorRegistry] = None,
                 enabled: bool = True):
        self.service_name = service_name
        # Each collector owns its registry so several engines can coexist
        self.registry = registry if registry is not None else CollectorRegistry()
        self.enabled = enabled
        self._metrics: Dict[str, Any] = {}
        self._setup_metrics()

    def _setup_metrics(self):
        """Set up decision metrics."""

        self._metrics["service_info"] = Info(
            "service_info",
            "Service information",
            registry=self.registry
        )
        self._metrics["service_info"].info({
            "service": self.service_name,
            "version": "1.0.0"
        })

        self._metrics["nacm_decisions_total"] = Counter(
            "nacm_decisions_total",
            "Total access decisions",
            ["effect", "source", "kind"],
            registry=self.registry
        )

        self._metrics["nacm_decision_duration_seconds"] = Histogram(
            "nacm_decision_duration_seconds",
            "Access decision duration in seconds",
            ["kind"],
            registry=self.registry
        )

        self._metrics["nacm_policy_reloads_total"] = Counter(
            "nacm_policy_reloads_total",
            "Total policy snapshot publications",
            registry=self.registry
        )

    def get_metric(self, name: str):
        """Get a metric by name."""
        return self._metrics.get(name)

    def record_decision(self, effect: str, source: str, kind: str, duration: float):
        """Record access decision metrics."""
        if not self.enabled:
            return

        self._metrics["nacm_decisions_total"].labels(
            effect=effect,
            source=source,
            kind=kind
        ).inc()

        self._metrics["nacm_decision_duration_seconds"].labels(kind=kind).observe(duration)

    def record_reload(self):
        """Record a policy snapshot publication."""
        if not self.enabled:
            return
        self._metrics["nacm_policy_reloads_total"].inc()

    def get_sample_value(self, name: str, labels: Optional[Dict[str, str]] = None) -> Optional[float]:
        """Read back a sample from this collector's registry."""
        return self.registry.get_sample_value(name, labels or {})
