"""
Generator Metrics Client

Thin wrapper around prometheus_client for the sysctl generator.
Simplifies pushing run metrics to Prometheus Push Gateway.

Usage:
    from sysctl_generation.generator_metrics_client import GeneratorMetricsClient

    metrics = GeneratorMetricsClient(run_id='abc-123', profile='web')
    metrics.inc_run('success')
    metrics.set_parameter_count(118)
    metrics.push()
"""

import os
import logging
from typing import Optional
from prometheus_client import CollectorRegistry, Gauge, Counter, Histogram, push_to_gateway

logger = logging.getLogger(__name__)


class GeneratorMetricsClient:
    """
    Prometheus metrics client for generation runs.

    Pushing is opt-in for a command line tool, so PUSH_METRICS_ENABLED
    defaults to false here; every method is a no-op while disabled.
    """

    def __init__(self, run_id: str, profile: str, pushgateway_url: Optional[str] = None):
        """
        Initialize metrics client for one generation run.

        Args:
            run_id: Identifier used as the push gateway job suffix
            profile: Workload profile name (e.g., 'database')
            pushgateway_url: Push Gateway URL (default from env or http://pushgateway:9091)
        """
        self.run_id = run_id
        self.profile = profile

        self.enabled = os.getenv("PUSH_METRICS_ENABLED", "false").lower() == "true"
        self.pushgateway_url = pushgateway_url or os.getenv("PUSH_GATEWAY_URL", "http://pushgateway:9091")

        if not self.enabled:
            logger.debug("Prometheus metrics pushing disabled via PUSH_METRICS_ENABLED")
            return

        self.registry = CollectorRegistry()
        self._init_metrics()

        logger.debug(f"Initialized {self.__class__.__name__} for run {run_id}")

    def _init_metrics(self):
        """Initialize Prometheus metrics"""
        self._run_count = Counter(
            'godon_sysctl_generator_runs_total',
            'Generation runs by outcome',
            ['profile', 'status'],
            registry=self.registry
        )

        # Number of parameters in the rendered artifact
        self._parameter_count = Gauge(
            'godon_sysctl_generator_parameters',
            'Parameters emitted by the last run',
            ['profile'],
            registry=self.registry
        )

        # Values contributed by the profile and IPv6 layers
        self._override_count = Counter(
            'godon_sysctl_generator_overrides_total',
            'Override values applied per layer',
            ['profile', 'layer'],
            registry=self.registry
        )

        self._render_duration = Histogram(
            'godon_sysctl_generator_render_duration_seconds',
            'Time to resolve and render the artifact',
            ['profile'],
            buckets=[0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1],
            registry=self.registry
        )

    def push(self) -> bool:
        """
        Push all metrics to Push Gateway.

        Returns:
            True if push succeeded, False otherwise
        """
        if not self.enabled:
            return False

        try:
            push_to_gateway(
                self.pushgateway_url,
                job=f'sysctl_generator_{self.run_id}',
                registry=self.registry
            )
            logger.debug(f"Pushed metrics to {self.pushgateway_url}")
            return True
        except Exception as e:
            logger.warning(f"Failed to push metrics to {self.pushgateway_url}: {e}")
            return False

    def inc_run(self, status: str):
        """
        Increment run counter.

        Args:
            status: 'success', 'invalid' or 'failure'
        """
        if not self.enabled:
            return
        self._run_count.labels(profile=self.profile, status=status).inc()

    def set_parameter_count(self, count: int):
        if not self.enabled:
            return
        self._parameter_count.labels(profile=self.profile).set(count)

    def inc_overrides(self, layer: str, count: int):
        """Add the number of values a layer ('profile' or 'ipv6') contributed"""
        if not self.enabled:
            return
        self._override_count.labels(profile=self.profile, layer=layer).inc(count)

    def observe_render_duration(self, duration_seconds: float):
        if not self.enabled:
            return
        self._render_duration.labels(profile=self.profile).observe(duration_seconds)
