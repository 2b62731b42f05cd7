"""
Prometheus metrics for disaster recovery monitoring
"""

from prometheus_client import Counter, Gauge, Histogram

recoveries_triggered = Counter(
    'dr_recoveries_triggered_total',
    'Recovery executions triggered',
    ['trigger']
)

recoveries_finished = Counter(
    'dr_recoveries_finished_total',
    'Recovery executions reaching a terminal status',
    ['status']
)

active_recoveries = Gauge(
    'dr_active_recoveries',
    'Recovery executions not yet in a terminal status'
)

step_duration = Histogram(
    'dr_recovery_step_duration_seconds',
    'Recovery step execution time',
    ['step_type', 'status'],
    buckets=(0.1, 1, 5, 30, 60, 300, 900, 1800, 3600)
)

step_retries = Counter(
    'dr_recovery_step_retries_total',
    'Recovery step retry attempts',
    ['step_type']
)

health_check_failures = Counter(
    'dr_health_check_failures_total',
    'Failed subsystem health probes',
    ['system']
)

health_failure_count = Gauge(
    'dr_health_failure_count',
    'Consecutive health ticks with at least one unhealthy subsystem'
)
