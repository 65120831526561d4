"""Prometheus metrics for BridgeNode."""
from prometheus_client import Counter, Histogram, Info
from bridgenode.core.enums import JobOutcome


# Job metrics
jobs_total = Counter(
    'bridgenode_jobs_total',
    'Total number of jobs submitted to workers, by outcome',
    ['outcome']
)

job_duration_seconds = Histogram(
    'bridgenode_job_duration_seconds',
    'Time from job write to classified outcome in seconds',
    ['outcome'],
    buckets=[0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0]
)

# Worker metrics
worker_spawn_failures_total = Counter(
    'bridgenode_worker_spawn_failures_total',
    'Total number of workers that could not be launched'
)

worker_faults_total = Counter(
    'bridgenode_worker_faults_total',
    'Total number of unparseable worker outputs',
    ['parser']
)

# System info
system_info = Info(
    'bridgenode_system',
    'BridgeNode system information'
)


def record_job_outcome(outcome: JobOutcome, duration: float) -> None:
    """Record a classified job outcome and its duration."""
    jobs_total.labels(outcome=outcome.value).inc()
    job_duration_seconds.labels(outcome=outcome.value).observe(duration)


def record_spawn_failure() -> None:
    """Record a worker launch failure."""
    worker_spawn_failures_total.inc()


def record_worker_fault(parser: bool) -> None:
    """Record a worker fault, split by parse failure vs raw data."""
    worker_faults_total.labels(parser="yes" if parser else "no").inc()


def init_system_info(version: str) -> None:
    """
    Initialize system information metric.

    Args:
        version: Application version
    """
    system_info.info({
        'version': version,
        'name': 'BridgeNode'
    })
