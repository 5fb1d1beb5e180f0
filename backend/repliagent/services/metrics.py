"""
Prometheus metrics for MongoDB operations issued by the agent.
"""
from contextlib import contextmanager
from prometheus_client import Counter, Histogram


mongodb_ops_duration = Histogram(
    'repliagent_mongodb_operations_duration_seconds',
    'Duration (in seconds) of MongoDB operations issued to the server',
    ['op'],
    buckets=(0.005, 0.01, 0.05, 0.1, 0.5, 1.0, 1.5, 2.5, 4.0)
)

mongodb_ops_errors = Counter(
    'repliagent_mongodb_operations_error_total',
    'Number of MongoDB operations the server returned an error for',
    ['op']
)


@contextmanager
def observe_mongodb_op(op: str):
    """
    Observe the execution of a MongoDB server operation.

    Times the wrapped block and counts it as an error if it raises.
    """
    with mongodb_ops_duration.labels(op=op).time():
        try:
            yield
        except Exception:
            mongodb_ops_errors.labels(op=op).inc()
            raise
