"""
In-process counters for observability. Process-local; for multi-worker use external metrics (e.g. Prometheus).
"""
import threading

# Attempt append: number of duplicate attempt_number collisions (concurrent submits for one enrollment).
attempt_append_conflicts_total: int = 0
_attempt_append_conflicts_lock = threading.Lock()


def increment_attempt_append_conflicts_total() -> int:
    """Increment attempt_append_conflicts_total; return new value. Thread-safe."""
    global attempt_append_conflicts_total
    with _attempt_append_conflicts_lock:
        attempt_append_conflicts_total += 1
        return attempt_append_conflicts_total
