import time


def simulate_latency(ms: int) -> None:
    """Block for an external-call-shaped duration. 0 disables."""
    if ms > 0:
        time.sleep(ms / 1000.0)
