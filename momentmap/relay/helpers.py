import time
import uuid


def now_ms() -> int:
    """Wall clock in epoch milliseconds, the unit every relay timestamp uses."""
    return int(time.time() * 1000)


def new_id() -> str:
    return uuid.uuid4().hex


def conversation_key(a: str, b: str) -> str:
    """Order-independent key for a pair of participants."""
    return "_".join(sorted((a, b)))
