"""Wall-clock timers used by the batch runner."""
import logging
import time
from contextlib import contextmanager
from functools import wraps
from typing import Dict, Optional


@contextmanager
def section_timer(
    name: str,
    logger: logging.Logger,
    timings: Optional[Dict[str, float]] = None,
    level: int = logging.DEBUG,
):
    """Time a block; with ``timings`` the seconds are summed under ``name``."""
    start = time.perf_counter()
    try:
        yield
    finally:
        elapsed = time.perf_counter() - start
        if timings is not None:
            timings[name] = timings.get(name, 0.0) + elapsed
        logger.log(level, "TIMER %s took %.3f s", name, elapsed)


def timeit(logger: logging.Logger, name: Optional[str] = None):
    """Decorator form of ``section_timer``, logged at INFO."""
    def deco(fn):
        label = name or fn.__qualname__

        @wraps(fn)
        def wrapper(*args, **kwargs):
            with section_timer(label, logger, level=logging.INFO):
                return fn(*args, **kwargs)
        return wrapper
    return deco
