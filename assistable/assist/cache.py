import functools
import logging
from typing import Callable, Dict, Any

LOGGER = logging.getLogger(__name__)

_CACHE: Dict[str, Any] = {}


def assist_cache(func: Callable) -> Callable:
    """
    Memoizes a zero-argument factory (usually a classmethod like Config.config()).
    The cached instance lives until assist_cache_clear() is called.
    """
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        key = f"{func.__module__}.{func.__qualname__}"
        if args:
            # classmethods receive cls first
            key = f"{key}[{getattr(args[0], '__name__', repr(args[0]))}]"
        if key not in _CACHE:
            LOGGER.debug(f"Creating cached instance for {key}")
            _CACHE[key] = func(*args, **kwargs)
        return _CACHE[key]
    return wrapper


def assist_cache_clear() -> None:
    LOGGER.debug(f"Clearing {len(_CACHE)} cached instances")
    _CACHE.clear()
