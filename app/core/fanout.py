"""Run independent Supabase calls concurrently and join them before continuing."""
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, List, Optional, Sequence

from app.config import settings


def gather(*calls: Callable[[], Any], max_workers: Optional[int] = None) -> List[Any]:
    """Call every function on a worker thread; results come back in argument order.

    The first exception raised by any call propagates after all calls finish.
    """
    if not calls:
        return []
    workers = max_workers or min(len(calls), settings.stats_max_workers)
    with ThreadPoolExecutor(max_workers=max(workers, 1)) as executor:
        futures = [executor.submit(call) for call in calls]
        return [future.result() for future in futures]


def map_concurrently(func: Callable[[Any], Any], items: Sequence[Any], max_workers: Optional[int] = None) -> List[Any]:
    if not items:
        return []
    workers = max_workers or min(len(items), settings.stats_max_workers)
    with ThreadPoolExecutor(max_workers=max(workers, 1)) as executor:
        return list(executor.map(func, items))
