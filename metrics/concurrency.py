from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Callable, Dict, List, Sequence, TypeVar

T = TypeVar('T')
R = TypeVar('R')


def bounded_map(fn: Callable[[T], R], items: Sequence[T], max_workers: int) -> List[R]:
    """Run `fn` over `items` on at most `max_workers` threads.

    Results come back in input order. The first exception cancels every
    call that has not started yet and is re-raised.
    """
    if not items:
        return []
    results: Dict[int, R] = {}
    with ThreadPoolExecutor(max_workers=max(1, min(max_workers, len(items)))) as ex:
        futures = {ex.submit(fn, item): i for i, item in enumerate(items)}
        try:
            for fut in as_completed(futures):
                results[futures[fut]] = fut.result()
        except BaseException:
            for fut in futures:
                fut.cancel()
            raise
    return [results[i] for i in range(len(items))]
