"""Bounded fan-out / fan-in over a thread pool.

Workers only ever *produce* results.  The caller receives a plain dict keyed
by input item and merges it on its own thread, in whatever deterministic order
it chooses, so shared structures are never touched concurrently.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Callable, Hashable, Iterable, TypeVar, Union

from modelmatch.errors import ClientError

logger = logging.getLogger(__name__)

K = TypeVar("K", bound=Hashable)
R = TypeVar("R")


def fan_out(
    func: Callable[[K], R],
    items: Iterable[K],
    max_workers: int,
) -> dict[K, Union[R, ClientError]]:
    """Run *func* for every item with at most *max_workers* calls in flight.

    A :class:`~modelmatch.errors.ClientError` raised by a call is captured and
    returned in place of that item's result.  Any other exception is a defect
    and propagates after the remaining work has been cancelled.

    On interrupt (``KeyboardInterrupt``) pending calls are cancelled and the
    interrupt is re-raised; nothing computed so far is returned.  Calls that
    are already running cannot be aborted.  Their worker threads finish when
    the call returns or its request times out.

    Args:
        func: Blocking callable, typically a single remote round-trip.
        items: Unique, hashable inputs.
        max_workers: Upper bound on concurrent calls.

    Returns:
        ``{item: result_or_client_error}`` for every input item.
    """
    unique = list(dict.fromkeys(items))
    results: dict[K, Union[R, ClientError]] = {}
    if not unique:
        return results

    pool = ThreadPoolExecutor(max_workers=max(1, min(max_workers, len(unique))))
    try:
        future_to_item = {pool.submit(func, item): item for item in unique}
        for future in as_completed(future_to_item):
            item = future_to_item[future]
            try:
                results[item] = future.result()
            except ClientError as exc:
                logger.debug("Call for %r failed: %s", item, exc)
                results[item] = exc
    except BaseException:
        pool.shutdown(wait=False, cancel_futures=True)
        raise
    pool.shutdown(wait=True)
    return results
