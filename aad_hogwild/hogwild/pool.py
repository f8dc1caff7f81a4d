"""
Hogwild (lock-free asynchronous) parallel training driver.

Parallelism is SPMD replication: every worker thread builds its own graph
instance, with its own input leaves and its own Parameter nodes, and the
instances share nothing but the HogwildParameter stores underneath those
nodes. Workers read and write the shared values without any coordination.

Typical use:

    >>> stores = [HogwildParameter(w0), HogwildParameter(b0)]
    >>> def worker(worker_index):
    >>>     w, b = replicate(stores)
    >>>     loss = build_loss(w, b, data[worker_index])
    >>>     for _ in range(n_steps):
    >>>         loss.zero_gradient()
    >>>         loss.forward()
    >>>         loss.backward(1.0)
    >>>         sgd_step(loss.parameters(), lr)
    >>>     return float(loss.value[0, 0])
    >>> losses = hogwild_map(worker, HogwildConfig(n_workers=4))
"""

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, List, Optional, Sequence, TypeVar

from ..aad.core.parameter import HogwildParameter
from ..aad.core.var import Variable, shared_parameter
from ..config import HogwildConfig

logger = logging.getLogger(__name__)

T = TypeVar("T")


def replicate(stores: Sequence[HogwildParameter]) -> List[Variable]:
    """
    Fresh Parameter handles over `stores`, one per store, for one worker.

    Call this inside each worker so that every graph instance owns its
    own nodes and gradient accumulators.
    """
    return [shared_parameter(store) for store in stores]


def hogwild_map(worker: Callable[[int], T], config: Optional[HogwildConfig] = None) -> List[T]:
    """
    Run `worker(i)` for i in range(n_workers) on a thread pool.

    Args:
        worker: callable taking the worker index; builds and trains its
                own graph instance over shared stores
        config: pool configuration; defaults to one worker per CPU

    Returns:
        the workers' return values, in worker order

    Any exception raised by a worker is re-raised here.
    """
    config = config or HogwildConfig()
    n_workers = config.resolve_workers()
    log = logger.info if config.verbose else logger.debug

    log("Hogwild pool starting: %d workers", n_workers)
    start_time = time.time()

    def _run(worker_index: int) -> T:
        worker_start = time.time()
        result = worker(worker_index)
        log("Worker %d finished in %.3fs", worker_index, time.time() - worker_start)
        return result

    with ThreadPoolExecutor(max_workers=n_workers) as executor:
        results = list(executor.map(_run, range(n_workers)))

    log("Hogwild pool finished in %.3fs", time.time() - start_time)
    return results
