"""
Gradient-check report over every parameter of a graph.
"""

import logging
import time
from typing import Optional

import numpy as np
import pandas as pd

from ..aad.core.var import Variable
from ..config import GradCheckConfig
from .finite_difference import finite_difference

logger = logging.getLogger(__name__)

REPORT_COLUMNS = ["parameter", "shape", "max_abs_error", "passed", "time_ms"]


def check_gradients(output: Variable, config: Optional[GradCheckConfig] = None) -> pd.DataFrame:
    """
    Compare analytic and finite-difference gradients for each parameter of
    `output`.

    Returns:
        DataFrame with one row per parameter, in `output.parameters()` order
    """
    config = config or GradCheckConfig()
    rows = []

    for i, param in enumerate(output.parameters()):
        start_time = time.time()
        numeric, analytic = finite_difference(param, output, delta=config.delta)
        elapsed_ms = (time.time() - start_time) * 1000.0

        max_abs_error = float(np.max(np.abs(numeric - analytic))) if numeric.size else 0.0
        passed = max_abs_error <= config.tolerance

        if not passed:
            logger.warning("Parameter %d %s: max abs error %.3e exceeds tolerance %.3e",
                           i, param.shape, max_abs_error, config.tolerance)
        elif config.verbose:
            logger.info("Parameter %d %s: max abs error %.3e (%.1f ms)",
                        i, param.shape, max_abs_error, elapsed_ms)

        rows.append({
            "parameter": i,
            "shape": param.shape,
            "max_abs_error": max_abs_error,
            "passed": passed,
            "time_ms": elapsed_ms,
        })

    return pd.DataFrame(rows, columns=REPORT_COLUMNS)
