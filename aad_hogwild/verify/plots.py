"""
Figures for gradient-check reports and Hogwild training runs.
"""

import logging
from typing import Optional, Sequence

import matplotlib
matplotlib.use('Agg')  # Non-interactive backend
import matplotlib.pyplot as plt
import numpy as np
import pandas as pd

logger = logging.getLogger(__name__)


def plot_gradient_check(report: pd.DataFrame, tolerance: float, save_path: Optional[str] = None) -> None:
    """Bar chart of log10 max abs error per parameter, against the tolerance."""
    fig, ax = plt.subplots(figsize=(8, 4))

    errors = np.log10(report['max_abs_error'].to_numpy(dtype=float) + 1e-16)
    colors = ['tab:green' if ok else 'tab:red' for ok in report['passed']]
    ax.bar(report['parameter'].astype(str), errors, color=colors)
    ax.axhline(np.log10(tolerance), color='black', linestyle='--', label=f'tolerance {tolerance:g}')
    ax.set_xlabel('Parameter')
    ax.set_ylabel('log₁₀ max |numeric - analytic|')
    ax.set_title('Finite-Difference Gradient Check')
    ax.legend()
    ax.grid(True, alpha=0.3)

    plt.tight_layout()

    if save_path:
        plt.savefig(save_path, dpi=150, bbox_inches='tight')
        logger.info("Figure saved to: %s", save_path)

    plt.close(fig)


def plot_training_curves(losses: Sequence[Sequence[float]], save_path: Optional[str] = None) -> None:
    """One loss curve per Hogwild worker."""
    fig, ax = plt.subplots(figsize=(8, 5))

    for worker_index, curve in enumerate(losses):
        ax.plot(np.arange(len(curve)), curve, linewidth=1.5, label=f'worker {worker_index}')

    ax.set_xlabel('Step')
    ax.set_ylabel('Loss')
    ax.set_yscale('log')
    ax.set_title('Hogwild Training Loss')
    ax.legend()
    ax.grid(True, alpha=0.3)

    plt.tight_layout()

    if save_path:
        plt.savefig(save_path, dpi=150, bbox_inches='tight')
        logger.info("Figure saved to: %s", save_path)

    plt.close(fig)
