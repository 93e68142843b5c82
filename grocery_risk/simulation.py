"""
PURPOSE: Core Monte Carlo engine for monthly grocery spending.

Runs N independent trials of SpendingSampler and returns the ordered monthly totals.

SINGLE RESPONSIBILITY:
- Execute N independent trials for a given SimulationConfig
- Give every trial its own random stream keyed by trial index
- Gather totals by index (sequentially or over a thread pool)
- Return a SimulationRun (no risk metrics, no formatting)

CONSTRAINTS:
- No shared mutable random state: trial i always sees the same stream,
  whatever the worker count or execution order
- Does NOT modify the input config or category statistics
- Cancellation is checked between batches; a cancelled run is flagged partial
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Optional

import numpy as np

from grocery_risk import config
from grocery_risk.errors import InvalidConfigurationError
from grocery_risk.models import SimulationConfig, SimulationRun
from grocery_risk.sampler import SpendingSampler

logger = logging.getLogger(__name__)


def substream(seed: int, index: int, domain: int = config.STREAM_TRIAL) -> np.random.Generator:
    """Independent Generator for unit of work `index` of kind `domain` under base `seed`."""
    seq = np.random.SeedSequence(int(seed), spawn_key=(int(domain), int(index)))
    return np.random.Generator(np.random.PCG64(seq))


class MonteCarloEngine:
    """
    Monte Carlo engine for monthly grocery spending.

    Runs N trials where each trial:
    - Derives its Generator from (seed, trial index)
    - Samples weekly units and prices for every category
    - Sums them into one monthly total
    """

    def __init__(self, n_workers: int = 1, batch_size: int = config.BATCH_SIZE):
        """
        Initialize engine.

        Args:
            n_workers: Worker threads (1 = run in the calling thread)
            batch_size: Trials per batch; cancellation and progress are per batch
        """
        if n_workers < 1:
            raise InvalidConfigurationError(f"n_workers must be >= 1, got {n_workers}")
        if batch_size < 1:
            raise InvalidConfigurationError(f"batch_size must be >= 1, got {batch_size}")
        self.n_workers = n_workers
        self.batch_size = batch_size

    def run(
        self,
        sim_config: SimulationConfig,
        cancel_event: Optional[threading.Event] = None,
        progress_callback: Optional[Callable[[int, int], None]] = None,
        record_breakdown: bool = False,
    ) -> SimulationRun:
        """
        Execute the simulation.

        Args:
            sim_config: Validated on entry
            cancel_event: When set, the engine stops after the current batch
                and returns the finished prefix with completed=False
            progress_callback: Called with (completed, total) after each batch
            record_breakdown: Keep the per-category monthly cost matrix

        Returns:
            SimulationRun with totals ordered by trial index

        Raises:
            InvalidConfigurationError: If the config is invalid
        """
        sim_config.validate()
        total = int(sim_config.iterations)
        sampler = SpendingSampler(sim_config.categories, sim_config.weeks_per_month)
        batches = [(start, min(start + self.batch_size, total)) for start in range(0, total, self.batch_size)]

        logger.info(
            "Running %d trials over %d categories (seed=%s, workers=%d, batches=%d)",
            total, len(sim_config.categories), sim_config.seed, self.n_workers, len(batches),
        )

        breakdown = np.zeros((total, len(sim_config.categories)))
        completed = 0
        cancelled = False

        if self.n_workers == 1:
            for start, stop in batches:
                if cancel_event is not None and cancel_event.is_set():
                    cancelled = True
                    break
                breakdown[start:stop] = self._run_batch(sampler, sim_config.seed, start, stop)
                completed = stop
                self._report(progress_callback, completed, total)
        else:
            with ThreadPoolExecutor(max_workers=self.n_workers) as pool:
                for group_start in range(0, len(batches), self.n_workers):
                    if cancel_event is not None and cancel_event.is_set():
                        cancelled = True
                        break
                    group = batches[group_start:group_start + self.n_workers]
                    futures = [
                        (start, stop, pool.submit(self._run_batch, sampler, sim_config.seed, start, stop))
                        for start, stop in group
                    ]
                    for start, stop, future in futures:
                        breakdown[start:stop] = future.result()
                    completed = group[-1][1]
                    self._report(progress_callback, completed, total)

        breakdown = breakdown[:completed]
        totals = breakdown.sum(axis=1)

        if cancelled:
            logger.warning("Simulation cancelled: %d of %d trials completed", completed, total)
        else:
            logger.info("Simulation finished: %d trials, mean total %.2f", completed, float(np.mean(totals)))

        return SimulationRun(
            config=sim_config,
            totals=totals,
            requested_iterations=total,
            completed=not cancelled,
            category_totals=breakdown if record_breakdown else None,
        )

    @staticmethod
    def _run_batch(sampler: SpendingSampler, seed: int, start: int, stop: int) -> np.ndarray:
        rows = np.empty((stop - start, len(sampler.categories)))
        for offset, trial_idx in enumerate(range(start, stop)):
            rows[offset] = sampler.sample_month_breakdown(substream(seed, trial_idx))
        logger.debug("Batch [%d, %d) done", start, stop)
        return rows

    @staticmethod
    def _report(progress_callback, completed: int, total: int) -> None:
        if progress_callback is not None:
            progress_callback(completed, total)


def run_trials(sim_config: SimulationConfig, n_workers: int = 1) -> np.ndarray:
    """Module-level wrapper returning only the totals array."""
    return MonteCarloEngine(n_workers=n_workers).run(sim_config).totals
