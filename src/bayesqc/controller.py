# bayesqc/controller.py
"""
Simulation controller: owns the settings, the sliding window and the clock.

State machine:

    STOPPED --start()--> RUNNING --stop()--> STOPPED
       ^                    |
       +------reset()-------+   (reset also empties the window)

Every arm or disarm of the ticker bumps a generation counter. Each ticker
callback carries the generation it was armed with; a tick whose generation
is no longer current is discarded. A tick that fires just after reset()
therefore never reaches the emptied window.
"""

from __future__ import annotations

import itertools
import logging
import threading
import time
from dataclasses import replace
from typing import Any, Callable, List, Optional, Tuple

import numpy as np

from .clock import Ticker
from .generator import MeasurementRecord, generate_measurement
from .settings import SettingsError, SimulationSettings, replace_settings, validate_settings
from .stats import UniformSource
from .summary import WindowSummary, summarize
from .window import SlidingWindow

logger = logging.getLogger(__name__)

RecordCallback = Callable[[MeasurementRecord], None]
TickerFactory = Callable[[float, Callable[[], None]], Ticker]


class SimulationController:
    """
    Usage:
        ctrl = SimulationController(seed=42)
        unsubscribe = ctrl.subscribe(print)
        ctrl.start()
        ...
        ctrl.update_settings(interval=250)    # re-arms the ticker
        rows = ctrl.snapshot()
        ctrl.reset()
    """

    def __init__(
        self,
        settings: Optional[SimulationSettings] = None,
        rng: Optional[UniformSource] = None,
        seed: Optional[int] = None,
        clock: Callable[[], float] = time.time,
        ticker_factory: TickerFactory = Ticker,
    ):
        """
        Args:
            settings: initial settings (validated); defaults to SimulationSettings().
                      If settings.is_running is True the simulation starts at once.
            rng: uniform source; defaults to numpy.random.default_rng(seed).
            seed: seed for the default generator; ignored when rng is given.
            clock: wall clock in epoch seconds, used for record timestamps and
                   window pruning.
            ticker_factory: called as ticker_factory(interval_s, callback).
        """
        settings = settings if settings is not None else SimulationSettings()
        validate_settings(settings)

        self.rng: UniformSource = rng if rng is not None else np.random.default_rng(seed)
        self.clock = clock
        self.ticker_factory = ticker_factory

        self._lock = threading.RLock()
        self._settings = replace(settings, is_running=False)
        self._window = SlidingWindow(settings.time_window)
        self._ids = itertools.count(1)
        self._generation = 0
        self._ticker: Optional[Ticker] = None
        self._subscribers: List[RecordCallback] = []

        if settings.is_running:
            self.start()

    # ------------------------
    # Properties
    # ------------------------

    @property
    def settings(self) -> SimulationSettings:
        return self._settings

    @property
    def is_running(self) -> bool:
        return self._settings.is_running

    @property
    def generation(self) -> int:
        return self._generation

    # ------------------------
    # Lifecycle
    # ------------------------

    def start(self) -> None:
        with self._lock:
            self._settings = replace(self._settings, is_running=True)
            self._arm()
        logger.info("Simulation started (interval=%dms)", self._settings.interval)

    def stop(self) -> None:
        with self._lock:
            self._disarm()
            self._settings = replace(self._settings, is_running=False)
        logger.info("Simulation stopped (%d records in window)", len(self._window))

    def reset(self) -> None:
        with self._lock:
            self._disarm()
            self._settings = replace(self._settings, is_running=False)
            self._window.reset()
            self._ids = itertools.count(1)
        logger.info("Simulation reset")

    def update_settings(
        self,
        settings: Optional[SimulationSettings] = None,
        **changes: Any,
    ) -> SimulationSettings:
        """
        Replace the settings, whole or field by field.

        Invalid settings raise SettingsError and leave the current settings
        in effect. A changed interval while running re-arms the ticker; a
        changed is_running starts or stops the simulation.
        """
        with self._lock:
            old = self._settings
            new = settings if settings is not None else old
            try:
                new = replace_settings(new, changes) if changes else validate_settings(new)
            except SettingsError as exc:
                logger.warning("Rejected settings update: %s", exc)
                raise

            self._settings = replace(new, is_running=old.is_running)
            self._window.time_window = new.time_window

            if new.is_running != old.is_running:
                if new.is_running:
                    self.start()
                else:
                    self.stop()
            elif new.is_running and new.interval != old.interval:
                self._arm()
                logger.info("Tick interval changed to %dms", new.interval)

            return self._settings

    # ------------------------
    # Ticks
    # ------------------------

    def tick(self) -> MeasurementRecord:
        """Generate and store one record now, regardless of run state."""
        with self._lock:
            record = self._produce()
        self._notify(record)
        return record

    def _on_tick(self, generation: int) -> None:
        with self._lock:
            if generation != self._generation:
                logger.debug(
                    "Discarded stale tick (generation %d, current %d)",
                    generation,
                    self._generation,
                )
                return
            record = self._produce()
        self._notify(record)

    def _produce(self) -> MeasurementRecord:
        now = self.clock()
        record = generate_measurement(self._settings, self.rng, next(self._ids), now)
        self._window.append(record, now)
        logger.debug(
            "Record %d: X=%.2f post=%.2f±%.2f p=%.4f%s",
            record.id,
            record.measured_x,
            record.post_mean,
            record.post_std,
            record.p_in_spec,
            " FLAGGED" if record.flagged else "",
        )
        return record

    # ------------------------
    # Observation
    # ------------------------

    def subscribe(self, callback: RecordCallback) -> Callable[[], None]:
        """Call ``callback(record)`` after every stored record. Returns an unsubscribe function."""
        with self._lock:
            self._subscribers.append(callback)

        def unsubscribe() -> None:
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe

    def _notify(self, record: MeasurementRecord) -> None:
        with self._lock:
            subscribers = list(self._subscribers)
        for callback in subscribers:
            try:
                callback(record)
            except Exception:
                # one broken consumer must not stop the tick stream
                logger.exception("Subscriber %r failed on record %d", callback, record.id)

    def snapshot(self) -> Tuple[MeasurementRecord, ...]:
        return self._window.snapshot()

    def summary(self) -> WindowSummary:
        return summarize(self._window.snapshot())

    # ------------------------
    # Internals
    # ------------------------

    def _arm(self) -> None:
        """Disarm any current ticker, then arm a fresh one for a new generation."""
        self._disarm()
        generation = self._generation
        self._ticker = self.ticker_factory(
            self._settings.interval_s,
            lambda: self._on_tick(generation),
        )
        self._ticker.start()

    def _disarm(self) -> None:
        self._generation += 1
        if self._ticker is not None:
            self._ticker.cancel()
            self._ticker = None
