# bayesqc/cli.py
"""
Command-line runner.

    python -m bayesqc --settings settings/default.jsonc --duration 10
    python -m bayesqc --ticks 500 --seed 7 --interval 100 --time-window 30

--duration runs the real-time ticker; --ticks steps the controller
synchronously on a simulated clock that advances one interval per tick.
"""

from __future__ import annotations

import argparse
import logging
import sys
import time
from dataclasses import replace
from pathlib import Path
from typing import List, Optional

import jsonschema

from .controller import SimulationController
from .generator import RECORD_HEADER, format_record
from .settings import SimulationSettings, format_settings, load_settings, replace_settings
from .summary import format_summary

logger = logging.getLogger(__name__)


class SimulatedClock:
    """Wall clock that only moves when told to."""

    def __init__(self, start: float):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="bayesqc", description="Streaming Bayesian QC simulator")
    parser.add_argument("--settings", type=Path, help="JSONC settings file")
    parser.add_argument("--no-validate", action="store_true", help="skip JSON schema validation")
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument("--duration", type=float, default=None, help="real-time run length (s)")
    mode.add_argument("--ticks", type=int, default=None, help="number of ticks on a simulated clock")
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--interval", type=int, default=None, help="tick period (ms)")
    parser.add_argument("--time-window", type=float, default=None, help="retention (s)")
    parser.add_argument("--quiet", action="store_true", help="print only the final summary")
    parser.add_argument("-v", "--verbose", action="store_true")
    return parser


def _resolve_settings(args: argparse.Namespace) -> SimulationSettings:
    if args.settings is not None:
        settings = load_settings(args.settings, validate=not args.no_validate)
    else:
        settings = SimulationSettings()

    changes = {}
    if args.interval is not None:
        changes["interval"] = args.interval
    if args.time_window is not None:
        changes["time_window"] = args.time_window
    if changes:
        settings = replace_settings(settings, changes)
    return settings


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        settings = _resolve_settings(args)
        if args.ticks is not None:
            clock = SimulatedClock(time.time())
            ctrl = SimulationController(replace(settings, is_running=False), seed=args.seed, clock=clock)
        else:
            ctrl = SimulationController(settings, seed=args.seed)
    except (ValueError, jsonschema.ValidationError, OSError) as exc:
        logger.error("Cannot load settings: %s", exc)
        return 2

    print(format_settings(ctrl.settings))
    if not args.quiet:
        print(RECORD_HEADER)
        ctrl.subscribe(lambda record: print(format_record(record)))

    if args.ticks is not None:
        for _ in range(args.ticks):
            clock.advance(ctrl.settings.interval_s)
            ctrl.tick()
    else:
        duration = args.duration if args.duration is not None else 10.0
        ctrl.start()
        try:
            time.sleep(duration)
        except KeyboardInterrupt:
            logger.info("Interrupted")
        finally:
            ctrl.stop()

    print()
    print(format_summary(ctrl.summary()))
    return 0


if __name__ == "__main__":
    sys.exit(main())
