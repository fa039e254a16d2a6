# bayesqc/settings.py
"""
Simulation settings: dataclass, validation and JSONC loading.

Responsibilities:
- Hold the simulation parameters as an immutable SimulationSettings.
- Enforce the parameter invariants at the configuration boundary
  (never mid-tick): invalid settings raise SettingsError.
- Read JSONC settings files (with // comments) and validate them against
  settings/schema.jsonc with jsonschema.
- Accept both the dashboard's camelCase keys and snake_case keys.
"""

from __future__ import annotations

import json
import logging
import numbers
import re
from dataclasses import asdict, dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import jsonschema

logger = logging.getLogger(__name__)


# --------------------------------------------------------------------
# Dataclass
# --------------------------------------------------------------------


@dataclass(frozen=True)
class SimulationSettings:
    """
    Parameters for one simulation run.

    Immutable: replace the whole object (dataclasses.replace) to change a
    value between ticks.
    """

    # Production: distribution of the true value
    production_mean: float = 185.0
    production_std: float = 5.0

    # Measurement instrument + Bayesian prior
    measurement_std: float = 2.0
    prior_mean: float = 185.0
    prior_std: float = 10.0

    # Spec & decision
    spec_lower: float = 180.0
    spec_upper: float = 195.0
    alpha: float = 0.05

    # Injected errors
    measurement_error_rate: float = 0.2
    measurement_error_magnitude: float = 3.0
    production_error_rate: float = 0.1

    # Simulation control
    interval: int = 1000        # tick period (ms)
    time_window: float = 60.0   # retention (s)
    is_running: bool = False

    @property
    def interval_s(self) -> float:
        return self.interval / 1000.0


class SettingsError(ValueError):
    """Raised when a settings object violates one or more invariants."""

    def __init__(self, problems: List[str]):
        self.problems = list(problems)
        super().__init__("invalid simulation settings: " + "; ".join(self.problems))


# camelCase (dashboard) -> snake_case (dataclass)
_CAMEL_KEYS: Dict[str, str] = {
    "productionMean": "production_mean",
    "productionStd": "production_std",
    "measurementStd": "measurement_std",
    "priorMean": "prior_mean",
    "priorStd": "prior_std",
    "specLower": "spec_lower",
    "specUpper": "spec_upper",
    "alpha": "alpha",
    "measurementErrorRate": "measurement_error_rate",
    "measurementErrorMagnitude": "measurement_error_magnitude",
    "productionErrorRate": "production_error_rate",
    "interval": "interval",
    "timeWindow": "time_window",
    "isRunning": "is_running",
}
_SNAKE_KEYS: Dict[str, str] = {v: k for k, v in _CAMEL_KEYS.items()}
_FIELD_NAMES = {f.name for f in fields(SimulationSettings)}


# --------------------------------------------------------------------
# Validation
# --------------------------------------------------------------------


def settings_problems(settings: SimulationSettings) -> List[str]:
    """Return a human-readable list of violated invariants (empty if valid)."""
    s = settings
    problems: List[str] = []

    if not s.prior_std > 0:
        problems.append(f"prior_std must be > 0 (got {s.prior_std})")
    if not s.measurement_std > 0:
        problems.append(f"measurement_std must be > 0 (got {s.measurement_std})")
    if not s.production_std >= 0:
        problems.append(f"production_std must be >= 0 (got {s.production_std})")
    if not s.spec_lower < s.spec_upper:
        problems.append(
            f"spec_lower must be < spec_upper (got {s.spec_lower} >= {s.spec_upper})"
        )
    if not 0.0 <= s.alpha <= 1.0:
        problems.append(f"alpha must be in [0, 1] (got {s.alpha})")

    for name in ("measurement_error_rate", "production_error_rate"):
        rate = getattr(s, name)
        if not 0.0 <= rate <= 1.0:
            problems.append(f"{name} must be in [0, 1] (got {rate})")

    if not s.measurement_error_magnitude >= 0:
        problems.append(
            f"measurement_error_magnitude must be >= 0 (got {s.measurement_error_magnitude})"
        )
    if not s.interval > 0:
        problems.append(f"interval must be > 0 ms (got {s.interval})")
    if not s.time_window > 0:
        problems.append(f"time_window must be > 0 s (got {s.time_window})")

    return problems


def validate_settings(settings: SimulationSettings) -> SimulationSettings:
    """
    Check every invariant.

    Raises:
        SettingsError listing all violations.
    Returns:
        the same settings object, for chaining.
    """
    problems = settings_problems(settings)
    if problems:
        raise SettingsError(problems)
    return settings


# --------------------------------------------------------------------
# JSONC utilities
# --------------------------------------------------------------------


def _strip_jsonc_comments(text: str) -> str:
    """
    Remove // line comments and /* ... */ block comments.

    Assumes settings files do not contain these patterns inside strings.
    """
    text = re.sub(r"/\*.*?\*/", "", text, flags=re.DOTALL)
    text = re.sub(r"//.*?$", "", text, flags=re.MULTILINE)
    return text


def _load_jsonc(path: Path) -> Dict[str, Any]:
    """Load a JSONC file by stripping comments first."""
    text = path.read_text(encoding="utf-8")
    return json.loads(_strip_jsonc_comments(text))


# --------------------------------------------------------------------
# Conversion helpers: dict <-> dataclass
# --------------------------------------------------------------------


def _normalise_keys(data: Mapping[str, Any]) -> Dict[str, Any]:
    """camelCase or snake_case keys -> snake_case field names."""
    out: Dict[str, Any] = {}
    problems: List[str] = []
    for key, value in data.items():
        name = _CAMEL_KEYS.get(key, key)
        if name not in _FIELD_NAMES:
            problems.append(f"unknown settings key: {key!r}")
        elif name in out:
            problems.append(f"duplicate settings key: {key!r}")
        else:
            out[name] = value
    if problems:
        raise SettingsError(problems)
    return out


def _coerce(name: str, value: Any) -> Any:
    """
    Check the type of one field value; no lossy conversion.

    Raises:
        SettingsError if ``value`` has the wrong type for ``name``.
    """
    if name == "is_running":
        if isinstance(value, bool):
            return value
        raise SettingsError([f"{name} must be a boolean (got {value!r})"])

    # bool is an int subclass, but True is not a number here
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        raise SettingsError([f"{name} must be a number (got {value!r})"])

    if name == "interval":
        if not float(value).is_integer():
            raise SettingsError([f"{name} must be a whole number of ms (got {value!r})"])
        return int(value)
    return float(value)


def _typed_fields(data: Mapping[str, Any]) -> Dict[str, Any]:
    kwargs: Dict[str, Any] = {}
    problems: List[str] = []
    for name, value in _normalise_keys(data).items():
        try:
            kwargs[name] = _coerce(name, value)
        except SettingsError as exc:
            problems.extend(exc.problems)
    if problems:
        raise SettingsError(problems)
    return kwargs


def settings_from_dict(data: Mapping[str, Any]) -> SimulationSettings:
    """
    Build validated settings from a mapping.

    Keys may be camelCase (productionMean, timeWindow, ...) or snake_case.
    Missing keys keep their defaults. Values of the wrong type (a string
    for a number, a fractional interval, a non-bool is_running) are
    rejected, not converted.
    """
    return validate_settings(SimulationSettings(**_typed_fields(data)))


def replace_settings(settings: SimulationSettings, changes: Mapping[str, Any]) -> SimulationSettings:
    """
    Copy of ``settings`` with ``changes`` applied, checked like settings_from_dict.

    Raises:
        SettingsError for unknown keys, wrongly typed values or broken invariants.
    """
    return validate_settings(replace(settings, **_typed_fields(changes)))


def settings_to_dict(settings: SimulationSettings) -> Dict[str, Any]:
    """camelCase mapping, the inverse of settings_from_dict."""
    return {_SNAKE_KEYS[k]: v for k, v in asdict(settings).items()}


# --------------------------------------------------------------------
# Public API
# --------------------------------------------------------------------


def load_settings(
    settings_path: Path,
    schema_path: Optional[Path] = None,
    validate: bool = True,
) -> SimulationSettings:
    """
    Load simulation settings from a JSONC file.

    Args:
        settings_path: Path to a settings file, e.g. settings/default.jsonc.
        schema_path: Path to schema.jsonc. If None, defaults to
                     settings_path.parent / 'schema.jsonc'.
        validate: If True, validate the file against the schema first.

    Raises:
        jsonschema.ValidationError if the file does not match the schema.
        SettingsError if the values break an invariant the schema cannot
        express (e.g. spec_lower >= spec_upper).
    """
    settings_path = Path(settings_path)
    if schema_path is None:
        schema_path = settings_path.parent / "schema.jsonc"

    data = _load_jsonc(settings_path)

    if validate:
        # the schema is written against the camelCase names
        camel = {_SNAKE_KEYS.get(k, k): v for k, v in _normalise_keys(data).items()}
        schema = _load_jsonc(Path(schema_path))
        jsonschema.validate(instance=camel, schema=schema)

    settings = settings_from_dict(data)
    logger.info("Loaded simulation settings from %s", settings_path)
    return settings


def format_settings(settings: SimulationSettings) -> str:
    """
    Human-readable summary for CLI logs.

    Example layout:

    Simulation settings
      production   mean=185.00  std=5.00
      measurement  std=2.00  prior=N(185.00, 10.00²)
      spec         [180.00, 195.00]  alpha=0.050
      errors       meas_rate=0.20 x3.0  prod_rate=0.10
      control      interval=1000ms  window=60s  running=no
    """
    s = settings
    lines = [
        "Simulation settings",
        f"  production   mean={s.production_mean:.2f}  std={s.production_std:.2f}",
        f"  measurement  std={s.measurement_std:.2f}  "
        f"prior=N({s.prior_mean:.2f}, {s.prior_std:.2f}²)",
        f"  spec         [{s.spec_lower:.2f}, {s.spec_upper:.2f}]  alpha={s.alpha:.3f}",
        f"  errors       meas_rate={s.measurement_error_rate:.2f} "
        f"x{s.measurement_error_magnitude:.1f}  prod_rate={s.production_error_rate:.2f}",
        f"  control      interval={s.interval}ms  window={s.time_window:g}s  "
        f"running={'yes' if s.is_running else 'no'}",
    ]
    return "\n".join(lines)
