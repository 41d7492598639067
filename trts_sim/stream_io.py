from __future__ import annotations

import csv
import json
import logging
from dataclasses import fields, replace
from pathlib import Path
from typing import Any, Iterable, TextIO

from trts_sim.config import MODE_FIELDS, RATIONAL_FIELDS, RunConfig, SignFlipMode, bool_fields
from trts_sim.event_sink import MicrotickObserver
from trts_sim.events import MicrotickRecord
from trts_sim.rational import Rational

logger = logging.getLogger(__name__)


class ConfigFormatError(ValueError):
    """Raised when a run configuration file fails validation."""


# Older config files name a few fields differently.
KEY_ALIASES: dict[str, str] = {
    "tick_count": "ticks",
    "psi_mode": "transform_mode",
    "koppa_mode": "accrual_op",
    "koppa_trigger": "accrual_trigger",
    "prime_target": "pattern_target",
    "dual_track_symmetry": "dual_track",
    "psi_strength_parameter": "psi_strength",
    "engine_upsilon": "upsilon_track",
    "engine_beta": "beta_track",
}

EVENTS_HEADER: tuple[str, ...] = (
    "tick",
    "mt",
    "phase",
    "rho_event",
    "psi_fired",
    "mu_zero",
    "forced_emission",
    "ratio_triggered",
    "triple_psi",
    "dual_engine",
    "koppa_sample_index",
    "ratio_threshold",
    "psi_strength",
    "sign_flip",
)


def _pair(prefix: str) -> tuple[str, str]:
    return f"{prefix}_num", f"{prefix}_den"


VALUES_HEADER: tuple[str, ...] = (
    "tick",
    "mt",
    *_pair("upsilon"),
    *_pair("beta"),
    *_pair("koppa"),
    *_pair("koppa_sample"),
    *_pair("prev_upsilon"),
    *_pair("prev_beta"),
    *_pair("koppa_stack0"),
    *_pair("koppa_stack1"),
    *_pair("koppa_stack2"),
    *_pair("koppa_stack3"),
    "koppa_stack_size",
    *_pair("delta_upsilon"),
    *_pair("delta_beta"),
    *_pair("triangle_phi_over_epsilon"),
    *_pair("triangle_prev_over_phi"),
    *_pair("triangle_epsilon_over_prev"),
)


# ----------------------------
# Config loading
# ----------------------------

def _is_int(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _parse_modulus(value: object) -> int:
    if _is_int(value):
        bound = int(value)
    elif isinstance(value, str) and value.strip().isdigit():
        bound = int(value.strip())
    else:
        raise ConfigFormatError(f"modulus_bound must be a non-negative integer string, got {value!r}")
    if bound < 0:
        raise ConfigFormatError(f"modulus_bound must be non-negative, got {bound}")
    return bound


def _parse_rational_field(key: str, value: object) -> Rational:
    if not isinstance(value, str):
        raise ConfigFormatError(f"{key} must be a 'numerator/denominator' string, got {value!r}")
    try:
        return Rational.parse(value)
    except ValueError as e:
        raise ConfigFormatError(f"invalid {key}: {e}") from e


def _ignored(key: str, value: object, reason: str) -> None:
    logger.warning("ignoring config key %r=%r: %s", key, value, reason)


def parse_run_config(raw: dict[str, Any], base: RunConfig | None = None) -> RunConfig:
    """
    Apply a flat key/value mapping onto a base RunConfig.

    Rules:
      - mode fields: small ints validated against their enum; others ignored
      - toggles: JSON booleans only
      - ticks > 0, koppa_wrap_threshold >= 0; otherwise ignored
      - rational fields / modulus_bound: malformed values raise ConfigFormatError
      - unknown keys are ignored

    Nothing is applied unless every field parses.
    """
    toggles = set(bool_fields())
    updates: dict[str, Any] = {}

    for raw_key, value in raw.items():
        key = KEY_ALIASES.get(raw_key, raw_key)

        if key in MODE_FIELDS:
            enum_type = MODE_FIELDS[key]
            if _is_int(value) and value in {m.value for m in enum_type}:
                updates[key] = enum_type(value)
            else:
                _ignored(raw_key, value, f"not a valid {enum_type.__name__}")
        elif key in toggles:
            if isinstance(value, bool):
                updates[key] = value
            else:
                _ignored(raw_key, value, "expected true/false")
        elif key == "ticks":
            if _is_int(value) and value > 0:
                updates[key] = int(value)
            else:
                _ignored(raw_key, value, "expected a positive integer")
        elif key == "koppa_wrap_threshold":
            if _is_int(value) and value >= 0:
                updates[key] = int(value)
            else:
                _ignored(raw_key, value, "expected a non-negative integer")
        elif key == "modulus_bound":
            updates[key] = _parse_modulus(value)
        elif key in RATIONAL_FIELDS:
            updates[key] = _parse_rational_field(raw_key, value)
        else:
            _ignored(raw_key, value, "unknown key")

    # A mode implies the toggle unless the file sets the toggle itself.
    if "sign_flip_mode" in updates and "sign_flip" not in updates:
        updates["sign_flip"] = updates["sign_flip_mode"] != SignFlipMode.NONE

    return replace(base if base is not None else RunConfig(), **updates)


def load_run_config(path: Path, base: RunConfig | None = None) -> RunConfig:
    """Load a RunConfig from a flat JSON object (see parse_run_config)."""
    if not path.exists():
        raise ConfigFormatError(f"file not found: {path}")
    if not path.is_file():
        raise ConfigFormatError(f"not a file: {path}")

    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ConfigFormatError(
            f"invalid JSON: {e.msg} (line {e.lineno}, col {e.colno})"
        ) from e
    except OSError as e:
        raise ConfigFormatError(f"cannot read {path}: {e}") from e

    if not isinstance(raw, dict):
        raise ConfigFormatError("root must be a JSON object")

    config = parse_run_config(raw, base=base)
    logger.info("loaded run config from %s", path)
    return config


def config_to_dict(config: RunConfig) -> dict[str, Any]:
    """JSON-ready view: enums as ints, rationals as "N/D", bound as a string."""
    out: dict[str, Any] = {}
    for f in fields(config):
        value = getattr(config, f.name)
        if isinstance(value, Rational):
            out[f.name] = str(value)
        elif f.name == "modulus_bound":
            out[f.name] = str(value)
        elif isinstance(value, bool):
            out[f.name] = value
        else:
            out[f.name] = int(value)
    return out


def dump_run_config(path: Path, config: RunConfig) -> None:
    path.write_text(json.dumps(config_to_dict(config), indent=2) + "\n", encoding="utf-8")


# ----------------------------
# Records
# ----------------------------

def _flag(value: bool) -> int:
    return 1 if value else 0


def events_row(record: MicrotickRecord) -> list[object]:
    s = record.state
    return [
        record.tick,
        record.microtick,
        record.phase.value,
        _flag(record.rho_event),
        _flag(record.psi_fired),
        _flag(record.mu_zero),
        _flag(record.forced_emission),
        _flag(s.ratio_triggered),
        _flag(s.psi_triple),
        _flag(s.dual_engine_used),
        s.koppa_sample_index,
        _flag(s.ratio_threshold_triggered),
        _flag(s.psi_strength_applied),
        _flag(s.sign_flip_polarity),
    ]


def values_row(record: MicrotickRecord) -> list[object]:
    s = record.state
    history = list(s.koppa_history) + [Rational.zero()] * (4 - len(s.koppa_history))
    row: list[object] = [record.tick, record.microtick]
    for value in (
        s.upsilon,
        s.beta,
        s.koppa,
        s.koppa_sample,
        s.previous_upsilon,
        s.previous_beta,
        *history,
    ):
        row.extend((value.num, value.den))
    row.append(s.koppa_history_size)
    for value in (
        s.delta_upsilon,
        s.delta_beta,
        s.triangle_phi_over_epsilon,
        s.triangle_prev_over_phi,
        s.triangle_epsilon_over_prev,
    ):
        row.extend((value.num, value.den))
    return row


class CsvTableWriter(MicrotickObserver):
    """Writes one events row and one values row per microtick."""

    def __init__(self, events_out: TextIO, values_out: TextIO):
        self._events = csv.writer(events_out, lineterminator="\n")
        self._values = csv.writer(values_out, lineterminator="\n")
        self._events.writerow(EVENTS_HEADER)
        self._values.writerow(VALUES_HEADER)

    def observe(self, record: MicrotickRecord) -> None:
        self._events.writerow(events_row(record))
        self._values.writerow(values_row(record))


def record_to_dict(record: MicrotickRecord) -> dict[str, Any]:
    s = record.state
    return {
        "tick": record.tick,
        "mt": record.microtick,
        "phase": record.phase.value,
        "rho_event": record.rho_event,
        "psi_fired": record.psi_fired,
        "mu_zero": record.mu_zero,
        "forced_emission": record.forced_emission,
        "upsilon": str(s.upsilon),
        "beta": str(s.beta),
        "koppa": str(s.koppa),
        "koppa_sample": str(s.koppa_sample),
        "koppa_sample_index": s.koppa_sample_index,
        "koppa_history": [str(v) for v in s.koppa_history],
    }


def dump_records(path: Path, records: Iterable[MicrotickRecord]) -> None:
    payload = [record_to_dict(r) for r in records]
    path.write_text(json.dumps(payload, indent=2) + "\n", encoding="utf-8")
