from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from trts_sim.snapshots import StateView

MICROTICKS_PER_TICK = 11
FORCED_EMISSION_MICROTICK = 10


class Phase(str, Enum):
    """
    Microtick phases:
      E  engine (1, 4, 7, 10)
      M  memory / transform (2, 5, 8, 11)
      R  accrual only (3, 6, 9)
    """

    ENGINE = "E"
    MEMORY = "M"
    RESET = "R"


_PHASE_BY_MICROTICK: dict[int, Phase] = {
    mt: (Phase.ENGINE, Phase.MEMORY, Phase.RESET)[(mt - 1) % 3]
    for mt in range(1, MICROTICKS_PER_TICK + 1)
}


def phase_for(microtick: int) -> Phase:
    try:
        return _PHASE_BY_MICROTICK[microtick]
    except KeyError:
        raise ValueError(f"microtick must be 1..{MICROTICKS_PER_TICK}, got {microtick}") from None


@dataclass(frozen=True, slots=True)
class MicrotickRecord:
    """
    One observable fact per microtick.

    rho_event: a pending transform was raised during this microtick.
    mu_zero: beta was undefined at the start of the memory phase.
    forced_emission: this is microtick 10.
    """

    tick: int
    microtick: int
    phase: Phase
    state: StateView
    rho_event: bool
    psi_fired: bool
    mu_zero: bool
    forced_emission: bool
