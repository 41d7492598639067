from __future__ import annotations

from trts_sim.config import EngineMode, RunConfig
from trts_sim.rational import Rational
from trts_sim.trace import run_with_trace


def main() -> None:
    config = RunConfig(
        ticks=1,
        engine_mode=EngineMode.ADD,
        multi_level_koppa=True,
        upsilon_seed=Rational(3, 2),
        beta_seed=Rational(1, 1),
        koppa_seed=Rational(1, 1),
    )

    log = run_with_trace(config)

    for entry in log:
        if entry.microtick == 1:
            print(f"\nTick {entry.tick:2d}")
        history = " ".join(str(v) for v in entry.koppa_history) or "-"
        print(
            f"  mt={entry.microtick:2d} {entry.phase}  "
            f"ups={str(entry.upsilon):>14s}  beta={str(entry.beta):>14s}  "
            f"koppa={str(entry.koppa):>14s}  history=[{history}]"
        )


if __name__ == "__main__":
    main()
