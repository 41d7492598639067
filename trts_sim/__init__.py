"""
TRTS Simulator

Core modules:
- rational: non-reducing exact fractions (0/0 is the undefined value)
- engine / transform / accrual: the three per-microtick steps
- simulate: tick/microtick orchestration and observer emission
- trace, reporting: observability only (no behavior changes)
"""
