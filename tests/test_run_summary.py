from __future__ import annotations

import json

import pytest

from tests._support.run_helpers import q
from trts_sim.config import RunConfig
from trts_sim.reporting import (
    MagnitudeLimitExceeded,
    SummaryObserver,
    render_summary,
    summarize_run,
    summary_to_dict,
)
from trts_sim.simulate import run_records


def test_collapsed_run_is_null():
    summary = summarize_run(RunConfig(ticks=1))
    assert summary.psi_events == 0
    assert summary.rho_events == 1
    assert summary.mu_zero_events == 4
    assert summary.total_samples == 11
    assert summary.total_ticks == 1
    assert summary.ratio_defined is False
    assert summary.final_ratio_text == ""
    assert (summary.pattern, summary.classification) == ("null", "Null")
    assert summary.closest_constant == "None"
    assert summary.stack_summary == "avg=0.00 [0:11,1:0,2:0,3:0,4:0]"


def test_transform_spacing_in_a_defined_run():
    summary = summarize_run(RunConfig(ticks=1, koppa_seed=q("1/1")))
    # Every memory step fires: microticks 2, 5, 8, 11.
    assert summary.psi_events == 4
    assert summary.psi_spacing_mean == pytest.approx(3.0)
    assert summary.psi_spacing_stddev == pytest.approx(0.0)
    assert summary.ratio_defined is True
    assert summary.mu_zero_events == 0
    assert summary.final_ratio_text == str(summary.final_ratio)


def test_history_depth_feeds_the_histogram():
    summary = summarize_run(RunConfig(ticks=1, koppa_seed=q("1/1"), multi_level_koppa=True))
    # One push per memory step: depths 0,1,1,1,2,2,2,3,3,3,4 over mt1..mt11.
    assert summary.stack_histogram == (1, 3, 3, 3, 1)
    assert summary.total_samples == 11


def test_magnitude_limit_aborts_the_run():
    with pytest.raises(MagnitudeLimitExceeded, match="upsilon reached"):
        summarize_run(RunConfig(ticks=1, koppa_seed=q("1/1")), max_bits=8)


def test_observer_can_be_fed_directly():
    observer = SummaryObserver()
    for record in run_records(RunConfig(ticks=2)):
        observer.observe(record)
    assert observer.summary().total_ticks == 2


def test_summary_dict_is_json_ready():
    payload = summary_to_dict(summarize_run(RunConfig(ticks=1)))
    text = json.dumps(payload)
    assert json.loads(text)["classification"] == "Null"
    assert payload["closest_delta"] is None


def test_render_summary_lines():
    text = render_summary(summarize_run(RunConfig(ticks=1)))
    assert "Final ratio: undefined" in text
    assert "Pattern: null (Null)" in text
    assert text.endswith("\n")
