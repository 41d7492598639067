from tests._support.run_helpers import make_state, q
from trts_sim.snapshots import StateView


def test_view_does_not_follow_later_mutation():
    state = make_state(upsilon="3/1", beta="2/1", koppa="1/1")
    state.push_koppa_history(q("1/1"))

    view = StateView.capture(state)

    state.upsilon = q("9/9")
    state.push_koppa_history(q("5/1"))
    state.rho_pending = True

    assert view.upsilon == q("3/1")
    assert view.koppa_history == (q("1/1"),)
    assert view.koppa_history_size == 1
    assert view.rho_pending is False


def test_view_copies_every_register():
    state = make_state(upsilon="3/1", beta="2/1", koppa="1/1", epsilon="4/2")
    state.tick = 7
    view = StateView.capture(state)
    for name, value in state.registers().items():
        assert getattr(view, name) == value, name
    assert view.tick == 7
