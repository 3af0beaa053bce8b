from collections import deque
from dataclasses import replace

import pytest

from deepflc.membership import update_mf
from deepflc.simulation import (Mode, Simulation, apply_overrides,
                                energy_step, energy_summary, new_histories,
                                reset, step)

# Energy of one tick at 50 % load: (200 W grid + 1500 W battery) for 1 s
TICK_ENERGY_50 = 1700 / 3600000


def test_reset_defaults():
    state = reset()
    assert (state.time, state.soc, state.soh, state.load,
            state.temperature) == (0, 50, 100, 50, 25)
    assert state.mode == Mode.DEEP
    assert reset('conventional').mode == Mode.CONVENTIONAL


def test_new_histories_are_seeded():
    histories = new_histories(reset())
    assert {k: list(v) for k, v in histories.items()} == {
        'soc': [50], 'soh': [100], 'load': [50], 'temperature': [25]}
    assert histories['soc'].maxlen == 200


def test_conventional_step_from_defaults():
    state = reset(Mode.CONVENTIONAL)
    histories = new_histories(state)
    new_state, point, energy_point = step(state, histories)

    assert new_state.time == 1
    assert new_state.soc == pytest.approx(50 + 200 / 16200 * 100 * 0.9)
    assert new_state.temperature == pytest.approx(25.5)
    assert new_state.soh == pytest.approx(99.995)
    assert new_state.load == 50

    assert point.time == 1
    assert point.soc == 51.11
    assert point.temperature == 25.5
    assert point.soh == pytest.approx(99.995, abs=0.006)
    assert point.load == 50.0
    assert (point.cp, point.gp) == (25.0, 75.0)
    assert point.mode == 'conventional'

    assert energy_point.time == 1
    assert energy_point.energy == pytest.approx(TICK_ENERGY_50)

    assert list(histories['soc']) == [50, new_state.soc]
    assert list(histories['load']) == [50, 50]
    assert len(histories['temperature']) == 2


def test_step_does_not_touch_input_state():
    state = reset(Mode.CONVENTIONAL)
    step(state, new_histories(state))
    assert state == reset(Mode.CONVENTIONAL)


def test_energy_accumulates():
    state = reset(Mode.CONVENTIONAL)
    histories = new_histories(state)
    _, _, energy_point = step(state, histories, energy=1.5)
    assert energy_point.energy == pytest.approx(1.5 + TICK_ENERGY_50)


def test_deep_mode_uses_forecast_load():
    state = replace(reset(Mode.DEEP), load=90)
    _, point, _ = step(state, new_histories(reset()))
    assert point.load == 50.0
    assert point.mode == 'deep'


def test_deep_mode_smooths_history():
    state = reset(Mode.DEEP)
    histories = new_histories(state)
    histories['load'] = deque([0, 100], maxlen=200)
    new_state, point, energy_point = step(state, histories)
    # 0.2 * 0 + 0.8 * 100
    assert point.load == 80.0
    assert list(histories['load']) == [0, 100, 80]
    assert new_state.temperature == pytest.approx(25.8)
    assert energy_point.energy == pytest.approx(energy_step(80))


def test_high_load_raises_charge_power():
    state = replace(reset(Mode.CONVENTIONAL), load=90)
    _, point, _ = step(state, new_histories(state))
    assert point.load == 90.0
    assert (point.cp, point.gp) == (35.0, 75.0)


def test_high_temperature_override():
    state = replace(reset(Mode.CONVENTIONAL), temperature=70)
    _, point, _ = step(state, new_histories(state))
    assert (point.cp, point.gp) == (20.0, 80.0)


def test_low_soh_override():
    state = replace(reset(Mode.CONVENTIONAL), soh=45)
    _, point, _ = step(state, new_histories(state))
    assert (point.cp, point.gp) == (15.0, 85.0)


def test_overrides_compose_in_order():
    assert apply_overrides(50, 50, soh=45, load=90, temp=70) == (35, 75)
    assert apply_overrides(50, 50, soh=100, load=50, temp=25) == (50, 50)


def test_energy_step():
    assert energy_step(50) == pytest.approx(TICK_ENERGY_50)
    assert energy_step(10) == pytest.approx(200 / 3600000)
    assert energy_step(100) == pytest.approx(4200 / 3600000)


@pytest.mark.parametrize('mode', list(Mode))
def test_long_run_stays_in_range(mode):
    sim = Simulation(mode=mode)
    sim.set_inputs(load=100, temperature=90, soh=40.01)
    energies = []
    for i in range(250):
        if i == 100:
            sim.set_inputs(load=0, soc=5)
        point = sim.step()
        energies.append(sim.energy)
        assert 0 <= point.soc <= 100
        assert 0 <= point.load <= 100
        assert 0 <= point.temperature <= 100
        assert point.soh >= 40
        assert 0 <= point.cp <= 100
        assert 0 <= point.gp <= 100
    assert sim.state.soh == 40
    assert all(b >= a for a, b in zip(energies, energies[1:]))
    assert len(sim.series) == 200
    assert len(sim.energy_series) == 200
    assert sim.series[0].time == 51
    assert sim.series[-1].time == 250
    assert all(len(h) == 200 for h in sim.histories.values())


def test_simulation_reset_restores_defaults():
    sim = Simulation(mode=Mode.CONVENTIONAL)
    sim.set_inputs(load=80)
    for _ in range(10):
        sim.step()
    sim.reset()
    assert sim.state == reset(Mode.CONVENTIONAL)
    assert {k: list(v) for k, v in sim.histories.items()} == {
        'soc': [50], 'soh': [100], 'load': [50], 'temperature': [25]}
    assert len(sim.series) == 0
    assert len(sim.energy_series) == 0
    assert sim.energy == 0.0
    assert not sim.running


def test_set_inputs_clamps():
    sim = Simulation()
    sim.set_inputs(soc=150, soh=10, load=-5, temperature=30)
    assert (sim.state.soc, sim.state.soh, sim.state.load,
            sim.state.temperature) == (100, 40, 0, 30)
    assert list(sim.histories['soc']) == [50]


def test_set_mode():
    sim = Simulation(mode=Mode.DEEP)
    sim.set_mode('conventional')
    sim.set_inputs(load=90)
    assert sim.step().load == 90.0
    with pytest.raises(ValueError):
        sim.set_mode('turbo')


def test_membership_edits_reach_the_simulation():
    sim = Simulation(mode=Mode.CONVENTIONAL)
    update_mf(sim.mf_defs, 'SOC', 'Low', 2, 40)
    point = sim.step()
    assert (point.cp, point.gp) == (50.0, 50.0)


def test_run_fixed_number_of_ticks():
    sim = Simulation()
    assert sim.run(ticks=3, interval=0) == 3
    assert [p.time for p in sim.series] == [1, 2, 3]
    assert not sim.running


def test_run_pause_from_callback():
    def pause_at_two(sim, point):
        if point.time == 2:
            sim.pause()

    sim = Simulation()
    assert sim.run(interval=0, callback=pause_at_two) == 2
    assert sim.state.time == 2


def test_run_reset_from_callback():
    def reset_at_three(sim, point):
        if point.time == 3:
            sim.reset()

    sim = Simulation()
    assert sim.run(ticks=10, interval=0, callback=reset_at_three) == 3
    assert sim.state.time == 0
    assert len(sim.series) == 0


def test_energy_summary():
    sim = Simulation(mode=Mode.CONVENTIONAL)
    for _ in range(3):
        sim.step()
    assert sim.energy == pytest.approx(3 * TICK_ENERGY_50)

    summary = sim.summary()
    assert summary['steps'] == 3
    assert summary['total_energy'] == pytest.approx(2 * TICK_ENERGY_50)
    assert summary['cost'] == pytest.approx(10 * TICK_ENERGY_50)
    assert summary['average_load'] == pytest.approx(50)
    assert sim.summary(rate=2)['cost'] == pytest.approx(4 * TICK_ENERGY_50)


def test_energy_summary_empty():
    assert energy_summary([]) == {'total_energy': 0, 'cost': 0, 'steps': 0,
                                  'average_load': None}
