#!/usr/bin/env python3
"""
Simulation Module

Discrete-time simulation of a battery/load system managed by the Deep-FLC
controller. Every tick selects the controller inputs (live values in
conventional mode, forecasts in deep mode), runs the fuzzy inference,
applies heuristic safety corrections to its outputs, integrates battery
state of charge, temperature and state of health, and accounts the
consumed energy.

Main methods:

    step(state, histories, mf_defs=None, energy=None, rule_base=None,
         para=None)
        Advances the simulation by one tick
    reset(mode=Mode.DEEP)
        Default simulation state
    Simulation
        Owns state, histories and output series and drives the ticks with a
        fixed wall clock interval

Details on the parameterization of the simulation can be found in the
variables
    `STD_PARA` and
    `STD_PARA_DESCRIPTIONS`.
"""

import enum
import logging
import time
from collections import deque
from dataclasses import dataclass, replace

from deepflc.forecast import predict
from deepflc.fuzzy import infer
from deepflc.membership import default_mf_defs
from deepflc.rules import generate_rule_base
from deepflc.util import round2, saturate, update_std


logger = logging.getLogger(__name__)


class Mode(str, enum.Enum):
    CONVENTIONAL = 'conventional'
    DEEP = 'deep'


# Standard Parameters of the simulation
STD_PARA = {
    # Battery model
    'capacity': 16.2,
    'pv_to_bat': 200,
    'bat_threshold': 100,
    'bat_gain': 0.1,
    'efficiency': 0.9,
    'heat_rate': 0.01,
    'soh_decay': 0.005,
    'soh_min': 40,
    # Heuristic output corrections
    'temp_limit': 60,
    'temp_step': 10,
    'temp_cp_min': 20,
    'temp_gp_max': 80,
    'soh_limit': 50,
    'soh_step': 15,
    'soh_cp_min': 15,
    'soh_gp_max': 85,
    'load_limit': 80,
    'load_step': 10,
    'load_cp_max': 75,
    # Energy accounting
    'rated_load': 5000,
    'grid_power': 200,
    'own_generation': 1000,
    'dtime': 1,
    'rate': 5,
    # Buffers
    'maxlen': 200,
}

# Description of the standard parameters
STD_PARA_DESCRIPTIONS = {
    'capacity': 'Battery capacity in kWh',
    'pv_to_bat': 'PV power charging the battery in W',
    'bat_threshold': 'Load in percent above which the battery feeds the load',
    'bat_gain': 'Battery power to the load per percent above the threshold',
    'efficiency': 'Charging efficiency of the battery',
    'heat_rate': 'Temperature rise per tick per percent of load',
    'soh_decay': 'State of health lost per tick in percent',
    'soh_min': 'Lower bound of the state of health in percent',
    'temp_limit': 'Temperature above which CP is reduced and GP raised',
    'temp_step': 'CP/GP correction for high temperature',
    'temp_cp_min': 'Lower bound of CP after the temperature correction',
    'temp_gp_max': 'Upper bound of GP after the temperature correction',
    'soh_limit': 'State of health below which CP is reduced and GP raised',
    'soh_step': 'CP/GP correction for low state of health',
    'soh_cp_min': 'Lower bound of CP after the state of health correction',
    'soh_gp_max': 'Upper bound of GP after the state of health correction',
    'load_limit': 'Load above which CP is raised',
    'load_step': 'CP correction for high load',
    'load_cp_max': 'Upper bound of CP after the load correction',
    'rated_load': 'Load power in W at 100 percent load',
    'grid_power': 'Power drawn from the grid in W',
    'own_generation': 'Load power in W covered without the battery',
    'dtime': 'Tick length in s',
    'rate': 'Electricity rate per kWh',
    'maxlen': 'Capacity of the history buffers and output series',
}

# Initial values of the state variables
DEFAULTS = {
    'soc': 50.0,
    'soh': 100.0,
    'load': 50.0,
    'temperature': 25.0,
}

# Valid ranges of the state variables
RANGES = {
    'soc': (0, 100),
    'soh': (40, 100),
    'load': (0, 100),
    'temperature': (0, 100),
}


@dataclass(frozen=True)
class SimulationState:
    """State of the simulation between two ticks. `load` is the live load
    setpoint; the tick never writes it."""
    time: int
    soc: float
    soh: float
    load: float
    temperature: float
    mode: Mode


@dataclass(frozen=True)
class HistoryPoint:
    """Output of one tick, rounded to 2 decimals."""
    time: int
    soc: float
    soh: float
    load: float
    temperature: float
    cp: float
    gp: float
    mode: str


@dataclass(frozen=True)
class EnergyPoint:
    """Cumulative energy consumption in kWh after a tick."""
    time: int
    energy: float


def reset(mode=Mode.DEEP):
    """Returns the default simulation state."""
    return SimulationState(time=0, mode=Mode(mode), **DEFAULTS)


def new_histories(state, maxlen=STD_PARA['maxlen']):
    """Returns the history buffers of `state`, one deque per state variable,
    each seeded with the current value."""
    return {var: deque([getattr(state, var)], maxlen=maxlen)
            for var in ('soc', 'soh', 'load', 'temperature')}


def effective_inputs(state, histories):
    """Returns the controller inputs (soc, soh, load, temperature), the live
    values in conventional mode, the forecasts in deep mode."""
    if state.mode == Mode.DEEP:
        return tuple(predict(histories[var], 1)[0]
                     for var in ('soc', 'soh', 'load', 'temperature'))
    return state.soc, state.soh, state.load, state.temperature


def apply_overrides(cp, gp, soh, load, temp, para=None):
    """
    Heuristic corrections of the controller outputs.

    The corrections are evaluated independently in the order temperature,
    state of health, load, each acting on the result of the previous one.

    Parameters
    ----------
    cp, gp : float
        Controller outputs
    soh, load, temp : float
        Controller inputs
    para : dict, optional
        Parameters, defaults are filled from `STD_PARA`

    Returns
    -------
    cp, gp : float
        Corrected outputs
    """
    para = update_std(para, STD_PARA)
    if temp > para['temp_limit']:
        cp = max(cp - para['temp_step'], para['temp_cp_min'])
        gp = min(gp + para['temp_step'], para['temp_gp_max'])
        logger.debug('High temperature %.2f, CP=%.2f GP=%.2f', temp, cp, gp)
    if soh < para['soh_limit']:
        cp = max(cp - para['soh_step'], para['soh_cp_min'])
        gp = min(gp + para['soh_step'], para['soh_gp_max'])
        logger.debug('Low SOH %.2f, CP=%.2f GP=%.2f', soh, cp, gp)
    if load > para['load_limit']:
        cp = min(cp + para['load_step'], para['load_cp_max'])
        logger.debug('High load %.2f, CP=%.2f', load, cp)
    return cp, gp


def _battery(state, use_load, para):
    """Integrates state of charge, temperature and state of health over one
    tick."""
    bat_to_load = max(0, use_load - para['bat_threshold']) * para['bat_gain']
    delta_soc = ((para['pv_to_bat'] - bat_to_load)
                 / (para['capacity'] * 1000) * 100 * para['efficiency'])
    soc = saturate(state.soc + delta_soc, *RANGES['soc'])
    temp = saturate(state.temperature + para['heat_rate'] * use_load,
                    *RANGES['temperature'])
    soh = max(para['soh_min'], state.soh - para['soh_decay'])
    return soc, soh, temp


def energy_step(use_load, para=None):
    """Energy in kWh consumed during one tick at `use_load` percent load."""
    para = update_std(para, STD_PARA)
    load_power = use_load / 100 * para['rated_load']
    bat_to_load = max(0, load_power - para['own_generation'])
    return (para['grid_power'] + bat_to_load) * para['dtime'] / 3600000


def step(state, histories, mf_defs=None, energy=None, rule_base=None,
         para=None):
    """
    Advances the simulation by one tick.

    Parameters
    ----------
    state : SimulationState
        State committed by the previous tick
    histories : dict of deques
        History buffers as returned by `new_histories()`. The new state of
        charge, state of health, controller load input and temperature are
        appended in place.
    mf_defs : dict of dicts holding 3-element number-lists, optional
        Input MF definitions, Default: STD_MF_DEF
    energy : float, optional
        Cumulative energy in kWh before this tick, Default: 0
    rule_base : list of Rule, optional
        Default: STD_RULE_BASE
    para : dict, optional
        Parameters, defaults are filled from `STD_PARA`

    Returns
    -------
    state : SimulationState
        New state, time advanced by one
    point : HistoryPoint
        Rounded output of this tick
    energy_point : EnergyPoint
        Cumulative energy after this tick
    """
    para = update_std(para, STD_PARA)
    tick = state.time + 1

    # 1) controller inputs
    use_soc, use_soh, use_load, use_temp = effective_inputs(state, histories)

    # 2) inference and 3) corrections
    cp, gp, _ = infer(use_soc, use_soh, use_load, use_temp,
                      mf_defs=mf_defs, rule_base=rule_base)
    cp, gp = apply_overrides(cp, gp, use_soh, use_load, use_temp, para)

    # 4) battery
    soc, soh, temp = _battery(state, use_load, para)

    # 5) output
    point = HistoryPoint(time=tick,
                         soc=round2(soc),
                         soh=round2(soh),
                         load=round2(use_load),
                         temperature=round2(temp),
                         cp=round2(cp),
                         gp=round2(gp),
                         mode=Mode(state.mode).value)

    # 6) histories and state
    for var, val in zip(('soc', 'soh', 'load', 'temperature'),
                        (soc, soh, use_load, temp)):
        histories[var].append(val)
    new_state = replace(state, time=tick, soc=soc, soh=soh, temperature=temp)

    # 7) energy
    last = 0.0 if energy is None else energy
    energy_point = EnergyPoint(tick, last + energy_step(use_load, para))

    logger.debug('t=%d inputs=(%.2f, %.2f, %.2f, %.2f) CP=%.2f GP=%.2f',
                 tick, use_soc, use_soh, use_load, use_temp, cp, gp)
    return new_state, point, energy_point


def energy_summary(series, rate=None, para=None):
    """
    Energy consumption analysis of an output series.

    The energy is recomputed from the load of every point but the first.

    Parameters
    ----------
    series : sequence of HistoryPoint
    rate : float, optional
        Electricity rate per kWh, Default: para['rate']
    para : dict, optional
        Parameters, defaults are filled from `STD_PARA`

    Returns
    -------
    dict
        'total_energy' in kWh, 'cost', 'steps' (number of points) and
        'average_load' (None for an empty series)
    """
    para = update_std(para, STD_PARA)
    if rate is None:
        rate = para['rate']
    series = list(series)
    total = sum(energy_step(p.load, para) for p in series[1:])
    average = (sum(p.load for p in series) / len(series)) if series else None
    return {
        'total_energy': total,
        'cost': total * rate,
        'steps': len(series),
        'average_load': average,
    }


class Simulation:
    """
    Deep-FLC simulation driver

    Holds the simulation state, the history buffers of the forecaster, the
    output series and the energy series, and advances them tick by tick.
    Ticks never overlap; `pause()` and `reset()` take effect before the next
    tick.

    Important methods:
        .step()
        .run()
        .pause()
        .reset()
        .set_inputs()
        .set_mode()
        .summary()
    """

    def __init__(self, mode=Mode.DEEP, mf_defs=None, rule_base=None,
                 para=None):
        self.para = update_std(para, STD_PARA)
        self.mf_defs = default_mf_defs() if mf_defs is None else mf_defs
        self.rule_base = (generate_rule_base() if rule_base is None
                          else rule_base)
        self.mode = Mode(mode)
        self.running = False
        self.reset()

    @property
    def energy(self):
        """Cumulative energy in kWh, 0 before the first tick."""
        if not self.energy_series:
            return 0.0
        return self.energy_series[-1].energy

    def reset(self):
        """Stops the driver and restores the default state, histories and
        empty output series."""
        self.running = False
        self.state = reset(self.mode)
        self.histories = new_histories(self.state, self.para['maxlen'])
        self.series = deque(maxlen=self.para['maxlen'])
        self.energy_series = deque(maxlen=self.para['maxlen'])
        logger.info('Simulation reset (mode=%s)', self.mode.value)

    def set_inputs(self, soc=None, soh=None, load=None, temperature=None):
        """Sets live input values, clamped to their valid ranges. The
        history buffers are not touched."""
        values = {'soc': soc, 'soh': soh, 'load': load,
                  'temperature': temperature}
        changes = {var: saturate(val, *RANGES[var])
                   for var, val in values.items() if val is not None}
        self.state = replace(self.state, **changes)

    def set_mode(self, mode):
        self.mode = Mode(mode)
        self.state = replace(self.state, mode=self.mode)

    def step(self):
        """Runs one tick and returns its HistoryPoint."""
        self.state, point, energy_point = step(
            self.state, self.histories, mf_defs=self.mf_defs,
            energy=self.energy, rule_base=self.rule_base, para=self.para)
        self.series.append(point)
        self.energy_series.append(energy_point)
        return point

    def run(self, ticks=None, interval=1.0, callback=None):
        """
        Drives ticks every `interval` seconds of wall clock time.

        Parameters
        ----------
        ticks : int, optional
            Number of ticks after which to stop, runs until paused if None
        interval : float, optional
            Seconds between two ticks, the first tick fires after one
            interval. Default: 1.0
        callback : callable, optional
            Called as callback(simulation, point) after every tick; may call
            `pause()` or `reset()`

        Returns
        -------
        int
            Number of ticks run
        """
        self.running = True
        logger.info('Simulation started (mode=%s, interval=%ss)',
                    self.mode.value, interval)
        count = 0
        next_tick = time.monotonic()
        while self.running and (ticks is None or count < ticks):
            next_tick += interval
            time.sleep(max(0.0, next_tick - time.monotonic()))
            if not self.running:
                break
            point = self.step()
            count += 1
            if callback is not None:
                callback(self, point)
        self.running = False
        logger.info('Simulation stopped after %d ticks', count)
        return count

    def pause(self):
        self.running = False

    def summary(self, rate=None):
        """Energy consumption analysis of the output series, see
        `energy_summary()`."""
        return energy_summary(self.series, rate, self.para)
