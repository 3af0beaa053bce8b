#!/usr/bin/env python3
"""
Fuzzy Inference Module

This module implements the fuzzy inference engine of the Deep-FLC energy
management controller. Four crisp inputs (state of charge SOC, state of
health SOH, Load and Temperature) are mapped onto two crisp outputs, the
charge power CP and the generation power GP, both on a 0..100 scale.

Main method:

    infer(soc, soh, load, temp, mf_defs=None, rule_base=None)
        Min-conjunction over the rule antecedents and weighted-centroid
        defuzzification with the fixed output centroids `OUTPUT_CENTROIDS`.
        This is the controller used by the simulation.

Reference implementation:

    build_controller(mf_defs=None, mf_out=None, rule_base=None)
        Generates an equivalent scikit-fuzzy controller object (full
        Mamdani aggregation and center of gravity defuzzification over the
        output membership functions `STD_MF_OUT_DEF`)
    reference_infer(soc, soh, load, temp, controller=None)
        Evaluates such a controller, useful for comparing both
        defuzzification schemes
"""

import logging

import numpy as np
import skfuzzy as fuzz
from skfuzzy import control as ctrl

from deepflc.membership import STD_MF_DEF, VARIABLES, fuzzify
from deepflc.rules import STD_RULE_BASE


logger = logging.getLogger(__name__)


# Representative (centroid) value of each output term
OUTPUT_CENTROIDS = {'Low': 25, 'Medium': 50, 'High': 75}

# Crisp output if no rule fires
DEFAULT_OUTPUT = 50

# STD MEMBERSHIP FUNCTION DEFINITION FOR OUTPUT is structured in the same
# way as `STD_MF_DEF`. The centroid of every triangle equals the respective
# `OUTPUT_CENTROIDS` value. Only used by the reference controller.
STD_MF_OUT_DEF = {
    'CP': {
        'Low': [0, 25, 50],
        'Medium': [25, 50, 75],
        'High': [50, 75, 100],
    },
    'GP': {
        'Low': [0, 25, 50],
        'Medium': [25, 50, 75],
        'High': [50, 75, 100],
    },
}


def infer(soc, soh, load, temp, mf_defs=None, rule_base=None):
    """
    Fuzzy inference of charge and generation power.

    Every rule fires with the minimum of its four antecedent membership
    degrees (terms missing in the fuzzified inputs count as 0). Rules with
    a firing strength of 0 are skipped, the remaining ones contribute their
    consequent centroid weighted by the firing strength. The function holds
    no state and reads `mf_defs` on every call.

    Parameters
    ----------
    soc, soh, load, temp : scalar
        Crisp inputs, state of charge, state of health, load and
        temperature, each expected within [0, 100]
    mf_defs : dict of dicts holding 3-element number-lists, optional
        Input MF definitions, Default: STD_MF_DEF
    rule_base : list of Rule, optional
        Default: STD_RULE_BASE

    Returns
    -------
    cp : float
        Charge power, `DEFAULT_OUTPUT` if no rule fires
    gp : float
        Generation power, `DEFAULT_OUTPUT` if no rule fires
    memberships : dict of dicts
        {variable: {term: degree}} of the fuzzified inputs
    """
    if mf_defs is None:
        mf_defs = STD_MF_DEF
    if rule_base is None:
        rule_base = STD_RULE_BASE

    crisp = dict(zip(VARIABLES, (soc, soh, load, temp)))
    memberships = {var: fuzzify(var, x, mf_defs) for var, x in crisp.items()}

    cp_num = cp_den = gp_num = gp_den = 0.0
    for rule in rule_base:
        firing = min(memberships[var].get(term, 0.0)
                     for var, term in rule.antecedent.items())
        if firing <= 0:
            continue
        cp_num += firing * OUTPUT_CENTROIDS[rule.cp]
        cp_den += firing
        gp_num += firing * OUTPUT_CENTROIDS[rule.gp]
        gp_den += firing

    cp = cp_num / cp_den if cp_den > 0 else float(DEFAULT_OUTPUT)
    gp = gp_num / gp_den if gp_den > 0 else float(DEFAULT_OUTPUT)
    return cp, gp, memberships


# Function that generates the reference controller

def build_controller(mf_defs=None, mf_out=None, rule_base=None):
    """Generates a fuzzy controller object that can perform calculations (of
    type `skfuzzy.ctrl.ControlSystemSimulation`).

    It uses structured dict of dicts to define the membership functions
    (MFs), inputs and outputs. See STD_MF_DEF, STD_MF_OUT_DEF and
    `deepflc.rules.generate_rule_base` for further information.

    Parameters
    ----------
    mf_defs : dict of dicts holding 3-element number-arrays, optional
        Defines names of input variables, names of MFs and MF support
        points, Default: STD_MF_DEF
    mf_out : dict of dicts holding 3-element number-arrays, optional
        Defines names of output variables ('CP' and 'GP'), names of MFs and
        MF support points, Default: STD_MF_OUT_DEF
    rule_base : list of Rule, optional
        Default: STD_RULE_BASE
    """
    if mf_defs is None:
        mf_defs = STD_MF_DEF
    if mf_out is None:
        mf_out = STD_MF_OUT_DEF
    if rule_base is None:
        rule_base = STD_RULE_BASE

    # ##
    # ## Add Antecedent/Consequent definition and in/out membership Functions
    in_vars = dict()
    out_vars = dict()
    zip_vars_mf_conante = zip([in_vars, out_vars],
                              [mf_defs, mf_out],
                              [ctrl.Antecedent, ctrl.Consequent])
    for inout_vars, mf_inout, ConAnte in zip_vars_mf_conante:
        for var, mf_def in mf_inout.items():
            minmax = _get_minmax_from_mfvals(list(mf_def.values()))
            inout_vars[var] = ConAnte(np.linspace(*minmax, 101), var)
            for mf_name, mf_vals in mf_def.items():
                if len(mf_vals) != 3:
                    raise ValueError('MF Definition must have 3 values')
                inout_vars[var][mf_name] = \
                    fuzz.trimf(inout_vars[var].universe, mf_vals)

    # ##
    # ## Add Rule Definition
    rules = []
    for rule in rule_base:
        terms = [in_vars[var][term] for var, term in rule.antecedent.items()]
        antecedent = terms[0] & terms[1] & terms[2] & terms[3]
        rules.append(ctrl.Rule(antecedent,
                               [out_vars['CP'][rule.cp],
                                out_vars['GP'][rule.gp]],
                               label=f'rule {rule.id}'))

    # ##
    # ## Create controller
    con_sys = ctrl.ControlSystem(rules)
    con_sys_sim = ctrl.ControlSystemSimulation(con_sys)
    logger.info('Built reference controller with %d rules', len(rules))
    return con_sys_sim


def _get_minmax_from_mfvals(mfval_list_of_lists):
    """Crawls a list of lists holding numbers and determines the minimum or
    maximum value, respectively"""
    minval = np.min([np.min(vec) for vec in mfval_list_of_lists])
    maxval = np.max([np.max(vec) for vec in mfval_list_of_lists])
    return [minval, maxval]


# Function that evaluates the control inputs with a reference controller

def reference_infer(soc, soh, load, temp, controller=None):
    """
    Evaluates the scikit-fuzzy reference controller.

    Parameters
    ----------
    soc, soh, load, temp : scalar
        Crisp inputs
    controller : fuzzy controller object, optional
        generated with `build_controller()`, a standard controller is built
        if not provided

    Returns
    -------
    cp
        Charge power
    gp
        Generation power
    """
    if controller is None:
        controller = build_controller()
    for var, x in zip(VARIABLES, (soc, soh, load, temp)):
        controller.input[var] = x
    controller.compute()

    return controller.output['CP'], controller.output['GP']
