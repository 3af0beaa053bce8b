#!/usr/bin/env python3
"""
Membership Function Module

This module implements the triangular/shoulder membership functions (MFs)
of the Deep-FLC controller and the fuzzification of its four crisp inputs.

Main methods:

    evaluate_membership(x, a, b, c)
        Membership degree of `x` in the triangle/shoulder spanned by the
        support points `a <= b <= c`
    fuzzify(variable, x, mf_defs=None)
        Maps a crisp input to a dict {term: degree} for all terms of the
        input variable

Configuration boundary (the editable MF table):

    default_mf_defs()
    validate_mf_defs(mf_defs)
    update_mf(mf_defs, variable, term, index, value)
    membership_curves(variable, mf_defs=None, universe=None)

Details on the parameterization can be found in the variable

    `STD_MF_DEF`
        Input membership functions definition
"""

import logging
from copy import deepcopy

import numpy as np


logger = logging.getLogger(__name__)


# Names of the input variables, in the order the controller consumes them
VARIABLES = ('SOC', 'SOH', 'Load', 'Temperature')

# STD MEMBERSHIP FUNCTION DEFINITION FOR INPUT is a dict of dicts holding
# 3-element number lists. Keys of the outer dict hold the names of the input
# variables, keys of the inner dict the linguistic terms, and the values the
# support points [a, b, c] of a triangular MF over the domain [0, 100].
# a == b denotes a left shoulder (1 below a), b == c a right shoulder (1
# above c).
STD_MF_DEF = {
    'SOC': {
        'Low': [0, 0, 60],
        'Medium': [50, 75, 90],
        'High': [80, 100, 100],
    },
    'SOH': {
        'Degraded': [0, 0, 60],
        'Normal': [50, 75, 90],
        'Good': [80, 100, 100],
    },
    'Load': {
        'Low': [0, 0, 40],
        'Medium': [30, 50, 70],
        'High': [60, 100, 100],
    },
    'Temperature': {
        'Low': [0, 0, 20],
        'Normal': [15, 30, 45],
        'High': [40, 100, 100],
    },
}


def default_mf_defs():
    """Returns an independent, editable copy of `STD_MF_DEF`."""
    return deepcopy(STD_MF_DEF)


def evaluate_membership(x, a, b, c):
    """
    Triangular membership function with shoulder support.

    The branches are evaluated in a fixed order, so degenerate triangles
    resolve deterministically: `a == b` is a left shoulder, else `b == c` is
    a right shoulder, else a proper triangle. The caller must guarantee
    `a <= b <= c`; malformed points yield meaningless but finite degrees
    and never raise.

    Parameters
    ----------
    x : scalar or arraylike (numpy)
        Crisp input value(s), expected within [0, 100]
    a, b, c : scalar
        Support points of the MF

    Returns
    -------
    float or numpy.array
        Membership degree(s) within [0, 1], float for scalar input
    """
    xs = np.asarray(x, dtype=float)

    # a == b == c divides by zero in masked out elements only
    with np.errstate(divide='ignore', invalid='ignore'):
        if a == b:
            mu = np.select([xs <= a, xs >= c],
                           [1.0, 0.0],
                           (c - xs) / (c - a))
        elif b == c:
            mu = np.select([xs <= a, xs >= c],
                           [0.0, 1.0],
                           (xs - a) / (b - a))
        else:
            mu = np.select([(xs <= a) | (xs >= c),
                            xs == b,
                            (a < xs) & (xs < b),
                            (b < xs) & (xs < c)],
                           [0.0,
                            1.0,
                            (xs - a) / (b - a),
                            (c - xs) / (c - b)],
                           0.0)

    if mu.ndim == 0:
        return float(mu)
    return mu


def fuzzify(variable, x, mf_defs=None):
    """
    Fuzzifies the crisp value `x` of the input `variable`.

    The MF definitions are read on every call, so edits to `mf_defs` are
    visible immediately.

    Parameters
    ----------
    variable : str
        Name of the input variable, one of `VARIABLES`
    x : scalar
        Crisp input value
    mf_defs : dict of dicts holding 3-element number-lists, optional
        MF definitions, Default: STD_MF_DEF

    Returns
    -------
    dict
        {term: membership degree} for every term of `variable`
    """
    if mf_defs is None:
        mf_defs = STD_MF_DEF
    return {term: evaluate_membership(x, *points)
            for term, points in mf_defs[variable].items()}


def validate_mf_defs(mf_defs):
    """Checks that `mf_defs` only holds known input variables and that every
    term is defined by three ordered support points `a <= b <= c`. Throws a
    ValueError otherwise."""
    unknown = set(mf_defs.keys()).difference(VARIABLES)
    if unknown:
        raise ValueError(f'Unknown input variables: {unknown}. Known '
                         f'variables are: {VARIABLES}')
    for variable, terms in mf_defs.items():
        for term, points in terms.items():
            _validate_points(variable, term, points)


def _validate_points(variable, term, points):
    if len(points) != 3:
        raise ValueError(f'MF {variable}/{term} must have 3 support points, '
                         f'got {len(points)}')
    a, b, c = points
    if not a <= b <= c:
        raise ValueError(f'MF {variable}/{term} requires a <= b <= c, got '
                         f'{list(points)}')


def update_mf(mf_defs, variable, term, index, value):
    """
    Edits a single support point of a single MF in place.

    The edited triple is validated before it is committed; on failure
    `mf_defs` stays unchanged.

    Parameters
    ----------
    mf_defs : dict of dicts holding 3-element number-lists
        MF definitions to edit, e.g. from `default_mf_defs()`
    variable : str
        Input variable name
    term : str
        Linguistic term of `variable`
    index : int
        Support point to replace, 0, 1 or 2 for a, b or c
    value : scalar
        New support point value

    Raises
    ------
    ValueError
        For unknown variables/terms, an index out of range or if the edit
        breaks the ordering a <= b <= c
    """
    try:
        points = list(mf_defs[variable][term])
    except KeyError:
        raise ValueError(f'Unknown MF {variable}/{term}') from None
    if index not in (0, 1, 2):
        raise ValueError(f'Support point index must be 0, 1 or 2, got '
                         f'{index}')
    points[index] = float(value)
    _validate_points(variable, term, points)
    mf_defs[variable][term] = points
    logger.info('MF %s/%s set to %s', variable, term, points)


def membership_curves(variable, mf_defs=None, universe=None):
    """
    Samples all MFs of `variable` over a universe.

    Parameters
    ----------
    variable : str
        Input variable name
    mf_defs : dict of dicts holding 3-element number-lists, optional
        MF definitions, Default: STD_MF_DEF
    universe : numpy.array, optional
        Sample points, Default: 0, 1, ..., 100

    Returns
    -------
    universe : numpy.array
        Sample points
    curves : dict
        {term: numpy.array of membership degrees}
    """
    if mf_defs is None:
        mf_defs = STD_MF_DEF
    if universe is None:
        universe = np.arange(0, 101, dtype=float)
    curves = {term: evaluate_membership(universe, *points)
              for term, points in mf_defs[variable].items()}
    return universe, curves
