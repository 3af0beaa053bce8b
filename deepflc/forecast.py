#!/usr/bin/env python3
"""
Forecast Module

This module defines the placeholder predictor of the Deep-FLC controller, an
exponential smoother that stands in for a learned time-series model. In
deep mode the simulation feeds its predictions to the fuzzy controller
instead of the instantaneous inputs.

Main method:

predict(history, steps=1, para=None)
    Smooths the history of one variable and returns the clamped result for
    every requested step.

Details on the parameterization of the predictor can be found in the
variables
    `STD_PARA` and
    `STD_PARA_DESCRIPTIONS`.
"""

import numpy as np

from deepflc.util import update_std


# Standard Parameters of the predictor
STD_PARA = {
    'alpha': 0.2,
    'empty': 50,
    'low': 0,
    'high': 100,
}

# Description of the standard parameters
STD_PARA_DESCRIPTIONS = {
    'alpha': 'Smoothing factor, weight of each blended history value',
    'empty': 'Prediction returned for an empty history',
    'low': 'Lower clamp of the prediction',
    'high': 'Upper clamp of the prediction',
}


def predict(history, steps=1, para=None):
    """
    Predicts the next value(s) of a variable from its history.

    The smoother is seeded with the newest value and then walks the history
    backwards, blending in each older value with the same weight:

        last = alpha * history[i] + (1 - alpha) * last,
        i = n-2, n-3, ..., 0

    Hence the oldest sample is blended in last and carries the largest
    weight. This is not a forward EMA and is kept this way because the
    simulated series depend on it.

    Parameters
    ----------
    history : sequence of float
        Values of one variable, oldest first
    steps : int, optional
        Prediction horizon, Default: 1
    para : dict, optional
        Parameters, defaults are filled from `STD_PARA`

    Returns
    -------
    list of float
        `steps` times the same clamped prediction, `para['empty']` for each
        step if `history` is empty
    """
    para = update_std(para, STD_PARA)
    alpha = para['alpha']

    history = list(history)
    if not history:
        return [float(para['empty'])] * steps

    last = history[-1]
    for val in reversed(history[:-1]):
        last = alpha * val + (1 - alpha) * last

    pred = float(np.clip(last, para['low'], para['high']))
    return [pred] * steps
