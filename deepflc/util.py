#!/usr/bin/env python3
"""This module contains various shared helper functions used by multiple
files: parameter dict handling, saturation and display rounding."""

from copy import copy

import numpy as np


def update_std(new, std):
    """Uses the dict `std` as a base and updates all keys that are present
    in `new` with the values of `new`. Returns the `std` dict, if `new is
    None`. Throws a ValueError, if `new` contains unknown keys."""
    # Return standard parameters if no updated parameters are provided
    if new is None:
        return std

    # Test if provided updated para names are valid/within the std para dict
    new_keys = set(new.keys())
    std_keys = set(std.keys())
    if not new_keys.issubset(std_keys):
        unknown_keys = new_keys.difference(std_keys)
        msg = (f'Unknown parameters: {unknown_keys}. The standard parameters '
               f'define: {std_keys}')
        raise ValueError(msg)

    # Update a copy of the std dict with the new values
    updated = copy(std)
    for key, val in new.items():
        updated[key] = val
    return updated


def saturate(val, low, high):
    """Classic saturation, returns `val` capped to [`low`, `high`] as a
    python float."""
    return float(np.clip(val, low, high))


def round2(val):
    """Rounds to 2 decimals with ties away from zero (0.125 -> 0.13), unlike
    the builtin `round()` which rounds ties to even. The tie is decided on
    the scaled value itself, so 2.675 (stored as 267.4999... after scaling)
    gives 2.67."""
    scaled = np.abs(val) * 100
    rounded = np.floor(scaled)
    # exact, floor(scaled + 0.5) may round up a value just below a tie
    rounded += (scaled - rounded) >= 0.5
    return float(np.sign(val) * rounded / 100)
