#!/usr/bin/env python3
"""
Rule Base Module

Generates the Deep-FLC rule base as the cartesian product of the input term
sets. Consequents (charge power CP, generation power GP) are derived from
the antecedent instead of being listed:

    SOC Low    -> CP Low,    GP High
    SOC Medium -> CP Medium, GP Medium
    SOC High   -> CP High,   GP Low

followed by one step down of CP and one step up of GP for each of SOH
Degraded, Load High and Temperature High, saturating at the ends of the
output scale.

Main method:

    generate_rule_base(term_sets=None)
"""

from dataclasses import dataclass
from itertools import product


# Term sets of the input variables. The nesting order of the cartesian
# product (SOC outermost, Temperature innermost) defines the rule ids.
SOC_TERMS = ('Low', 'Medium', 'High')
SOH_TERMS = ('Degraded', 'Normal', 'Good')
LOAD_TERMS = ('Low', 'Medium', 'High')
TEMP_TERMS = ('Low', 'Normal', 'High')

STD_TERM_SETS = {
    'SOC': SOC_TERMS,
    'SOH': SOH_TERMS,
    'Load': LOAD_TERMS,
    'Temperature': TEMP_TERMS,
}

# Ordered output scale shared by CP and GP
OUTPUT_TERMS = ('Low', 'Medium', 'High')

# Baseline consequent (CP, GP) per SOC term
BASELINE = {
    'Low': ('Low', 'High'),
    'Medium': ('Medium', 'Medium'),
    'High': ('High', 'Low'),
}

# (variable, term) pairs that each trigger one step down
STEP_DOWN_TRIGGERS = (
    ('SOH', 'Degraded'),
    ('Load', 'High'),
    ('Temperature', 'High'),
)


@dataclass(frozen=True)
class Rule:
    """IF SOC and SOH and Load and Temp THEN CP and GP

    The `temp` field holds a term of the `Temperature` variable.
    """
    id: int
    soc: str
    soh: str
    load: str
    temp: str
    cp: str
    gp: str

    @property
    def antecedent(self):
        return {'SOC': self.soc, 'SOH': self.soh, 'Load': self.load,
                'Temperature': self.temp}

    @property
    def consequent(self):
        return {'CP': self.cp, 'GP': self.gp}


def _shift(term, steps):
    idx = OUTPUT_TERMS.index(term) + steps
    idx = min(max(idx, 0), len(OUTPUT_TERMS) - 1)
    return OUTPUT_TERMS[idx]


def _step_down(cp, gp):
    return _shift(cp, -1), _shift(gp, +1)


def derive_consequent(antecedent):
    """Returns the (CP, GP) terms for an antecedent dict with the keys
    'SOC', 'SOH', 'Load' and 'Temperature'. SOC terms missing in
    `BASELINE` are treated like 'High'."""
    cp, gp = BASELINE.get(antecedent['SOC'], BASELINE['High'])
    for variable, term in STEP_DOWN_TRIGGERS:
        if antecedent[variable] == term:
            cp, gp = _step_down(cp, gp)
    return cp, gp


def generate_rule_base(term_sets=None):
    """
    Generates the rule base.

    Parameters
    ----------
    term_sets : dict, optional
        Ordered term lists per input variable with the keys 'SOC', 'SOH',
        'Load' and 'Temperature'. Default: STD_TERM_SETS

    Returns
    -------
    list of Rule
        One rule per term combination, ids 1..n in generation order (81
        rules for the standard term sets)
    """
    if term_sets is None:
        term_sets = STD_TERM_SETS

    combinations = product(term_sets['SOC'], term_sets['SOH'],
                           term_sets['Load'], term_sets['Temperature'])
    rules = []
    for rule_id, (soc, soh, load, temp) in enumerate(combinations, 1):
        cp, gp = derive_consequent(
            {'SOC': soc, 'SOH': soh, 'Load': load, 'Temperature': temp})
        rules.append(Rule(rule_id, soc, soh, load, temp, cp, gp))
    return rules


def rule_table(rule_base):
    """Flattens rules into (id, SOC, SOH, Load, Temp, CP, GP) rows."""
    return [(r.id, r.soc, r.soh, r.load, r.temp, r.cp, r.gp)
            for r in rule_base]


# Rule base of the standard term sets, generated once on import
STD_RULE_BASE = generate_rule_base()
