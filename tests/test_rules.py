import pytest

from deepflc.rules import (OUTPUT_TERMS, STD_TERM_SETS, derive_consequent,
                           generate_rule_base, rule_table)


@pytest.fixture(scope='module')
def rules():
    return generate_rule_base()


def _rule_id(soc, soh, load, temp):
    s = STD_TERM_SETS
    return (27 * s['SOC'].index(soc) + 9 * s['SOH'].index(soh)
            + 3 * s['Load'].index(load) + s['Temperature'].index(temp) + 1)


def test_rule_count_and_ids(rules):
    assert len(rules) == 81
    assert [r.id for r in rules] == list(range(1, 82))


def test_first_rule(rules):
    first = rules[0]
    assert first.antecedent == {'SOC': 'Low', 'SOH': 'Degraded',
                                'Load': 'Low', 'Temperature': 'Low'}
    assert first.consequent == {'CP': 'Low', 'GP': 'High'}


def test_enumeration_order(rules):
    assert rules[1].temp == 'Normal'
    assert (rules[3].load, rules[3].temp) == ('Medium', 'Low')
    assert (rules[9].soh, rules[9].load) == ('Normal', 'Low')
    assert rules[27].soc == 'Medium'


@pytest.mark.parametrize('antecedent, expected', [
    (('High', 'Good', 'Low', 'Low'), ('High', 'Low')),
    (('Medium', 'Normal', 'Low', 'Normal'), ('Medium', 'Medium')),
    (('High', 'Degraded', 'Low', 'Low'), ('Medium', 'Medium')),
    (('High', 'Good', 'High', 'High'), ('Low', 'High')),
    (('High', 'Degraded', 'High', 'High'), ('Low', 'High')),
    (('Medium', 'Good', 'High', 'Low'), ('Low', 'High')),
    (('Low', 'Good', 'Medium', 'Normal'), ('Low', 'High')),
])
def test_consequents(rules, antecedent, expected):
    rule = rules[_rule_id(*antecedent) - 1]
    assert (rule.soc, rule.soh, rule.load, rule.temp) == antecedent
    assert (rule.cp, rule.gp) == expected


def test_step_downs_accumulate_and_saturate(rules):
    baseline = {'Low': 0, 'Medium': 1, 'High': 2}
    for r in rules:
        steps = ((r.soh == 'Degraded') + (r.load == 'High')
                 + (r.temp == 'High'))
        cp = max(baseline[r.soc] - steps, 0)
        gp = min(2 - baseline[r.soc] + steps, 2)
        assert (r.cp, r.gp) == (OUTPUT_TERMS[cp], OUTPUT_TERMS[gp])


def test_derive_consequent():
    assert derive_consequent({'SOC': 'Medium', 'SOH': 'Degraded',
                              'Load': 'Low', 'Temperature': 'Low'}) \
        == ('Low', 'High')


def test_custom_term_sets():
    term_sets = {'SOC': ('Low', 'High'), 'SOH': ('Good',),
                 'Load': ('Low',), 'Temperature': ('Low', 'High')}
    rules = generate_rule_base(term_sets)
    assert [r.id for r in rules] == [1, 2, 3, 4]
    assert [(r.soc, r.temp, r.cp, r.gp) for r in rules] == [
        ('Low', 'Low', 'Low', 'High'),
        ('Low', 'High', 'Low', 'High'),
        ('High', 'Low', 'High', 'Low'),
        ('High', 'High', 'Medium', 'Medium'),
    ]


def test_rule_table(rules):
    table = rule_table(rules)
    assert len(table) == 81
    assert table[0] == (1, 'Low', 'Degraded', 'Low', 'Low', 'Low', 'High')


def test_rules_are_immutable(rules):
    with pytest.raises(AttributeError):
        rules[0].cp = 'High'
