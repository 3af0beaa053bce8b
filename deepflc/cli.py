#!/usr/bin/env python3
"""Command line front end of the Deep-FLC controller (run / rules / infer)."""

import argparse
import logging
from dataclasses import asdict

from deepflc.fuzzy import infer
from deepflc.rules import generate_rule_base, rule_table
from deepflc.simulation import Mode, Simulation


def cmd_run(args):
    sim = Simulation(mode=args.mode)
    sim.set_inputs(soc=args.soc, soh=args.soh, load=args.load,
                   temperature=args.temp)
    sim.run(ticks=args.ticks, interval=args.interval)

    if sim.series:
        last = asdict(sim.series[-1])
        print('Last point: ' + ', '.join(f'{k}={v}' for k, v in last.items()))
    summary = sim.summary(rate=args.rate)
    print(f"Steps: {summary['steps']}")
    print(f"Cumulative energy: {sim.energy:.6f} kWh")
    print(f"Total energy: {summary['total_energy']:.4f} kWh")
    print(f"Cost: {summary['cost']:.2f}")
    if summary['average_load'] is not None:
        print(f"Average load: {summary['average_load']:.2f} %")


def cmd_rules(args):
    header = ('#', 'SOC', 'SOH', 'Load', 'Temp', 'CP', 'GP')
    print(''.join(f'{h:<10}' for h in header))
    for row in rule_table(generate_rule_base()):
        print(''.join(f'{str(c):<10}' for c in row))


def cmd_infer(args):
    cp, gp, memberships = infer(args.soc, args.soh, args.load, args.temp)
    for var, degrees in memberships.items():
        terms = ', '.join(f'{t}({mu:.2f})' for t, mu in degrees.items())
        print(f'  {var} -> {terms}')
    print(f'CP: {cp:.6g}')
    print(f'GP: {gp:.6g}')


def build_parser():
    fmt = argparse.ArgumentDefaultsHelpFormatter
    ap = argparse.ArgumentParser(
        prog='deepflc',
        description='Deep-FLC fuzzy energy management controller',
        formatter_class=fmt,
    )
    ap.add_argument('-v', '--verbose', action='count', default=0,
                    help='-v for INFO, -vv for DEBUG logging')
    sub = ap.add_subparsers(dest='cmd', required=True)

    # run
    sp_r = sub.add_parser('run', help='Run the simulation', formatter_class=fmt)
    sp_r.add_argument('--ticks', type=int, default=60)
    sp_r.add_argument('--interval', type=float, default=0.0,
                      help='seconds between ticks (1.0 for real time)')
    sp_r.add_argument('--mode', choices=[m.value for m in Mode],
                      default=Mode.DEEP.value)
    sp_r.add_argument('--soc', type=float, default=None)
    sp_r.add_argument('--soh', type=float, default=None)
    sp_r.add_argument('--load', type=float, default=None)
    sp_r.add_argument('--temp', type=float, default=None)
    sp_r.add_argument('--rate', type=float, default=None,
                      help='electricity rate per kWh')
    sp_r.set_defaults(func=cmd_run)

    # rules
    sp_l = sub.add_parser('rules', help='Print the rule base',
                          formatter_class=fmt)
    sp_l.set_defaults(func=cmd_rules)

    # infer
    sp_i = sub.add_parser('infer', help='Single inference',
                          formatter_class=fmt)
    sp_i.add_argument('soc', type=float)
    sp_i.add_argument('soh', type=float)
    sp_i.add_argument('load', type=float)
    sp_i.add_argument('temp', type=float)
    sp_i.set_defaults(func=cmd_infer)

    return ap


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)
    level = {0: logging.WARNING, 1: logging.INFO}.get(args.verbose,
                                                      logging.DEBUG)
    logging.basicConfig(level=level,
                        format='%(asctime)s %(name)s %(levelname)s '
                               '%(message)s')
    return args.func(args)


if __name__ == '__main__':
    main()
