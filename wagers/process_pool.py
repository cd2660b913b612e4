#!/usr/bin/env python3
"""CLI entry point for running a wager pool through its stages.

Usage:
    python wagers/process_pool.py --season 2025 --pool mini_leagues \\
        import --snapshot leaderboards_2025.json
    python wagers/process_pool.py --season 2025 --pool mini_leagues \\
        decide --stage week15 --division A --league L1 --owner Alice --choice wager
    python wagers/process_pool.py --season 2025 --pool mini_leagues \\
        resolve --stage week15 --snapshot leaderboards_2025.json
    python wagers/process_pool.py --season 2025 --pool mini_leagues \\
        report --stage week15 --output ./output/
"""

import argparse
import json
import logging
import os
import sys

# Add parent directory to path for imports (skip when frozen by PyInstaller)
if not getattr(sys, 'frozen', False):
    sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from wagers.adapters.file_adapter import FileSnapshotSource
from wagers.adapters.http_adapter import HttpSnapshotSource
from wagers.core import pool as ops
from wagers.core.config import LEADERBOARD_URL, load_pool_config, merge_rules
from wagers.core.errors import WagerError
from wagers.core.identity import entry_key
from wagers.core.output_generator import generate_payouts_csv, generate_results_report
from wagers.core.pdf_generator import generate_results_pdf
from wagers.core.presets import POOLS
from wagers.core.snapshot import pool_owners
from wagers.core.store import PoolStore

DEFAULT_DB = 'wager_pools.db'


def _fetch_owners(args, pool):
    """Read the snapshot named on the command line and pick out this pool."""
    if args.snapshot:
        source = FileSnapshotSource(args.snapshot)
    else:
        source = HttpSnapshotSource(args.url or LEADERBOARD_URL,
                                    timeout=args.timeout)
    print(f"Fetching snapshot for {args.season}...")
    snapshot = source.fetch(args.season)
    owners = pool_owners(snapshot, args.season, pool.snapshot_roots)
    print(f"Found {len(owners)} owners in {source.source_info.get('url', '')}")
    return owners, source.source_info


def _stage_name(args, pool):
    return args.stage or pool.first_stage.name


def _entry(args):
    if args.key:
        return args.key
    if not (args.division and args.league and args.owner):
        raise ValueError('Give --key, or all of --division, --league and --owner')
    return entry_key(args.division, args.league, args.owner)


# --- Commands ---
# Each returns True when the document changed and must be saved.

def cmd_import(args, doc, pool):
    owners, info = _fetch_owners(args, pool)
    state = ops.import_eligibility(doc, pool, owners, cutoff_week=args.cutoff,
                                   source=info)
    print(f"Imported {len(state.roster)} entrants into {state.name} "
          f"(weeks 1-{state.cutoff_week}, {len(state.divisions)} divisions)")
    return True


def cmd_decide(args, doc, pool):
    stage = _stage_name(args, pool)
    key = _entry(args)
    choice = ops.set_decision(doc, pool, stage, key, args.choice)
    print(f"{stage}: {key} -> {choice}")
    return True


def cmd_clear(args, doc, pool):
    stage = _stage_name(args, pool)
    key = _entry(args)
    choice = ops.clear_decision(doc, pool, stage, key)
    print(f"{stage}: {key} cleared (now {choice})")
    return True


def cmd_reopen(args, doc, pool):
    state = ops.reopen_stage(doc, pool, _stage_name(args, pool))
    print(f"Reopened {state.name}")
    return True


def cmd_resolve(args, doc, pool):
    stage = _stage_name(args, pool)
    owners, info = _fetch_owners(args, pool)
    result = ops.resolve_stage(doc, pool, stage, owners, week=args.week, source=info)
    state = doc.stages[stage]
    print(f"Resolved {stage} on week {state.target_week}")
    for tier, groups in result.pots.items():
        for group, pot in groups.items():
            winner = pot.owner_name or ('TIE' if pot.tied_keys else 'unclaimed')
            print(f"  {tier} [{group}]: {pot.entrants} in, total {pot.total:.2f} -> {winner}")
    ties = [p for groups in result.awards.values() for places in groups.values()
            for p in places if p.tie_unresolved]
    ties += [p for groups in result.pots.values() for p in groups.values() if p.tied_keys]
    if ties:
        print(f"  {len(ties)} unresolved tie(s); use settle-tie to order them")
    return True


def cmd_propagate(args, doc, pool):
    stage = _stage_name(args, pool)
    state = ops.propagate_stage(doc, pool, stage)
    print(f"Propagated {len(state.roster)} entrants from {stage} to {state.name}")
    for e in state.roster:
        print(f"  {e.seed}. {e.owner_name} ({e.division} / {e.league_name}) {e.cutoff_total:.2f}")
    return True


def cmd_settle_tie(args, doc, pool):
    stage = _stage_name(args, pool)
    keys = ops.settle_tie(doc, pool, stage, args.keys)
    print(f"{stage}: tie order set for {len(keys)} entrants")
    return True


def cmd_empire(args, doc, pool):
    stage = _stage_name(args, pool)
    on = ops.set_empire(doc, pool, stage, args.division, args.league,
                        triggered=not args.off)
    print(f"{stage}: empire bonus {'on' if on else 'off'} for {args.division} / {args.league}")
    return True


def cmd_rules(args, doc, pool):
    stage = _stage_name(args, pool)
    state = ops.get_stage(doc, pool, stage)
    if not args.set:
        print(json.dumps(state.rules.to_dict(), indent=2, sort_keys=True))
        return False
    with open(args.set, 'r') as f:
        overrides = json.load(f)
    ops.set_rules(doc, pool, stage, merge_rules(state.rules, overrides))
    print(f"Updated rules for {stage}")
    return True


def cmd_status(args, doc, pool):
    print(f"{pool.title} {doc.season} (version {doc.version}, updated {doc.updated_at or 'never'})")
    if doc.source.get('url'):
        print(f"  source: {doc.source['url']} at {doc.source.get('fetched_at', '')}")
    for row in ops.stage_summary(doc, pool):
        counts = ', '.join(f'{c} {n}' for c, n in row['counts'].items())
        print(f"  {row['stage']}: {row['status']}, {row['entrants']} entrants, "
              f"{row['decided']} decided" + (f" ({counts})" if counts else ''))
    return False


def cmd_report(args, doc, pool):
    stage = _stage_name(args, pool)
    os.makedirs(args.output, exist_ok=True)
    base = os.path.join(args.output, f'{pool.name}_{doc.season}_{stage}')

    report_path = base + '_results.txt'
    generate_results_report(doc, pool, stage, report_path)
    print(f"Generated {report_path}")

    csv_path = base + '_payouts.csv'
    generate_payouts_csv(doc, pool, stage, csv_path)
    print(f"Generated {csv_path}")

    pdf_path = base + '_results.pdf'
    generate_results_pdf(doc, pool, stage, pdf_path)
    print(f"Generated {pdf_path}")
    return False


COMMANDS = {
    'import': cmd_import,
    'decide': cmd_decide,
    'clear': cmd_clear,
    'reopen': cmd_reopen,
    'resolve': cmd_resolve,
    'propagate': cmd_propagate,
    'settle-tie': cmd_settle_tie,
    'empire': cmd_empire,
    'rules': cmd_rules,
    'status': cmd_status,
    'report': cmd_report,
}


def build_parser():
    parser = argparse.ArgumentParser(description='Run a wager pool through its stages')
    parser.add_argument('--db', default=DEFAULT_DB,
                        help=f'Path to the SQLite pool database (default: {DEFAULT_DB})')
    parser.add_argument('--season', required=True, help='Season, e.g. 2025')
    parser.add_argument('--pool', required=True, choices=sorted(POOLS), help='Pool type')
    parser.add_argument('--rules', default=None,
                        help='JSON file overriding the preset rules per stage. Applies only '
                             'to stages not yet in the document; use "rules --set" after that')
    parser.add_argument('--verbose', action='store_true', help='Debug logging')

    sub = parser.add_subparsers(dest='command', required=True)

    def snapshot_args(p):
        p.add_argument('--snapshot', default=None, help='Leaderboard JSON file')
        p.add_argument('--url', default=None,
                       help='Leaderboard URL template with {season} (default: published leaderboard)')
        p.add_argument('--timeout', type=float, default=30, help='HTTP timeout in seconds')

    def entry_args(p):
        p.add_argument('--stage', default=None, help='Stage name (default: first stage)')
        p.add_argument('--key', default=None, help='Entry key (division|||league|||owner)')
        p.add_argument('--division', default=None)
        p.add_argument('--league', default=None)
        p.add_argument('--owner', default=None)

    p = sub.add_parser('import', help='Build the first stage roster from a snapshot')
    snapshot_args(p)
    p.add_argument('--cutoff', type=int, default=None,
                   help='Last week counted toward eligibility (default: preset)')

    p = sub.add_parser('decide', help="Record an entrant's choice")
    entry_args(p)
    p.add_argument('--choice', required=True)

    p = sub.add_parser('clear', help="Remove an entrant's choice")
    entry_args(p)

    for name, text in (('reopen', 'Discard a stage result so decisions can change'),
                       ('propagate', 'Seed the next stage from this stage')):
        p = sub.add_parser(name, help=text)
        p.add_argument('--stage', default=None)

    p = sub.add_parser('resolve', help='Score a stage and compute payouts')
    p.add_argument('--stage', default=None)
    p.add_argument('--week', type=int, default=None, help='Scoring week (default: preset)')
    snapshot_args(p)

    p = sub.add_parser('settle-tie', help='Order entrants the ranking rule cannot separate')
    p.add_argument('--stage', default=None)
    p.add_argument('--keys', nargs='+', required=True, help='Entry keys, best first')

    p = sub.add_parser('empire', help='Flag a league whose winner earns the empire bonus')
    p.add_argument('--stage', default=None)
    p.add_argument('--division', required=True)
    p.add_argument('--league', required=True)
    p.add_argument('--off', action='store_true', help='Remove the flag')

    p = sub.add_parser('rules', help="Show or replace a stage's rules")
    p.add_argument('--stage', default=None)
    p.add_argument('--set', default=None, help='JSON file of rule values to apply')

    sub.add_parser('status', help='Summarize every stage')

    p = sub.add_parser('report', help='Write results text, payouts CSV and PDF')
    p.add_argument('--stage', default=None)
    p.add_argument('--output', required=True, help='Output directory')

    p = sub.add_parser('reset', help='Delete the pool document for the season')
    p.add_argument('--yes', action='store_true', help='Confirm deletion')

    return parser


def run(argv=None):
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING,
                        format='%(levelname)s %(name)s: %(message)s')

    pool = load_pool_config(args.pool, args.rules)
    store = PoolStore(args.db)

    if args.command == 'reset':
        if not args.yes:
            print(f"Refusing to delete {pool.name} {args.season} without --yes")
            return 1
        if store.delete(args.season, pool.name):
            print(f"Deleted {pool.name} {args.season}")
        else:
            print(f"No document for {pool.name} {args.season}")
        return 0

    doc = store.load(args.season, pool.name)
    if args.rules:
        stored = list(doc.stages)
        if stored:
            print(f"Note: --rules does not change stored stages ({', '.join(stored)}); "
                  f"use 'rules --set' for those")
    loaded_version = doc.version
    if COMMANDS[args.command](args, doc, pool):
        version = store.save(doc, expected_version=loaded_version)
        print(f"Saved {pool.name} {doc.season} (version {version})")
    return 0


def main(argv=None):
    try:
        code = run(argv)
    except (WagerError, ValueError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        code = 2
    sys.exit(code)


if __name__ == '__main__':
    main()
