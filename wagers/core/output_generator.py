"""Output generator for resolved wager pool stages.

Generates two output types from a pool document:
  - Results report (plain text, one section per award, pot and misses)
  - Payouts CSV (one row per placement and per pot)
"""

import csv

from .errors import StageOrderViolation
from .identity import POOL_GROUP, group_label
from .pool import get_stage

PLACE_NAMES = {1: '1st', 2: '2nd', 3: '3rd'}

CSV_FIELDS = ['stage', 'kind', 'category', 'group', 'place', 'owner_name',
              'division', 'league_name', 'points', 'entrants', 'pool',
              'bonus', 'empire_bonus', 'total', 'status']


def _money(x: float) -> str:
    return f'${x:,.2f}'


def _place(n: int) -> str:
    return PLACE_NAMES.get(n, f'{n}th')


def _group_name(group: str) -> str:
    return 'Overall' if group == POOL_GROUP else group_label(group)


def _who(record) -> str:
    return f'{record.owner_name} ({record.division} / {record.league_name})'


def _status(record) -> str:
    if record.winner_key:
        return 'paid'
    if record.tied_keys:
        return 'tie'
    if getattr(record, 'unclaimed', False):
        return 'unclaimed'
    return 'empty'


def _resolved(doc, pool, stage):
    state = get_stage(doc, pool, stage)
    if state.result is None:
        raise StageOrderViolation(f'Stage {stage!r} is not resolved yet')
    return state


def report_sections(doc, pool, stage: str) -> list[tuple[str, list[str]]]:
    """(heading, lines) for every section of a stage's results.

    Shared by the text report and the PDF.
    """
    state = _resolved(doc, pool, stage)
    cfg = pool.stage(stage)
    result = state.result
    sections = []

    for category in cfg.awards:
        lines = []
        for group, places in result.awards.get(category.name, {}).items():
            label = _group_name(group)
            for p in places:
                if p.winner_key:
                    text = f'{_who(p)}  {p.points:.2f} pts'
                elif p.tied_keys:
                    text = f'TIE at {p.points:.2f} pts: ' + ', '.join(
                        group_label(k) for k in p.tied_keys)
                else:
                    text = '(no entrant)'
                bonus = f'  +{_money(p.bonus)}' if p.bonus else ''
                if p.empire_bonus:
                    bonus += f'  +{_money(p.empire_bonus)} empire'
                lines.append(f'{label}: {_place(p.place)} {text}{bonus}')
        sections.append((category.name.replace('_', ' ').title(), lines))

    for tier, groups in result.pots.items():
        lines = []
        for group, pot in groups.items():
            label = _group_name(group)
            amounts = (f'{pot.entrants} in, pot {_money(pot.pool)} + bonus '
                       f'{_money(pot.bonus)} = {_money(pot.total)}')
            if pot.winner_key:
                outcome = f'{_who(pot)}  {pot.points:.2f} pts'
            elif pot.tied_keys:
                outcome = 'TIE: ' + ', '.join(group_label(k) for k in pot.tied_keys)
            else:
                outcome = 'unclaimed'
            lines.append(f'{label}: {amounts} -> {outcome}')
        sections.append((f'Pot: {tier}', lines))

    misses = []
    for group, group_misses in result.wager_misses.items():
        for m in group_misses:
            verb = 'would have won' if m.reason == 'would_win' else 'could have tied'
            misses.append(
                f'{m.owner_name} ({m.division} / {m.league_name})  {m.points:.2f} pts '
                f'{verb}: pot {_money(m.hypothetical_pool)}, '
                f'total {_money(m.hypothetical_total)}')
    if result.pots:
        sections.append(('Wager Misses', misses or ['(none)']))

    return sections


def generate_results_report(doc, pool, stage: str, output_path: str):
    """Write a stage's results as plain text."""
    state = _resolved(doc, pool, stage)
    cfg = pool.stage(stage)

    lines = []
    lines.append('=' * 60)
    lines.append(f'  {pool.title} {doc.season}: {cfg.title or cfg.name}')
    lines.append('=' * 60)
    lines.append(f'Week {state.target_week} scores, {len(state.roster)} entrants')
    if state.resolved_at:
        lines.append(f'Resolved {state.resolved_at}')
    if doc.source.get('url'):
        lines.append(f'Source: {doc.source["url"]}')

    for heading, body in report_sections(doc, pool, stage):
        lines.append('')
        lines.append(heading)
        lines.append('-' * len(heading))
        lines.extend(f'  {line}' for line in body)

    with open(output_path, 'w') as f:
        f.write('\n'.join(lines) + '\n')


def payout_rows(doc, pool, stage: str) -> list[dict]:
    state = _resolved(doc, pool, stage)
    result = state.result
    rows = []

    for category, groups in result.awards.items():
        for group, places in groups.items():
            for p in places:
                rows.append({
                    'stage': stage, 'kind': 'award', 'category': category,
                    'group': group_label(group), 'place': p.place,
                    'owner_name': p.owner_name, 'division': p.division,
                    'league_name': p.league_name, 'points': f'{p.points:.2f}',
                    'entrants': '', 'pool': '', 'bonus': f'{p.bonus:.2f}',
                    'empire_bonus': f'{p.empire_bonus:.2f}',
                    'total': f'{p.bonus + p.empire_bonus:.2f}', 'status': _status(p),
                })

    for tier, groups in result.pots.items():
        for group, pot in groups.items():
            rows.append({
                'stage': stage, 'kind': 'pot', 'category': tier,
                'group': group_label(group), 'place': 1 if pot.winner_key else '',
                'owner_name': pot.owner_name, 'division': pot.division,
                'league_name': pot.league_name, 'points': f'{pot.points:.2f}',
                'entrants': pot.entrants, 'pool': f'{pot.pool:.2f}',
                'bonus': f'{pot.bonus:.2f}', 'empire_bonus': '',
                'total': f'{pot.total:.2f}',
                'status': _status(pot),
            })

    return rows


def generate_payouts_csv(doc, pool, stage: str, output_path: str):
    """Write one CSV row per placement and per pot."""
    rows = payout_rows(doc, pool, stage)
    with open(output_path, 'w', newline='') as f:
        writer = csv.DictWriter(f, fieldnames=CSV_FIELDS)
        writer.writeheader()
        for row in rows:
            writer.writerow(row)
