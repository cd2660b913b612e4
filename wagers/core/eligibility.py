"""Eligibility importer: builds a stage roster from a scoring snapshot.

For every (division, league) the owners are totalled over weeks 1..cutoff
and the top N are selected. Ties at the selection boundary fall back to
owner name so the roster never depends on snapshot order.
"""

from collections import defaultdict

from .identity import entry_key
from .models import Entrant
from .snapshot import owner_fields, sum_weeks


def import_roster(owners: list[dict], cutoff_week: int,
                  top_n: int = 1) -> tuple[list[Entrant], list[str]]:
    """Select the top ``top_n`` owners per league through ``cutoff_week``.

    Args:
        owners: Owner records from the snapshot.
        cutoff_week: Last week included in the total.
        top_n: Owners selected per (division, league).

    Returns:
        (roster, divisions). The roster is sorted by division, seed and
        league; divisions lists every division seen in the snapshot.
    """
    if top_n < 1:
        raise ValueError('top_n must be at least 1')

    by_league = defaultdict(dict)  # (division, league) -> key -> candidate
    divisions = set()
    for owner in owners:
        division, league_name, owner_name = owner_fields(owner)
        if not (division and league_name and owner_name):
            continue
        key = entry_key(division, league_name, owner_name)
        total = sum_weeks(owner.get('weekly'), cutoff_week)
        divisions.add(division)
        prev = by_league[(division, league_name)].get(key)
        # Duplicate rows for one roster instance: keep the better total
        if prev is None or total > prev['total']:
            by_league[(division, league_name)][key] = {
                'division': division, 'league_name': league_name,
                'owner_name': owner_name, 'total': total,
            }

    selected = defaultdict(list)
    for (division, _league), candidates in by_league.items():
        ranked = sorted(candidates.values(),
                        key=lambda c: (-c['total'], c['owner_name']))
        selected[division].extend(ranked[:top_n])

    roster = []
    for division in sorted(selected):
        ranked = sorted(selected[division],
                        key=lambda c: (-c['total'], c['owner_name'], c['league_name']))
        for seed, c in enumerate(ranked, start=1):
            roster.append(Entrant.create(c['division'], c['league_name'],
                                         c['owner_name'], seed=seed,
                                         cutoff_total=c['total']))

    return roster, sorted(divisions)

