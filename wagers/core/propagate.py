"""Stage propagator: seeds the next stage from a resolved stage's winners."""

from .models import Entrant, ResolutionResult


def advancing_records(result: ResolutionResult, advance: str) -> list:
    """Winning records named by an advance rule, one per group at most.

    ``award:<category>`` takes first place of each group; ``pot:<tier>``
    takes each group's pot winner. Groups without a winner (empty, no
    participants, or an unresolved tie) are skipped.
    """
    kind, _, name = advance.partition(':')
    if kind == 'award':
        if name not in result.awards:
            raise ValueError(f'Result has no award category {name!r}')
        records = [places[0] for _, places in sorted(result.awards[name].items())
                   if places]
    elif kind == 'pot':
        if name not in result.pots:
            raise ValueError(f'Result has no pot tier {name!r}')
        records = [pot for _, pot in sorted(result.pots[name].items())]
    else:
        raise ValueError(f'Unknown advance rule: {advance!r}')
    return [r for r in records if r.winner_key]


def propagate(result: ResolutionResult, roster: list[Entrant],
              advance: str) -> list[Entrant]:
    """Build the next stage's roster.

    Identity carries forward unchanged; seeds are reassigned from the
    points that won the previous stage. Decisions and scores are not
    carried; the next stage starts from its own defaults.
    """
    by_key = {e.key: e for e in roster}
    seen = set()
    advancing = []
    for record in advancing_records(result, advance):
        entrant = by_key.get(record.winner_key)
        if entrant is None or entrant.key in seen:
            continue
        seen.add(entrant.key)
        advancing.append((record.points, entrant))

    advancing.sort(key=lambda pe: (-pe[0], pe[1].owner_name, pe[1].key))
    return [
        Entrant.create(e.division, e.league_name, e.owner_name,
                       seed=seed, cutoff_total=points)
        for seed, (points, e) in enumerate(advancing, start=1)
    ]
