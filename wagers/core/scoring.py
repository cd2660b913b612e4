"""Scoring resolver: target-week points for exactly the roster's keys."""

from .errors import InvalidIdentity
from .identity import entry_key
from .snapshot import owner_fields, week_value


def week_points(owners: list[dict], week: int) -> dict:
    """Map every well-formed snapshot owner to its points for ``week``."""
    points = {}
    for owner in owners:
        division, league_name, owner_name = owner_fields(owner)
        try:
            key = entry_key(division, league_name, owner_name)
        except InvalidIdentity:
            # Such a row can never match a roster key
            continue
        points[key] = week_value(owner.get('weekly'), week)
    return points


def resolve_scores(keys, owners: list[dict], week: int) -> dict:
    """Build the ScoreMap for a roster.

    Entrants with no record in the snapshot score 0; an owner dropped
    from a feed must not fail the whole resolution.
    """
    available = week_points(owners, week)
    return {k: available.get(k, 0.0) for k in keys}
