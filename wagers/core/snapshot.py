"""Reading owner records out of a leaderboard snapshot.

Snapshot shape (one document per season, several pools inside)::

    {"2025": {"big_game": {"owners": [
        {"ownerName": "...", "leagueName": "...", "division": "...",
         "weekly": {"1": 101.2, "2": "98.4", ...}}]}}}
"""

from .errors import MissingExternalData


def pool_owners(snapshot: dict, season, roots) -> list[dict]:
    """Return the owner list for one pool of one season.

    ``roots`` lists the historical names the pool has been published
    under; the first one present wins.

    Raises:
        MissingExternalData: the season or the pool is absent entirely.
    """
    if not isinstance(snapshot, dict):
        raise MissingExternalData('Snapshot is not a JSON object')
    season_obj = snapshot.get(str(season))
    if not isinstance(season_obj, dict):
        raise MissingExternalData(f'Snapshot has no season {season}')

    for root in roots:
        pool = season_obj.get(root)
        if isinstance(pool, dict):
            owners = pool.get('owners')
            return [o for o in owners if isinstance(o, dict)] if isinstance(owners, list) else []

    raise MissingExternalData(
        f'Snapshot season {season} has none of: {", ".join(roots)}')


def parse_points(val) -> float:
    """Parse a weekly value; missing or non-numeric counts as zero."""
    if val is None or isinstance(val, bool):
        return 0.0
    if isinstance(val, (int, float)):
        n = float(val)
    else:
        try:
            n = float(str(val).strip())
        except ValueError:
            return 0.0
    if n != n or n in (float('inf'), float('-inf')):  # NaN / inf
        return 0.0
    return round(n, 2)


def week_value(weekly, week: int) -> float:
    """Points for one week; weekly maps may be keyed by str or int."""
    if not isinstance(weekly, dict):
        return 0.0
    val = weekly.get(str(week))
    if val is None:
        val = weekly.get(week)
    return parse_points(val)


def sum_weeks(weekly, max_week: int) -> float:
    """Total of weeks 1..max_week, rounded to cents."""
    total = 0.0
    for week in range(1, max_week + 1):
        total += week_value(weekly, week)
    return round(total, 2)


def owner_fields(owner: dict) -> tuple[str, str, str]:
    """(division, leagueName, ownerName), trimmed; empty strings when absent."""
    def text(name):
        v = owner.get(name)
        return '' if v is None else str(v).strip()
    return text('division'), text('leagueName'), text('ownerName')
