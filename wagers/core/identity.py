"""Entry keys for wager pool entrants.

Owner names repeat across leagues, so every decision, score and payout is
keyed by the roster instance (division + league + owner), never by the
owner name alone.
"""

from .errors import InvalidIdentity

SEPARATOR = '|||'
RESERVED = '|'

POOL_GROUP = 'all'
GROUP_DIMENSIONS = ('division', 'league', 'pool')


def _clean(value, field: str) -> str:
    text = '' if value is None else str(value).strip()
    if not text:
        raise InvalidIdentity(f'{field} must not be empty')
    if RESERVED in text:
        raise InvalidIdentity(f'{field} must not contain "{RESERVED}": {text!r}')
    return text


def entry_key(division, league_name, owner_name) -> str:
    """Build the key for one roster instance.

    Fields are trimmed. Because no field may contain ``|``, splitting the
    key on the separator always recovers the input triple, so distinct
    triples can never collide.
    """
    return SEPARATOR.join((
        _clean(division, 'division'),
        _clean(league_name, 'league name'),
        _clean(owner_name, 'owner name'),
    ))


def split_key(key: str) -> tuple[str, str, str]:
    """Inverse of entry_key: 'A|||L1|||Alice' -> ('A', 'L1', 'Alice')."""
    parts = str(key).split(SEPARATOR)
    if len(parts) != 3 or not all(parts):
        raise InvalidIdentity(f'Malformed entry key: {key!r}')
    return parts[0], parts[1], parts[2]


def league_key(division, league_name) -> str:
    return SEPARATOR.join((_clean(division, 'division'),
                           _clean(league_name, 'league name')))


def group_key(entrant, dimension: str) -> str:
    """Return the group an entrant belongs to for a grouping dimension."""
    if dimension == 'division':
        return entrant.division
    if dimension == 'league':
        return league_key(entrant.division, entrant.league_name)
    if dimension == 'pool':
        return POOL_GROUP
    raise ValueError(f'Unknown grouping dimension: {dimension}')


def group_label(group: str) -> str:
    """Human label for a group id ('A|||L1' -> 'A / L1')."""
    return ' / '.join(group.split(SEPARATOR))
