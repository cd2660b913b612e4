"""Data models for the wager pool engine.

Configuration (PoolConfig -> StageConfig -> RuleTable) describes a pool's
stage graph; the PoolDocument holds the per-season state for one pool and
is the only thing persisted.
"""

from dataclasses import dataclass, field

from .errors import StageOrderViolation
from .identity import entry_key, split_key


@dataclass(frozen=True)
class WagerTier:
    """A pot that admits every entrant staking at least ``min_stake``."""
    name: str
    min_stake: float
    credit: float
    bonus: float = 0.0

    def to_dict(self) -> dict:
        return {'name': self.name, 'min_stake': self.min_stake,
                'credit': self.credit, 'bonus': self.bonus}

    @classmethod
    def from_dict(cls, d: dict) -> 'WagerTier':
        return cls(name=str(d['name']), min_stake=float(d['min_stake']),
                   credit=float(d['credit']), bonus=float(d.get('bonus', 0)))


@dataclass(frozen=True)
class RuleTable:
    """Numeric constants for one stage, carried inside the pool document."""
    credit: float                    # credit per wager in the implicit tier
    wager_bonus: float               # bonus on top of the implicit tier's pot
    stakes: dict                     # choice -> stake; keys are the closed choice set
    default_choice: str
    tiers: tuple = ()                # explicit minimum-wager tiers
    award_bonuses: dict = field(default_factory=dict)  # category -> (1st, 2nd, ...)
    require_complete: bool = False   # refuse to resolve with defaulted decisions
    empire_bonus: float = 0.0        # extra on a flagged league's winner record

    @property
    def choices(self) -> tuple:
        return tuple(self.stakes)

    def stake(self, choice: str) -> float:
        return float(self.stakes.get(choice, 0) or 0)

    def pot_tiers(self) -> tuple:
        """Explicit tiers, or one implicit 'wager' tier admitting any positive stake."""
        if self.tiers:
            return tuple(self.tiers)
        positive = [float(v) for v in self.stakes.values() if float(v) > 0]
        if not positive:
            return ()
        return (WagerTier('wager', min(positive), self.credit, self.wager_bonus),)

    def to_dict(self) -> dict:
        return {
            'credit': self.credit,
            'wager_bonus': self.wager_bonus,
            'stakes': dict(self.stakes),
            'default_choice': self.default_choice,
            'tiers': [t.to_dict() for t in self.tiers],
            'award_bonuses': {k: list(v) for k, v in self.award_bonuses.items()},
            'require_complete': self.require_complete,
            'empire_bonus': self.empire_bonus,
        }

    @classmethod
    def from_dict(cls, d: dict) -> 'RuleTable':
        return cls(
            credit=float(d.get('credit', 0)),
            wager_bonus=float(d.get('wager_bonus', 0)),
            stakes={str(k): float(v) for k, v in (d.get('stakes') or {}).items()},
            default_choice=str(d.get('default_choice', '')),
            tiers=tuple(WagerTier.from_dict(t) for t in d.get('tiers') or ()),
            award_bonuses={str(k): tuple(float(b) for b in v)
                           for k, v in (d.get('award_bonuses') or {}).items()},
            require_complete=bool(d.get('require_complete', False)),
            empire_bonus=float(d.get('empire_bonus', 0)),
        )


@dataclass(frozen=True)
class AwardCategory:
    """A placement award ranked within groups of one dimension."""
    name: str
    group_by: str  # 'division', 'league' or 'pool'


@dataclass(frozen=True)
class StageConfig:
    """One resolution cycle in a pool's stage graph."""
    name: str
    target_week: int
    rules: RuleTable
    pot_group_by: str = 'division'
    awards: tuple = ()
    cutoff_week: int | None = None  # only the first stage imports
    top_n: int = 1
    advance: str = ''               # 'award:<category>' or 'pot:<tier>'
    title: str = ''


@dataclass(frozen=True)
class PoolConfig:
    """A concrete pool variant: its snapshot location and its stages."""
    name: str
    title: str
    snapshot_roots: tuple
    stages: tuple

    def stage(self, name: str) -> StageConfig:
        for s in self.stages:
            if s.name == name:
                return s
        raise StageOrderViolation(f'Pool {self.name} has no stage named {name!r}')

    @property
    def first_stage(self) -> StageConfig:
        return self.stages[0]

    def next_stage(self, name: str) -> StageConfig | None:
        names = [s.name for s in self.stages]
        idx = names.index(self.stage(name).name)
        return self.stages[idx + 1] if idx + 1 < len(self.stages) else None

    def previous_stage(self, name: str) -> StageConfig | None:
        names = [s.name for s in self.stages]
        idx = names.index(self.stage(name).name)
        return self.stages[idx - 1] if idx > 0 else None


@dataclass(frozen=True)
class Entrant:
    """A roster member of a stage."""
    key: str
    division: str
    league_name: str
    owner_name: str
    seed: int | None = None
    cutoff_total: float | None = None

    @classmethod
    def create(cls, division, league_name, owner_name, seed=None,
               cutoff_total=None) -> 'Entrant':
        key = entry_key(division, league_name, owner_name)
        division, league_name, owner_name = split_key(key)
        return cls(key, division, league_name, owner_name, seed, cutoff_total)

    def to_dict(self) -> dict:
        return {'key': self.key, 'division': self.division,
                'league_name': self.league_name, 'owner_name': self.owner_name,
                'seed': self.seed, 'cutoff_total': self.cutoff_total}

    @classmethod
    def from_dict(cls, d: dict) -> 'Entrant':
        return cls.create(d['division'], d['league_name'], d['owner_name'],
                          seed=d.get('seed'), cutoff_total=d.get('cutoff_total'))


@dataclass(frozen=True)
class Placement:
    place: int
    bonus: float
    winner_key: str = ''
    owner_name: str = ''
    division: str = ''
    league_name: str = ''
    points: float = 0.0
    tied_keys: tuple = ()  # non-empty when the tie could not be broken
    empire_bonus: float = 0.0

    @property
    def tie_unresolved(self) -> bool:
        return bool(self.tied_keys)

    def to_dict(self) -> dict:
        return {'place': self.place, 'bonus': self.bonus,
                'winner_key': self.winner_key, 'owner_name': self.owner_name,
                'division': self.division, 'league_name': self.league_name,
                'points': self.points, 'tied_keys': list(self.tied_keys),
                'empire_bonus': self.empire_bonus}

    @classmethod
    def from_dict(cls, d: dict) -> 'Placement':
        return cls(int(d['place']), float(d['bonus']), d.get('winner_key', ''),
                   d.get('owner_name', ''), d.get('division', ''),
                   d.get('league_name', ''), float(d.get('points', 0)),
                   tuple(d.get('tied_keys') or ()),
                   float(d.get('empire_bonus', 0)))


@dataclass(frozen=True)
class PotRecord:
    tier: str
    pool: float
    bonus: float
    total: float
    entrants: int
    winner_key: str = ''
    owner_name: str = ''
    division: str = ''
    league_name: str = ''
    points: float = 0.0
    tied_keys: tuple = ()
    unclaimed: bool = False

    def to_dict(self) -> dict:
        return {'tier': self.tier, 'pool': self.pool, 'bonus': self.bonus,
                'total': self.total, 'entrants': self.entrants,
                'winner_key': self.winner_key, 'owner_name': self.owner_name,
                'division': self.division, 'league_name': self.league_name,
                'points': self.points, 'tied_keys': list(self.tied_keys),
                'unclaimed': self.unclaimed}

    @classmethod
    def from_dict(cls, d: dict) -> 'PotRecord':
        return cls(d['tier'], float(d['pool']), float(d['bonus']),
                   float(d['total']), int(d['entrants']),
                   d.get('winner_key', ''), d.get('owner_name', ''),
                   d.get('division', ''), d.get('league_name', ''),
                   float(d.get('points', 0)), tuple(d.get('tied_keys') or ()),
                   bool(d.get('unclaimed', False)))


@dataclass(frozen=True)
class WagerMiss:
    """A non-wagering entrant who matched or beat the pot winner's score."""
    key: str
    owner_name: str
    division: str
    league_name: str
    points: float
    reason: str  # 'would_win' or 'could_tie'
    hypothetical_pool: float
    hypothetical_total: float

    def to_dict(self) -> dict:
        return {'key': self.key, 'owner_name': self.owner_name,
                'division': self.division, 'league_name': self.league_name,
                'points': self.points, 'reason': self.reason,
                'hypothetical_pool': self.hypothetical_pool,
                'hypothetical_total': self.hypothetical_total}

    @classmethod
    def from_dict(cls, d: dict) -> 'WagerMiss':
        return cls(d['key'], d['owner_name'], d['division'], d['league_name'],
                   float(d['points']), d['reason'],
                   float(d['hypothetical_pool']), float(d['hypothetical_total']))


@dataclass(frozen=True)
class ResolutionResult:
    """Winners, pots and diagnostics for one resolved stage.

    awards:       category -> group -> [Placement]
    pots:         tier -> group -> PotRecord
    wager_misses: group -> [WagerMiss]
    """
    awards: dict
    pots: dict
    wager_misses: dict

    def to_dict(self) -> dict:
        return {
            'awards': {cat: {g: [p.to_dict() for p in places]
                             for g, places in groups.items()}
                       for cat, groups in self.awards.items()},
            'pots': {tier: {g: pot.to_dict() for g, pot in groups.items()}
                     for tier, groups in self.pots.items()},
            'wager_misses': {g: [m.to_dict() for m in misses]
                             for g, misses in self.wager_misses.items()},
        }

    @classmethod
    def from_dict(cls, d: dict) -> 'ResolutionResult':
        return cls(
            awards={cat: {g: [Placement.from_dict(p) for p in places]
                          for g, places in groups.items()}
                    for cat, groups in (d.get('awards') or {}).items()},
            pots={tier: {g: PotRecord.from_dict(p) for g, p in groups.items()}
                  for tier, groups in (d.get('pots') or {}).items()},
            wager_misses={g: [WagerMiss.from_dict(m) for m in misses]
                          for g, misses in (d.get('wager_misses') or {}).items()},
        )


@dataclass
class StageState:
    """Mutable per-stage state inside a pool document."""
    name: str
    rules: RuleTable
    roster: list = field(default_factory=list)      # [Entrant]
    divisions: list = field(default_factory=list)   # known divisions, even if empty
    decisions: dict = field(default_factory=dict)   # entry key -> choice
    scores: dict = field(default_factory=dict)      # entry key -> points
    result: ResolutionResult | None = None
    tie_order: list = field(default_factory=list)   # operator tie-break, best first
    empire_leagues: list = field(default_factory=list)  # league ids paying the empire bonus
    cutoff_week: int | None = None
    target_week: int | None = None
    origin: str = 'import'
    imported_at: str = ''
    resolved_at: str = ''

    def keys(self) -> list[str]:
        return [e.key for e in self.roster]

    def to_dict(self) -> dict:
        return {
            'name': self.name,
            'rules': self.rules.to_dict(),
            'roster': [e.to_dict() for e in self.roster],
            'divisions': list(self.divisions),
            'decisions': dict(self.decisions),
            'scores': dict(self.scores),
            'result': self.result.to_dict() if self.result else None,
            'tie_order': list(self.tie_order),
            'empire_leagues': list(self.empire_leagues),
            'cutoff_week': self.cutoff_week,
            'target_week': self.target_week,
            'origin': self.origin,
            'imported_at': self.imported_at,
            'resolved_at': self.resolved_at,
        }

    @classmethod
    def from_dict(cls, d: dict) -> 'StageState':
        result = d.get('result')
        return cls(
            name=d['name'],
            rules=RuleTable.from_dict(d.get('rules') or {}),
            roster=[Entrant.from_dict(e) for e in d.get('roster') or []],
            divisions=list(d.get('divisions') or []),
            decisions=dict(d.get('decisions') or {}),
            scores={k: float(v) for k, v in (d.get('scores') or {}).items()},
            result=ResolutionResult.from_dict(result) if result else None,
            tie_order=list(d.get('tie_order') or []),
            empire_leagues=list(d.get('empire_leagues') or []),
            cutoff_week=d.get('cutoff_week'),
            target_week=d.get('target_week'),
            origin=d.get('origin', 'import'),
            imported_at=d.get('imported_at', ''),
            resolved_at=d.get('resolved_at', ''),
        )


@dataclass
class PoolDocument:
    """Everything the engine knows about one pool for one season."""
    season: str
    pool: str
    version: int = 0
    updated_at: str = ''
    source: dict = field(default_factory=dict)  # url, fetched_at, etag
    stages: dict = field(default_factory=dict)  # stage name -> StageState

    def to_dict(self) -> dict:
        return {
            'season': self.season,
            'pool': self.pool,
            'version': self.version,
            'updated_at': self.updated_at,
            'source': dict(self.source),
            'stages': {name: s.to_dict() for name, s in self.stages.items()},
        }

    @classmethod
    def from_dict(cls, d: dict) -> 'PoolDocument':
        return cls(
            season=str(d['season']),
            pool=str(d['pool']),
            version=int(d.get('version', 0)),
            updated_at=d.get('updated_at', ''),
            source=dict(d.get('source') or {}),
            stages={name: StageState.from_dict(s)
                    for name, s in (d.get('stages') or {}).items()},
        )
