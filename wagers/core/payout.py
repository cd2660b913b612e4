"""Payout calculator: placements, wager pots and wager misses for a stage.

Pure and deterministic: the same entrants, decisions, scores and rules
always produce an identical ResolutionResult. Nothing here reads the
clock, the network or the pool document.
"""

import dataclasses

from .identity import POOL_GROUP, group_key
from .models import (
    Placement, PotRecord, ResolutionResult, RuleTable, WagerMiss,
)
from .ranking import rank


def _money(x: float) -> float:
    return round(float(x), 2)


def partition(entrants, dimension: str, divisions=()) -> dict:
    """Group entrants by dimension, keeping known-but-empty groups.

    Returns an insertion-ordered dict sorted by group id.
    """
    groups = {}
    if dimension == 'division':
        for div in divisions:
            groups.setdefault(div, [])
    elif dimension == 'pool':
        groups.setdefault(POOL_GROUP, [])
    for e in entrants:
        groups.setdefault(group_key(e, dimension), []).append(e)
    return {g: groups[g] for g in sorted(groups)}


def _placements(members, scores, bonuses, tie_order) -> list[Placement]:
    ranked = rank(members, scores, tie_order)
    places = []
    for i, bonus in enumerate(bonuses):
        place = i + 1
        if i >= len(ranked):
            places.append(Placement(place, _money(bonus)))
            continue
        r = ranked[i]
        if r.tie_unresolved:
            places.append(Placement(place, _money(bonus), points=r.points,
                                    tied_keys=r.tied_keys))
            continue
        e = r.entrant
        places.append(Placement(place, _money(bonus), e.key, e.owner_name,
                                e.division, e.league_name, r.points))
    return places


def _pot(tier, participants, scores, tie_order) -> PotRecord:
    pool = _money(len(participants) * tier.credit)
    total = _money(pool + tier.bonus)
    if not participants:
        return PotRecord(tier.name, pool, _money(tier.bonus), total, 0,
                         unclaimed=True)
    top = rank(participants, scores, tie_order)[0]
    if top.tie_unresolved:
        return PotRecord(tier.name, pool, _money(tier.bonus), total,
                         len(participants), points=top.points,
                         tied_keys=top.tied_keys)
    e = top.entrant
    return PotRecord(tier.name, pool, _money(tier.bonus), total,
                     len(participants), e.key, e.owner_name, e.division,
                     e.league_name, top.points)


def _misses(tier, members, participants, scores, tie_order) -> list[WagerMiss]:
    """Non-participants who matched or beat the best participant's score."""
    if not participants:
        return []
    best = rank(participants, scores, tie_order)[0].points
    joined = {e.key for e in participants}
    pool = _money(len(participants) * tier.credit)
    hypothetical_pool = _money(pool + tier.credit)

    misses = []
    for r in rank([e for e in members if e.key not in joined], scores, tie_order):
        if r.points < best:
            continue
        e = r.entrant
        misses.append(WagerMiss(
            e.key, e.owner_name, e.division, e.league_name, r.points,
            'would_win' if r.points > best else 'could_tie',
            hypothetical_pool, _money(hypothetical_pool + tier.bonus)))
    return misses


def resolve(entrants, decisions: dict, scores: dict, rules: RuleTable,
            awards=(), pot_group_by: str = 'division', divisions=(),
            tie_order=(), empire_leagues=()) -> ResolutionResult:
    """Compute every award, pot and diagnostic for one stage.

    Args:
        entrants: The stage roster.
        decisions: entry key -> choice; absent keys take the default.
        scores: entry key -> points in the resolution week.
        rules: The stage's RuleTable.
        awards: AwardCategory values, each ranked within its own groups.
        pot_group_by: Grouping dimension for wager pots and misses.
        divisions: Known divisions, so empty ones still get records.
        tie_order: Operator-supplied order for otherwise unbreakable ties.
        empire_leagues: League group ids whose first place also carries
            the rules' empire bonus.
    """
    entrants = list(entrants)
    empire = set(empire_leagues) if rules.empire_bonus else set()

    def stake(e):
        return rules.stake(decisions.get(e.key, rules.default_choice))

    award_out = {}
    for category in awards:
        bonuses = rules.award_bonuses.get(category.name) or (0.0,)
        groups = partition(entrants, category.group_by, divisions)
        award_out[category.name] = {}
        for g, members in groups.items():
            places = _placements(members, scores, bonuses, tie_order)
            if category.group_by == 'league' and g in empire and places:
                places[0] = dataclasses.replace(
                    places[0], empire_bonus=_money(rules.empire_bonus))
            award_out[category.name][g] = places

    tiers = rules.pot_tiers()
    pot_groups = partition(entrants, pot_group_by, divisions)
    pots_out = {}
    misses_out = {}
    for idx, tier in enumerate(tiers):
        pots_out[tier.name] = {}
        for g, members in pot_groups.items():
            participants = [e for e in members
                            if stake(e) > 0 and stake(e) >= tier.min_stake]
            pots_out[tier.name][g] = _pot(tier, participants, scores, tie_order)
            if idx == 0:
                misses_out[g] = _misses(tier, members, participants, scores,
                                        tie_order)

    return ResolutionResult(award_out, pots_out, misses_out)
