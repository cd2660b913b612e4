"""Staged operations on a pool document.

Import -> Decide -> Resolve -> Propagate, repeated per stage. Every
operation validates before it writes, so a failed call leaves the
document exactly as it was. Season and pool always come from the
document and the PoolConfig passed in; there is no ambient state.

A stage's result is the only input to the stage after it. Whenever a
result is discarded or changes, later stages lose their results and
must be propagated again before they can resolve.
"""

import datetime

from .eligibility import import_roster
from .errors import InvalidChoice, StageOrderViolation, UnknownEntrant
from .identity import league_key
from .ledger import DecisionLedger
from .models import PoolConfig, PoolDocument, RuleTable, StageState
from .payout import resolve
from .propagate import propagate
from .scoring import resolve_scores


def now_iso() -> str:
    return datetime.datetime.now(datetime.timezone.utc).isoformat(timespec='seconds')


def new_document(season, pool: PoolConfig) -> PoolDocument:
    return PoolDocument(season=str(season), pool=pool.name)


def _check_pool(doc: PoolDocument, pool: PoolConfig):
    if doc.pool != pool.name:
        raise ValueError(f'Document is for pool {doc.pool!r}, not {pool.name!r}')


def get_stage(doc: PoolDocument, pool: PoolConfig, stage: str) -> StageState:
    """Return a stage's state, or raise if it has not been created yet."""
    _check_pool(doc, pool)
    pool.stage(stage)
    state = doc.stages.get(stage)
    if state is None:
        raise StageOrderViolation(
            f'Stage {stage!r} has no roster yet (import or propagate first)')
    return state


def ledger_for(state: StageState) -> DecisionLedger:
    return DecisionLedger(state.decisions, state.keys(), state.rules)


def _carried(prev: StageState | None, roster) -> dict:
    """Decisions from a previous build of the stage, for keys still on the roster."""
    if prev is None:
        return {}
    decisions = dict(prev.decisions)
    DecisionLedger(decisions, [], prev.rules).reconcile(e.key for e in roster)
    return decisions


def _leagues(roster) -> set:
    return {league_key(e.division, e.league_name) for e in roster}


def _touch_source(doc: PoolDocument, source: dict | None):
    if source:
        doc.source = {
            'url': source.get('url', ''),
            'fetched_at': source.get('fetched_at') or now_iso(),
            'etag': source.get('etag', ''),
        }


def _invalidate_downstream(doc: PoolDocument, pool: PoolConfig, stage: str):
    """Drop the results of every stage after ``stage``."""
    nxt = pool.next_stage(stage)
    while nxt is not None:
        state = doc.stages.get(nxt.name)
        if state is not None:
            state.scores = {}
            state.result = None
            state.resolved_at = ''
        nxt = pool.next_stage(nxt.name)


def _set_result(doc: PoolDocument, pool: PoolConfig, state: StageState, result):
    if result != state.result:
        _invalidate_downstream(doc, pool, state.name)
    state.result = result


def _compute(state: StageState, pool: PoolConfig, scores: dict):
    cfg = pool.stage(state.name)
    return resolve(
        state.roster, ledger_for(state).effective(), scores, state.rules,
        awards=cfg.awards, pot_group_by=cfg.pot_group_by,
        divisions=state.divisions, tie_order=state.tie_order,
        empire_leagues=state.empire_leagues)


def _recompute(doc: PoolDocument, pool: PoolConfig, state: StageState):
    """Re-run the payout calculator over the stage's stored scores."""
    _set_result(doc, pool, state, _compute(state, pool, state.scores))


def _check_upstream(doc: PoolDocument, pool: PoolConfig, state: StageState):
    """A propagated roster must still match the previous stage's winners."""
    prev_cfg = pool.previous_stage(state.name)
    if prev_cfg is None or state.origin != 'propagated':
        return
    prev = doc.stages.get(prev_cfg.name)
    if prev is None or prev.result is None:
        raise StageOrderViolation(
            f'Stage {prev_cfg.name!r} is not resolved; resolve and propagate it again')
    if propagate(prev.result, prev.roster, prev_cfg.advance) != state.roster:
        raise StageOrderViolation(
            f'Stage {state.name!r} is out of date with {prev_cfg.name!r}; propagate again')


# --- Import ---

def import_eligibility(doc: PoolDocument, pool: PoolConfig, owners: list[dict],
                       cutoff_week: int | None = None,
                       source: dict | None = None) -> StageState:
    """Build (or rebuild) the first stage's roster from a snapshot.

    Decisions survive for entrants whose key is unchanged; any previous
    scores and result for the stage, and for later stages, are discarded.
    """
    _check_pool(doc, pool)
    cfg = pool.first_stage
    cutoff = cutoff_week if cutoff_week is not None else cfg.cutoff_week
    if cutoff is None or int(cutoff) < 1:
        raise ValueError(f'Stage {cfg.name!r} needs a cutoff week')
    roster, divisions = import_roster(owners, int(cutoff), cfg.top_n)

    keys = {e.key for e in roster}
    leagues = _leagues(roster)
    prev = doc.stages.get(cfg.name)
    state = StageState(
        name=cfg.name,
        rules=prev.rules if prev else cfg.rules,
        roster=roster,
        divisions=divisions,
        decisions=_carried(prev, roster),
        tie_order=[k for k in (prev.tie_order if prev else []) if k in keys],
        empire_leagues=[lk for lk in (prev.empire_leagues if prev else [])
                        if lk in leagues],
        cutoff_week=int(cutoff),
        target_week=prev.target_week if prev and prev.target_week else cfg.target_week,
        origin='import',
        imported_at=now_iso(),
    )
    doc.stages[cfg.name] = state
    _invalidate_downstream(doc, pool, cfg.name)
    _touch_source(doc, source)
    return state


# --- Decide ---

def _require_open(state: StageState):
    if state.result is not None:
        raise StageOrderViolation(
            f'Stage {state.name!r} is resolved; reopen it to change decisions')


def set_decision(doc: PoolDocument, pool: PoolConfig, stage: str, key: str,
                 choice: str) -> str:
    state = get_stage(doc, pool, stage)
    ledger = ledger_for(state)
    ledger.check_key(key)
    if state.result is not None:
        # Re-applying the same choice to a resolved stage is a no-op
        if ledger.is_explicit(key) and ledger.get(key) == str(choice).strip():
            return ledger.get(key)
        _require_open(state)
    ledger.set(key, choice)
    return ledger.get(key)


def clear_decision(doc: PoolDocument, pool: PoolConfig, stage: str, key: str) -> str:
    state = get_stage(doc, pool, stage)
    ledger = ledger_for(state)
    ledger.check_key(key)
    if state.result is not None and not ledger.is_explicit(key):
        return ledger.get(key)
    _require_open(state)
    ledger.clear(key)
    return ledger.get(key)


def reopen_stage(doc: PoolDocument, pool: PoolConfig, stage: str) -> StageState:
    """Discard a stage's scores and result so decisions can change again.

    Later stages were seeded from that result, so theirs go too.
    """
    state = get_stage(doc, pool, stage)
    state.scores = {}
    state.result = None
    state.resolved_at = ''
    _invalidate_downstream(doc, pool, stage)
    return state


# --- Resolve ---

def resolve_stage(doc: PoolDocument, pool: PoolConfig, stage: str,
                  owners: list[dict], week: int | None = None,
                  source: dict | None = None):
    """Pull the target week's scores and compute the stage's result.

    Safe to repeat: scores and result are replaced wholesale each time.
    """
    state = get_stage(doc, pool, stage)
    if not state.roster:
        raise StageOrderViolation(f'Stage {stage!r} has an empty roster')
    _check_upstream(doc, pool, state)
    ledger = ledger_for(state)
    if state.rules.require_complete and not ledger.is_complete():
        missing = ledger.missing()
        raise StageOrderViolation(
            f'Stage {stage!r} has {len(missing)} entrant(s) without a decision')

    target = week if week is not None else (state.target_week
                                            or pool.stage(stage).target_week)
    scores = resolve_scores(state.keys(), owners, int(target))
    result = _compute(state, pool, scores)

    state.scores = scores
    _set_result(doc, pool, state, result)
    state.target_week = int(target)
    state.resolved_at = now_iso()
    _touch_source(doc, source)
    return result


def settle_tie(doc: PoolDocument, pool: PoolConfig, stage: str, keys) -> list[str]:
    """Record the operator's order for ties the ranking rule cannot break.

    The order only settles a tie when it lists every entrant in it. A
    resolved stage is recomputed from its stored scores.
    """
    state = get_stage(doc, pool, stage)
    keys = [str(k) for k in keys]
    roster = set(state.keys())
    for k in keys:
        if k not in roster:
            raise UnknownEntrant(f'Not on the current roster: {k!r}')
    if len(set(keys)) != len(keys):
        raise ValueError('Tie order lists an entrant more than once')
    state.tie_order = keys
    if state.result is not None:
        _recompute(doc, pool, state)
    return keys


def set_empire(doc: PoolDocument, pool: PoolConfig, stage: str, division: str,
               league_name: str, triggered: bool = True) -> bool:
    """Flag (or unflag) a league whose winner also earns the empire bonus."""
    state = get_stage(doc, pool, stage)
    if not any(c.group_by == 'league' for c in pool.stage(stage).awards):
        raise ValueError(f'Stage {stage!r} has no league award')
    lk = league_key(division, league_name)
    if lk not in _leagues(state.roster):
        raise UnknownEntrant(f'No league {division} / {league_name} on the roster')
    flagged = set(state.empire_leagues)
    if triggered:
        flagged.add(lk)
    else:
        flagged.discard(lk)
    state.empire_leagues = sorted(flagged)
    if state.result is not None:
        _recompute(doc, pool, state)
    return triggered


def set_rules(doc: PoolDocument, pool: PoolConfig, stage: str,
              rules: RuleTable) -> RuleTable:
    """Replace a stage's rule table; a resolved stage is recomputed."""
    state = get_stage(doc, pool, stage)
    if rules.default_choice not in rules.stakes:
        raise InvalidChoice(
            f'Default choice {rules.default_choice!r} is not one of: '
            f'{", ".join(rules.choices)}')
    state.rules = rules
    if state.result is not None:
        _recompute(doc, pool, state)
    return rules


# --- Propagate ---

def propagate_stage(doc: PoolDocument, pool: PoolConfig, stage: str) -> StageState:
    """Seed the next stage from this stage's winners."""
    state = get_stage(doc, pool, stage)
    if state.result is None:
        raise StageOrderViolation(f'Stage {stage!r} is not resolved yet')
    cfg = pool.stage(stage)
    nxt = pool.next_stage(stage)
    if nxt is None or not cfg.advance:
        raise StageOrderViolation(f'Stage {stage!r} does not advance to another stage')

    roster = propagate(state.result, state.roster, cfg.advance)
    keys = {e.key for e in roster}
    leagues = _leagues(roster)
    prev = doc.stages.get(nxt.name)
    next_state = StageState(
        name=nxt.name,
        rules=prev.rules if prev else nxt.rules,
        roster=roster,
        divisions=sorted({e.division for e in roster}),
        decisions=_carried(prev, roster),
        tie_order=[k for k in (prev.tie_order if prev else []) if k in keys],
        empire_leagues=[lk for lk in (prev.empire_leagues if prev else [])
                        if lk in leagues],
        cutoff_week=state.target_week,
        target_week=prev.target_week if prev and prev.target_week else nxt.target_week,
        origin='propagated',
        imported_at=now_iso(),
    )
    doc.stages[nxt.name] = next_state
    _invalidate_downstream(doc, pool, nxt.name)
    return next_state


# --- Status ---

def stage_summary(doc: PoolDocument, pool: PoolConfig) -> list[dict]:
    """One summary row per configured stage, in stage order."""
    _check_pool(doc, pool)
    rows = []
    for cfg in pool.stages:
        state = doc.stages.get(cfg.name)
        if state is None:
            rows.append({'stage': cfg.name, 'status': 'pending', 'entrants': 0,
                         'decided': 0, 'counts': {}})
            continue
        ledger = ledger_for(state)
        status = 'resolved' if state.result is not None else 'open'
        rows.append({
            'stage': cfg.name,
            'status': status,
            'entrants': len(state.roster),
            'decided': len(state.roster) - len(ledger.missing()),
            'counts': ledger.counts(),
        })
    return rows
