"""Pool configuration loading.

Presets live in presets.py. A JSON rules file may override any stage's
rule table for a season::

    {"week15": {"credit": 25, "wager_bonus": 60,
                "award_bonuses": {"division": [30]}}}

Keys that are not given keep the preset's value.
"""

import dataclasses
import json
import os

from .models import PoolConfig, RuleTable
from .presets import POOLS

LEADERBOARD_URL = 'https://ballsville-leaderboard.pages.dev/data/leaderboards_{season}.json'


def merge_rules(base: RuleTable, overrides: dict) -> RuleTable:
    """Overlay a partial rules dict on a RuleTable."""
    merged = base.to_dict()
    for k, v in overrides.items():
        if k not in merged:
            raise ValueError(f'Unknown rule: {k}')
        if k == 'award_bonuses':
            merged[k] = {**merged[k], **v}
        else:
            merged[k] = v
    return RuleTable.from_dict(merged)


def load_pool_config(name: str, rules_path: str | None = None) -> PoolConfig:
    """Return the named preset, with rule overrides applied if given."""
    if name not in POOLS:
        raise ValueError(f'Unknown pool {name!r}; expected one of: {", ".join(POOLS)}')
    pool = POOLS[name]
    if not rules_path:
        return pool

    if not os.path.exists(rules_path):
        raise FileNotFoundError(f'Rules file not found: {rules_path}')
    with open(rules_path, 'r') as f:
        overrides = json.load(f)

    stages = []
    for stage in pool.stages:
        if stage.name in overrides:
            stage = dataclasses.replace(
                stage, rules=merge_rules(stage.rules, overrides[stage.name]))
        stages.append(stage)
    unknown = set(overrides) - {s.name for s in pool.stages}
    if unknown:
        raise ValueError(f'Rules file names unknown stage(s): {", ".join(sorted(unknown))}')
    return dataclasses.replace(pool, stages=tuple(stages))
