"""Built-in pool variants.

Each pool is a configuration value: snapshot location, stage order and
per-stage rule tables. The numbers are the published defaults; an
operator can override them per season with a rules file.
"""

from .models import AwardCategory, PoolConfig, RuleTable, StageConfig, WagerTier


BIG_GAME = PoolConfig(
    name='big_game',
    title='Big Game',
    snapshot_roots=('big_game',),
    stages=(
        StageConfig(
            name='division_wagers',
            title='Week 16 Division Wagers',
            cutoff_week=15,
            target_week=16,
            top_n=1,
            pot_group_by='division',
            rules=RuleTable(
                credit=25,
                wager_bonus=0,
                # 'both' qualifies for pot 1 and pot 2
                stakes={'none': 0, 'pot1': 25, 'both': 50},
                default_choice='none',
                tiers=(
                    WagerTier('pot1', min_stake=25, credit=25),
                    WagerTier('pot2', min_stake=50, credit=25),
                ),
            ),
            advance='pot:pot1',
        ),
        StageConfig(
            name='championship',
            title='Week 17 Championship',
            target_week=17,
            pot_group_by='pool',
            rules=RuleTable(
                credit=50,
                wager_bonus=0,
                stakes={'0': 0, '50': 50, '100': 100, '150': 150},
                default_choice='0',
                tiers=(
                    WagerTier('main', min_stake=50, credit=50),
                    WagerTier('side1', min_stake=100, credit=50),
                    WagerTier('side2', min_stake=150, credit=50),
                ),
                award_bonuses={'overall': (0,)},
            ),
            # Reports the top scorer even if they did not wager
            awards=(AwardCategory('overall', 'pool'),),
        ),
    ),
)


MINI_LEAGUES = PoolConfig(
    name='mini_leagues',
    title='Mini Leagues',
    snapshot_roots=('mini_game', 'mini-game', 'minigame'),
    stages=(
        StageConfig(
            name='week15',
            title='Week 15 Wagers',
            cutoff_week=14,
            target_week=15,
            top_n=1,
            pot_group_by='pool',
            rules=RuleTable(
                credit=30,
                wager_bonus=60,
                stakes={'keep': 0, 'wager': 30},
                default_choice='keep',
                award_bonuses={'division': (30,), 'championship': (100,)},
            ),
            awards=(
                AwardCategory('division', 'division'),
                AwardCategory('championship', 'pool'),
            ),
        ),
    ),
)


DYNASTY = PoolConfig(
    name='dynasty',
    title='Dynasty',
    snapshot_roots=('dynasty', 'dyn', 'empire', 'dynasty-leagues', 'dynasty_leagues'),
    stages=(
        StageConfig(
            name='week17',
            title='Week 17 Finals',
            cutoff_week=16,
            target_week=17,
            top_n=2,
            pot_group_by='pool',
            rules=RuleTable(
                credit=50,
                wager_bonus=200,
                stakes={'bank': 0, 'wager': 50},
                default_choice='bank',
                award_bonuses={
                    'overall': (250, 100, 50),
                    'league': (125,),
                    'division': (0,),
                },
                empire_bonus=225,
            ),
            awards=(
                AwardCategory('overall', 'pool'),
                AwardCategory('league', 'league'),
                AwardCategory('division', 'division'),
            ),
            advance='award:division',
        ),
        StageConfig(
            name='week18',
            title='Week 18 Showdown',
            target_week=18,
            pot_group_by='pool',
            rules=RuleTable(
                credit=0,
                wager_bonus=0,
                stakes={'bank': 0},
                default_choice='bank',
                award_bonuses={'showdown': (0,)},
            ),
            awards=(AwardCategory('showdown', 'pool'),),
        ),
    ),
)


POOLS = {p.name: p for p in (BIG_GAME, MINI_LEAGUES, DYNASTY)}
