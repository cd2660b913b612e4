"""The one ranking rule used for every award, pot and propagation.

Highest points first; ties go to the lower seed, then to the lexically
first owner name, then to the operator's explicit tie order. Entrants
still indistinguishable after that are reported as an unresolved tie
rather than ordered arbitrarily.
"""

from dataclasses import dataclass

from .models import Entrant


@dataclass(frozen=True)
class Ranked:
    entrant: Entrant
    points: float
    tied_keys: tuple = ()  # every key this entrant cannot be separated from

    @property
    def tie_unresolved(self) -> bool:
        return bool(self.tied_keys)


def _base_key(entrant: Entrant, points: float) -> tuple:
    seed = entrant.seed
    return (-points, 0 if seed is not None else 1, seed if seed is not None else 0,
            entrant.owner_name)


def rank(entrants, scores: dict, tie_order=()) -> list[Ranked]:
    """Order entrants best-first and flag ties that no rule can break.

    The operator order settles a run of equal base keys only when it
    lists every member of the run; otherwise the whole run is flagged.
    """
    order = {k: i for i, k in enumerate(tie_order)}

    runs = {}
    for e in entrants:
        pts = float(scores.get(e.key, 0.0))
        runs.setdefault(_base_key(e, pts), []).append((e, pts))

    ranked = []
    for base in sorted(runs):
        members = runs[base]
        if len(members) == 1:
            e, pts = members[0]
            ranked.append(Ranked(e, pts))
            continue
        keys = [e.key for e, _ in members]
        if all(k in order for k in keys):
            members.sort(key=lambda m: order[m[0].key])
            tied = ()
        else:
            members.sort(key=lambda m: m[0].key)
            tied = tuple(sorted(keys))
        ranked.extend(Ranked(e, pts, tied) for e, pts in members)
    return ranked
