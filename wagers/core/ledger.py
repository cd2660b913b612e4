"""Decision ledger: each entrant's declared choice before resolution."""

from .errors import InvalidChoice, UnknownEntrant
from .models import RuleTable


class DecisionLedger:
    """Validated view over a stage's ``decisions`` map.

    The map is edited in place, one key at a time. Validation happens
    before any write, so a rejected call leaves the map unchanged.
    """

    def __init__(self, decisions: dict, roster_keys, rules: RuleTable):
        self.decisions = decisions
        self.roster_keys = list(roster_keys)
        self._known = set(self.roster_keys)
        self.rules = rules

    def check_key(self, key: str):
        """Raise UnknownEntrant unless the key is on the roster."""
        if key not in self._known:
            raise UnknownEntrant(f'Not on the current roster: {key!r}')

    def set(self, key: str, choice: str):
        choice = '' if choice is None else str(choice).strip()
        if choice not in self.rules.stakes:
            raise InvalidChoice(
                f'{choice!r} is not one of: {", ".join(self.rules.choices)}')
        self.check_key(key)
        self.decisions[key] = choice

    def clear(self, key: str):
        self.check_key(key)
        self.decisions.pop(key, None)

    def get(self, key: str) -> str:
        self.check_key(key)
        choice = self.decisions.get(key)
        if choice in self.rules.stakes:
            return choice
        return self.rules.default_choice

    def stake(self, key: str) -> float:
        return self.rules.stake(self.get(key))

    def is_explicit(self, key: str) -> bool:
        return self.decisions.get(key) in self.rules.stakes

    def is_complete(self) -> bool:
        """True when every roster entrant made an explicit choice."""
        return all(self.is_explicit(k) for k in self.roster_keys)

    def missing(self) -> list[str]:
        return [k for k in self.roster_keys if not self.is_explicit(k)]

    def effective(self) -> dict:
        """Full key -> choice map with defaults filled in."""
        return {k: self.get(k) for k in self.roster_keys}

    def counts(self) -> dict:
        out = {c: 0 for c in self.rules.choices}
        for choice in self.effective().values():
            out[choice] = out.get(choice, 0) + 1
        return out

    def reconcile(self, roster_keys):
        """Point the ledger at a new roster, dropping off-roster decisions."""
        self.roster_keys = list(roster_keys)
        self._known = set(self.roster_keys)
        for k in [k for k in self.decisions if k not in self._known]:
            del self.decisions[k]
