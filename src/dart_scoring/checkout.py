from functools import lru_cache
from itertools import product

from .geometry import SEGMENT_VALUES
from .models import ScoreResult

MAX_CHECKOUT = 170
MAX_SUGGESTIONS = 20


def _board_throws() -> list[ScoreResult]:
    throws = [
        ScoreResult(value=value, multiplier=multiplier)
        for value in sorted(SEGMENT_VALUES)
        for multiplier in (1, 2, 3)
    ]
    throws.append(ScoreResult(value=25, multiplier=1))
    throws.append(ScoreResult(value=50, multiplier=1))
    return throws


ALL_THROWS = _board_throws()
FINISHERS = [t for t in ALL_THROWS if t.multiplier == 2 or t.value == 50]

# Highest first, triples before doubles before singles on equal totals.
SETUP_ORDER = sorted(ALL_THROWS, key=lambda t: (-t.total, -t.multiplier, t.value))
FINISH_ORDER = sorted(FINISHERS, key=lambda t: -t.total)


@lru_cache(maxsize=256)
def suggest_checkout(score: int, max_darts: int = 3) -> list[list[str]]:
    """Finishing combinations for ``score``: any setup darts, then a double or the 50 bull."""
    if score < 2 or score > MAX_CHECKOUT or max_darts < 1:
        return []

    suggestions: list[list[str]] = []
    seen: set[tuple[str, ...]] = set()
    for setup_count in range(0, min(max_darts, 3)):
        for setup in product(SETUP_ORDER, repeat=setup_count):
            remaining = score - sum(t.total for t in setup)
            if remaining < 2:
                continue
            for last in FINISH_ORDER:
                if last.total != remaining:
                    continue
                combo = tuple(t.label for t in setup) + (last.label,)
                if combo not in seen:
                    seen.add(combo)
                    suggestions.append(list(combo))
            if len(suggestions) >= MAX_SUGGESTIONS:
                return suggestions[:MAX_SUGGESTIONS]

    return suggestions
