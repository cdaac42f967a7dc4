from __future__ import annotations

import random
from typing import Sequence, TypeVar

from errors import EmptyCatalog


T = TypeVar("T")


def pick(entries: Sequence[T], rng: random.Random | None = None) -> T:
    """Return one entry with probability weight / total weight.

    ``r`` is drawn from [0, total) and the first entry whose cumulative weight
    reaches it wins, so earlier entries take ties at the boundaries. Pass a
    seeded ``random.Random`` (or anything with ``random()``) to make the draw
    reproducible.
    """
    if not entries:
        raise EmptyCatalog()

    total = sum(float(e.weight) for e in entries)
    if total <= 0:
        raise EmptyCatalog()

    rng = rng or random
    r = rng.random() * total
    cumulative = 0.0
    for entry in entries:
        cumulative += float(entry.weight)
        if r <= cumulative:
            return entry

    # float rounding can leave r a hair above the last cumulative sum
    return entries[-1]
