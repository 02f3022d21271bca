"""
Default dataset for a newly registered business, keyed by collection name.
"""

import copy
import json
from functools import lru_cache
from importlib import resources


@lru_cache(maxsize=1)
def _load() -> dict:
    with resources.files(__name__).joinpath("seed.json").open(encoding="utf-8") as fh:
        return json.load(fh)


def seed_data(name: str):
    """Return a fresh deep copy of the fixture for ``name`` (list or dict)."""
    return copy.deepcopy(_load()[name])
