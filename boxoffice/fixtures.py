"""Snapshot-backed fixtures.

``load_fixture`` runs a deployment function once, snapshots the chain, and on
every later call restores that snapshot instead of running it again. It follows
Hardhat's ``loadFixture``: restoring a fixture discards the snapshots of every
fixture loaded after it, so those run again the next time they are requested.

Copyright (c) 2026 Momentum. All rights reserved.
"""

from __future__ import annotations

import weakref
from dataclasses import dataclass
from typing import Any, Callable, Dict, TypeVar

from boxoffice.chain import ChainError, DevChain, SnapshotError

T = TypeVar("T")


class FixtureSnapshotError(ChainError):
    """A cached fixture snapshot could not be restored."""
    pass


@dataclass
class _FixtureEntry:
    snapshot_id: int
    result: Any


class FixtureLoader:
    """Per-chain fixture cache."""

    def __init__(self, chain: DevChain):
        self.chain = chain
        self._entries: Dict[Callable[[], Any], _FixtureEntry] = {}

    def __call__(self, fixture: Callable[[], T]) -> T:
        if getattr(fixture, "__name__", "") == "<lambda>":
            raise ValueError("load_fixture needs a named function; a lambda is a new fixture on every call")

        entry = self._entries.get(fixture)
        if entry is None:
            result = fixture()
            self._entries[fixture] = _FixtureEntry(self.chain.snapshot(), result)
            return result

        restored = entry.snapshot_id
        try:
            self.chain.revert(restored)
        except SnapshotError as e:
            raise FixtureSnapshotError(
                f"Could not restore the snapshot of fixture {fixture.__name__}"
            ) from e

        self._entries = {f: cached for f, cached in self._entries.items() if cached.snapshot_id <= restored}
        entry.snapshot_id = self.chain.snapshot()
        return entry.result

    def clear(self) -> None:
        self._entries.clear()


_loaders: "weakref.WeakKeyDictionary[DevChain, FixtureLoader]" = weakref.WeakKeyDictionary()


def load_fixture(chain: DevChain, fixture: Callable[[], T]) -> T:
    """Module-level convenience over a per-chain :class:`FixtureLoader`."""
    loader = _loaders.get(chain)
    if loader is None:
        loader = _loaders[chain] = FixtureLoader(chain)
    return loader(fixture)
