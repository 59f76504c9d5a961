# src/casty/runtime/atomic.py
from __future__ import annotations

import copy
from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterator, Optional

Json = Dict[str, Any]


@contextmanager
def atomic_apply(state: Json, *, commit: Optional[Callable[[Json], None]] = None) -> Iterator[Json]:
    """All-or-nothing mutation of ``state``.

    Yields a deep copy to mutate. If the block raises, the copy is discarded and
    ``state`` is untouched.

    On success:
      - commit given: commit(working) owns persisting and publishing the copy
      - no commit: the copy is written back into ``state`` in place
    """
    working: Json = copy.deepcopy(state)
    yield working
    if commit is not None:
        commit(working)
        return
    state.clear()
    state.update(working)
