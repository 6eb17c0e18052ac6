from __future__ import annotations

from typing import Sequence

from heroforge.domain.models.character import NameIndices
from heroforge.domain.repositories import NameRegistry


class StaticNameRegistry(NameRegistry):
    """Name pools keyed by the creation name-set selector.

    ``False`` selects the primary pool and ``True`` the alternate pool;
    surnames are shared by both.
    """

    _FALLBACK_PRIMARY = ["Alden", "Borin", "Cedric", "Darian", "Edric", "Fenn", "Garrick", "Harlan"]
    _FALLBACK_ALTERNATE = ["Aria", "Bryn", "Celia", "Daphne", "Elora", "Faye", "Gwen", "Hilde"]
    _FALLBACK_SURNAMES = ["Ashford", "Blackwood", "Crowley", "Dunmore", "Everhart", "Flint", "Graves", "Holt"]

    def __init__(
        self,
        primary: Sequence[str] | None = None,
        alternate: Sequence[str] | None = None,
        surnames: Sequence[str] | None = None,
    ) -> None:
        self._first_names = {
            False: [str(name) for name in (primary if primary is not None else self._FALLBACK_PRIMARY)],
            True: [str(name) for name in (alternate if alternate is not None else self._FALLBACK_ALTERNATE)],
        }
        self._surnames = [str(name) for name in (surnames if surnames is not None else self._FALLBACK_SURNAMES)]

    def first_name_count(self, name_set: bool) -> int:
        return len(self._first_names[bool(name_set)])

    def surname_count(self) -> int:
        return len(self._surnames)

    def display_name(self, name: NameIndices) -> str:
        pool = self._first_names[bool(name.name_set)]
        first = pool[name.first_name_index] if 0 <= name.first_name_index < len(pool) else "?"
        last = self._surnames[name.surname_index] if 0 <= name.surname_index < len(self._surnames) else "?"
        return f"{first} {last}"
