from __future__ import annotations

import hashlib
from typing import Callable


SEED_BYTES = 32
SEED_MODULUS = 2 ** (SEED_BYTES * 8)

MixFunction = Callable[[int, str], int]


def sha256_mix(seed: int, tag: str) -> int:
    payload = (int(seed) % SEED_MODULUS).to_bytes(SEED_BYTES, "big") + str(tag).encode("utf-8")
    return int(hashlib.sha256(payload).hexdigest(), 16)


def next_draw(seed: int, tag: str, mix: MixFunction = sha256_mix) -> tuple[int, int]:
    """Advance ``seed`` one step and return ``(value, new_seed)``.

    The value and the new seed are the same number: callers reduce the value
    modulo whatever range they need and carry the seed into the next draw.
    """

    advanced = int(mix(seed, tag)) % SEED_MODULUS
    return advanced, advanced


class SeedChain:
    """Stateful wrapper over :func:`next_draw` for call sites that draw many times."""

    def __init__(self, seed: int, mix: MixFunction = sha256_mix) -> None:
        self._seed = int(seed) % SEED_MODULUS
        self._mix = mix

    @property
    def seed(self) -> int:
        return self._seed

    def draw(self, tag: str) -> int:
        value, self._seed = next_draw(self._seed, tag, self._mix)
        return value

    def draw_below(self, tag: str, bound: int) -> int:
        if int(bound) <= 0:
            raise ValueError("Draw bound must be positive")
        return self.draw(tag) % int(bound)
