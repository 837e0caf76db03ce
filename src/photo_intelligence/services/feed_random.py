"""Seedable pseudo-random stream used for replayable feed choices."""

from dataclasses import dataclass

_FNV_OFFSET = 2166136261
_FNV_PRIME = 16777619
_MASK_32 = 0xFFFFFFFF


def fnv1a_32(text: str) -> int:
    """Return the 32-bit FNV-1a hash of ``text``."""
    value = _FNV_OFFSET
    for char in text:
        value ^= ord(char)
        value = (value * _FNV_PRIME) & _MASK_32
    return value


@dataclass
class XorShift32:
    """xorshift32 generator producing floats in [0, 1]."""

    state: int

    def __post_init__(self) -> None:
        self.state &= _MASK_32
        if self.state == 0:
            self.state = 1

    def next_float(self) -> float:
        """Advance the stream and return the next draw."""
        x = self.state
        x ^= (x << 13) & _MASK_32
        x ^= x >> 17
        x ^= (x << 5) & _MASK_32
        self.state = x
        return x / _MASK_32


def stream_for(seed: str, mode: str, cursor: str) -> XorShift32:
    """Return the stream for one feed request."""
    return XorShift32(fnv1a_32(f"{seed}:{mode}:{cursor}"))
