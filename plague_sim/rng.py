"""Seeded RNG helpers for reproducible epidemics.

Uses NumPy's SeedSequence → PCG64 hierarchy to guarantee:
  - Bit-exact replay from (seed, agent identity, simulated time)
  - Statistical independence between named streams, so the draw that
    decides *whether* an agent is infected never doubles as the draw that
    picks *which* subtype it gets
  - Checkpointable generator state for save games

Every probabilistic branch of the engine takes its generator from here.
"""

from __future__ import annotations

import math
from typing import Dict, Optional

import numpy as np


# Stream identifiers mixed into the SeedSequence entropy
STREAM_EXPOSURE = 1
STREAM_PROGRESSION = 2
STREAM_NPC_META = 3
STREAM_HOUSEHOLD = 4
STREAM_OUTBREAK = 5

_SEED_MODULUS = 2 ** 32
_MAX_UNSEEDED = 1_000_000


def check_sim_time(sim_time: float) -> float:
    """Reject NaN, infinite or negative simulated time.

    Raises:
        ValueError: If sim_time is not a finite non-negative number.
    """
    t = float(sim_time)
    if math.isnan(t) or math.isinf(t) or t < 0.0:
        raise ValueError(f"sim_time must be finite and >= 0, got {sim_time!r}")
    return t


def hash_agent_id(agent_id: str) -> int:
    """Stable 32-bit hash of an agent identity (×31 rolling hash, never 0).

    Raises:
        ValueError: If agent_id is missing or empty.
    """
    if not agent_id:
        raise ValueError("agent identity is required for seeding")
    h = 0
    for ch in str(agent_id):
        h = (h * 31 + ord(ch)) % _SEED_MODULUS
    return h or 1


def time_key(sim_time: float) -> int:
    """Quantize simulated time to tenths for seeding."""
    return int(math.floor(check_sim_time(sim_time) * 10))


def agent_seed(agent_id: str, sim_time: float, offset: int = 0) -> int:
    """Per-agent-per-time seed: hash(id) + offset + time_key, mod 2³²."""
    return (hash_agent_id(agent_id) + int(offset) + time_key(sim_time)) % _SEED_MODULUS


def derive_rng(seed: int, *keys: int) -> np.random.Generator:
    """Generator for ``seed`` restricted to the stream named by ``keys``.

    Args:
        seed: Base seed (any integer; reduced mod 2³²).
        *keys: Stream identifiers and other integers (e.g. a time key).

    Returns:
        A fresh PCG64 Generator. Same inputs → same sequence.

    Example:
        >>> rng = derive_rng(7, STREAM_EXPOSURE)
        >>> rng.random()  # reproducible
    """
    entropy = [int(seed) % _SEED_MODULUS] + [int(k) % _SEED_MODULUS for k in keys]
    return np.random.Generator(np.random.PCG64(np.random.SeedSequence(entropy)))


def unseeded_rng() -> np.random.Generator:
    """Generator seeded from OS entropy. Not reproducible."""
    return np.random.default_rng()


def fresh_seed(rng: Optional[np.random.Generator] = None) -> int:
    """Draw a new seed for callers that did not supply one."""
    rng = rng if rng is not None else unseeded_rng()
    return int(rng.integers(0, _MAX_UNSEEDED))


def rng_state_snapshot(
    rngs: Dict[str, np.random.Generator],
) -> Dict[str, dict]:
    """Capture full RNG state for checkpointing.

    Returns a dict of {name: state_dict} that can be serialized and
    restored to resume a simulation exactly.

    Args:
        rngs: Named generators.

    Returns:
        Dictionary mapping stream names to their internal state dicts.
    """
    return {name: rng.bit_generator.state for name, rng in rngs.items()}


def restore_rng_state(
    rngs: Dict[str, np.random.Generator],
    states: Dict[str, dict],
) -> None:
    """Restore RNG state from a checkpoint snapshot.

    Args:
        rngs: Named generators (must have same keys as states).
        states: State snapshot from rng_state_snapshot().

    Raises:
        KeyError: If a stream in states doesn't exist in rngs.
    """
    for name, state in states.items():
        if name not in rngs:
            raise KeyError(f"Cannot restore RNG state for unknown stream '{name}'")
        rngs[name].bit_generator.state = state
