"""Exposure resolver — turns an exposure event into an infection or a no-op.

Implements:
  - expose_to_plague(): seeded success roll, subtype roll, bubo-site roll
  - calculate_plague_protection(): multiplicative risk reduction from items
  - roll_proximity_exposure(): per-check exposure from nearby rats,
    infected agents and corpses

Draw order on one seeded exposure stream is fixed: success, then subtype
(non-airborne only), then bubo location (bubonic only). Airborne exposure is
always pneumonic.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, Mapping, Optional, Tuple, Union

import numpy as np
from loguru import logger

from plague_sim.config import ExposureSection, ProtectionSection
from plague_sim.profiles import INITIAL_SURVIVAL, pick_bubo_location, pick_plague_type
from plague_sim.rng import STREAM_EXPOSURE, check_sim_time, derive_rng, fresh_seed
from plague_sim.types import (
    EXPOSURE_KINDS,
    AgentState,
    BuboLocation,
    PlagueStatus,
    PlagueType,
)


def _check_kind(kind: str) -> None:
    if kind not in EXPOSURE_KINDS:
        raise ValueError(f"exposure kind must be one of {EXPOSURE_KINDS}, got {kind!r}")


def _check_intensity(intensity: float) -> float:
    value = float(intensity)
    if math.isnan(value) or not (0.0 <= value <= 1.0):
        raise ValueError(f"intensity must be in [0, 1], got {intensity!r}")
    return value


def exposure_chance(
    kind: str,
    intensity: float,
    cfg: Optional[ExposureSection] = None,
) -> float:
    """Probability that one exposure event infects: base(kind) × intensity."""
    cfg = cfg if cfg is not None else ExposureSection()
    _check_kind(kind)
    return cfg.base_chance[kind] * _check_intensity(intensity)


def expose_to_plague(
    status: PlagueStatus,
    kind: str,
    intensity: float,
    current_time: float,
    seed: Optional[int] = None,
    cfg: Optional[ExposureSection] = None,
) -> PlagueStatus:
    """Expose the player to plague.

    Only a HEALTHY record can be infected; anything else is returned as-is.
    The input record is never mutated.

    Args:
        status: Current player record.
        kind: 'flea', 'airborne' or 'contact'.
        intensity: Exposure intensity in [0, 1].
        current_time: Player clock (seconds).
        seed: Deterministic seed. A fresh one is drawn when None; either way
            it is stored on the new record for later progression rolls.
        cfg: Exposure configuration.

    Returns:
        The updated record (INCUBATING) on success, otherwise ``status``.

    Raises:
        ValueError: Unknown kind, intensity outside [0, 1], or bad time.
    """
    chance = exposure_chance(kind, intensity, cfg)
    check_sim_time(current_time)

    if status.state != AgentState.HEALTHY:
        return status

    if seed is None:
        seed = fresh_seed()
    rng = derive_rng(seed, STREAM_EXPOSURE)

    if rng.random() >= chance:
        return status

    if kind == 'airborne':
        plague_type = PlagueType.PNEUMONIC
    else:
        plague_type = pick_plague_type(rng.random())

    bubo_location = BuboLocation.NONE
    if plague_type == PlagueType.BUBONIC:
        bubo_location = pick_bubo_location(rng.random())

    logger.debug(
        f"Exposure via {kind} succeeded: {plague_type.name} "
        f"(bubo={bubo_location.name}, seed={seed})"
    )

    return PlagueStatus(
        plague_type=plague_type,
        state=AgentState.INCUBATING,
        exposure_time=float(current_time),
        bubo_location=bubo_location,
        survival_chance=INITIAL_SURVIVAL[plague_type],
        seed=int(seed),
    )


# ═══════════════════════════════════════════════════════════════════════
# PROTECTION & PROXIMITY
# ═══════════════════════════════════════════════════════════════════════

InventoryEntry = Union[Mapping[str, object], Tuple[str, int]]


def _entry_fields(entry: InventoryEntry) -> Tuple[str, int]:
    if isinstance(entry, Mapping):
        return str(entry.get('item_id', '')), int(entry.get('quantity', 0))
    item_id, quantity = entry
    return str(item_id), int(quantity)


def calculate_plague_protection(
    inventory: Iterable[InventoryEntry],
    cfg: Optional[ProtectionSection] = None,
) -> float:
    """Risk multiplier from carried protective items.

    Each distinct item with quantity > 0 multiplies the remaining risk once,
    e.g. herb pouch (0.7) + face cloth (0.85) → 0.595.

    Args:
        inventory: ``{'item_id', 'quantity'}`` mappings or (item_id, quantity) pairs.
        cfg: Protection configuration.

    Returns:
        Multiplier in (0, 1]; 1.0 means no protection.
    """
    cfg = cfg if cfg is not None else ProtectionSection()
    held = {item_id for item_id, qty in map(_entry_fields, inventory) if qty > 0}
    multiplier = 1.0
    for item_id, factor in cfg.items.items():
        if item_id in held:
            multiplier *= factor
    return multiplier


@dataclass
class NearbyHazards:
    """What is within range of the player at one exposure check."""
    rats: int = 0
    infected: int = 0
    pneumonic_infected: int = 0
    corpses: int = 0
    stationary: bool = False


def roll_proximity_exposure(
    nearby: NearbyHazards,
    protection: float,
    rng: np.random.Generator,
    cfg: Optional[ExposureSection] = None,
) -> Optional[Tuple[str, float]]:
    """One proximity exposure check.

    Sources are tried in order rats → infected → corpses; the first success
    wins and at most one exposure happens per check. Corpse contact only
    counts while the player stands still.

    Returns:
        (kind, intensity) to feed into expose_to_plague(), or None.
    """
    cfg = cfg if cfg is not None else ExposureSection()

    if nearby.rats > 0:
        density = min(1.0, nearby.rats / cfg.max_rat_density)
        if rng.random() < cfg.rat_base_chance * density * protection:
            return 'flea', cfg.flea_intensity

    if nearby.infected > 0:
        density = min(1.0, nearby.infected / cfg.max_infected_density)
        boost = cfg.pneumonic_boost if nearby.pneumonic_infected > 0 else cfg.non_pneumonic_boost
        chance = cfg.infected_base_chance * density * boost * protection
        if rng.random() < min(cfg.airborne_chance_cap, chance):
            return 'airborne', cfg.airborne_intensity

    if nearby.corpses > 0 and nearby.stationary:
        if rng.random() < cfg.corpse_base_chance * protection:
            return 'contact', cfg.contact_intensity

    return None

