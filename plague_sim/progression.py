"""Player plague progression — day-banded symptom state machine.

Implements:
  - INCUBATING → INFECTED once days since exposure reach the subtype's
    onset day; onset seeds subtype-specific symptoms
  - Day-banded INFECTED progression per subtype:
      * Bubonic: onset (<2d) → bubo peak (2–4d, spontaneous burst from day 3)
        → secondary symptoms (4–7d, gangrene from day 6) → daily death rolls
        (≥7d) on the base or lanced mortality curve → symptom decay (>10d)
      * Pneumonic: monotone worsening capped at 95, 50% death roll from day 3
      * Septicemic: fastest worsening, certain death at day 2
  - overall_severity = max(symptoms), recomputed every tick
  - survival_chance recomputed per subtype/day/burst band

Clock: ``sim_time`` is the player clock in seconds; one simulated day is
``SimulationSection.game_day_length`` seconds.

Randomness: burst and death rolls draw from a generator derived from the
exposure seed and the record's roll counter, so a persisted record replays
bit-identically and every tick rolls afresh, however close together.
``deterministic_rolls=False`` falls back to unseeded rolls.
"""

from __future__ import annotations

import dataclasses
import math
from typing import Optional

import numpy as np
from loguru import logger

from plague_sim.config import SimulationSection
from plague_sim.profiles import ONSET_SYMPTOMS, DiseaseCurve
from plague_sim.rng import (
    STREAM_PROGRESSION,
    check_sim_time,
    derive_rng,
    unseeded_rng,
)
from plague_sim.types import SYMPTOM_FIELDS, AgentState, PlagueStatus, PlagueType


# ═══════════════════════════════════════════════════════════════════════
# CONSTANTS
# ═══════════════════════════════════════════════════════════════════════

SYMPTOM_MAX = 100.0
SYMPTOM_CAP = 95.0            # Pneumonic/septicemic ceiling

BUBO_BURST_CHANCE = 0.2       # Per roll, from day 3 of the bubo peak
BUBO_BURST_DAY = 3.0
BUBONIC_DEATH_SCALE = 0.1     # Fraction of mortality rolled per tick after the critical day
BUBONIC_RECOVERY_DAY = 10.0
BURST_BUBO_LEVEL = 60.0       # Visible swelling once drained
UNBURST_BUBO_LEVEL = 95.0

PNEUMONIC_DEATH_DAY = 3.0
PNEUMONIC_DEATH_CHANCE = 0.5
SEPTICEMIC_DEATH_DAY = 2.0


# ═══════════════════════════════════════════════════════════════════════
# HELPERS
# ═══════════════════════════════════════════════════════════════════════

def overall_severity(status: PlagueStatus) -> float:
    """Max of all symptom fields."""
    return status.max_symptom()


def _clamp_symptoms(status: PlagueStatus) -> None:
    for name in SYMPTOM_FIELDS:
        value = getattr(status, name)
        setattr(status, name, min(SYMPTOM_MAX, max(0.0, float(value))))


def roll_generator(
    status: PlagueStatus,
    cfg: SimulationSection,
    rng: Optional[np.random.Generator] = None,
) -> np.random.Generator:
    """Generator for this tick's burst/death rolls.

    Explicit ``rng`` wins; otherwise seeded from (exposure seed, roll count)
    when deterministic rolls are on and the record carries a seed. The
    count advances every rolling tick, so two ticks never share a draw.
    """
    if rng is not None:
        return rng
    if cfg.deterministic_rolls and status.seed is not None:
        return derive_rng(status.seed, STREAM_PROGRESSION, status.roll_count)
    return unseeded_rng()


# ═══════════════════════════════════════════════════════════════════════
# SUBTYPE BANDS
# ═══════════════════════════════════════════════════════════════════════

def _progress_bubonic(
    p: PlagueStatus,
    days: float,
    curve: DiseaseCurve,
    rng: np.random.Generator,
) -> None:
    if days < 2.0:
        # Onset: swelling grows
        p.fever = 60.0 + days * 10.0
        p.weakness = 50.0 + days * 15.0
        p.buboes = 30.0 + days * 20.0
    elif days < 4.0:
        # Bubo peak
        p.fever = 80.0 + (days - 2.0) * 5.0
        p.weakness = 70.0 + (days - 2.0) * 10.0
        p.buboes = 70.0 + (days - 2.0) * 15.0
        if days >= BUBO_BURST_DAY and not p.bubo_burst:
            if rng.random() < BUBO_BURST_CHANCE:
                p.bubo_burst = True
    elif days < curve.profile.bubo_critical_day:
        # Secondary symptoms
        p.fever = 85.0
        p.weakness = 90.0
        p.buboes = BURST_BUBO_LEVEL if p.bubo_burst else UNBURST_BUBO_LEVEL
        p.skin_bleeding = 30.0 + (days - 4.0) * 15.0
        p.delirium = 40.0 + (days - 4.0) * 20.0
        if days >= 6.0:
            p.gangrene = (days - 6.0) * 30.0
    else:
        mortality = curve.mortality(lanced=p.bubo_burst)
        if rng.random() < mortality * BUBONIC_DEATH_SCALE:
            p.state = AgentState.DECEASED
        elif days > BUBONIC_RECOVERY_DAY:
            p.fever = max(0.0, p.fever - 10.0)
            p.weakness = max(0.0, p.weakness - 8.0)
            p.buboes = max(0.0, p.buboes - 15.0)

    p.survival_chance = 60.0 if p.bubo_burst else 30.0
    if days > BUBONIC_RECOVERY_DAY:
        p.survival_chance = 80.0 if p.bubo_burst else 20.0


def _progress_pneumonic(p: PlagueStatus, days: float, rng: np.random.Generator) -> None:
    p.fever = min(SYMPTOM_CAP, 70.0 + days * 12.0)
    p.weakness = min(SYMPTOM_CAP, 60.0 + days * 15.0)
    p.coughing_blood = min(SYMPTOM_CAP, 40.0 + days * 20.0)
    p.delirium = min(90.0, days * 25.0)

    if days >= PNEUMONIC_DEATH_DAY and rng.random() < PNEUMONIC_DEATH_CHANCE:
        p.state = AgentState.DECEASED

    p.survival_chance = max(5.0, 40.0 - days * 10.0)


def _progress_septicemic(p: PlagueStatus, days: float) -> None:
    p.fever = min(SYMPTOM_CAP, 80.0 + days * 8.0)
    p.skin_bleeding = min(SYMPTOM_CAP, 60.0 + days * 18.0)
    p.gangrene = min(SYMPTOM_CAP, days * 35.0)
    p.weakness = min(SYMPTOM_CAP, 70.0 + days * 13.0)
    p.delirium = min(SYMPTOM_CAP, days * 30.0)

    if days >= SEPTICEMIC_DEATH_DAY:
        p.state = AgentState.DECEASED

    p.survival_chance = max(2.0, 15.0 - days * 7.0)


# ═══════════════════════════════════════════════════════════════════════
# STATE MACHINE
# ═══════════════════════════════════════════════════════════════════════

def progress_plague(
    status: PlagueStatus,
    sim_time: float,
    cfg: Optional[SimulationSection] = None,
    rng: Optional[np.random.Generator] = None,
) -> PlagueStatus:
    """Advance the player's plague to ``sim_time``.

    Call at most once per logical tick with non-decreasing ``sim_time``.
    HEALTHY and DECEASED records (and records with no subtype) are returned
    unchanged. Otherwise a new record is returned; the input is not mutated.

    Args:
        status: Current player record.
        sim_time: Player clock (seconds).
        cfg: Simulation section (day length, deterministic_rolls).
        rng: Optional generator overriding the seeded roll stream.

    Returns:
        Updated PlagueStatus.

    Raises:
        ValueError: If sim_time is NaN, infinite or negative.
    """
    check_sim_time(sim_time)
    cfg = cfg if cfg is not None else SimulationSection()

    if status.state in (AgentState.HEALTHY, AgentState.DECEASED):
        return status
    if status.plague_type == PlagueType.NONE:
        return status

    p = dataclasses.replace(status)
    curve = DiseaseCurve(p.plague_type)

    if p.state == AgentState.INCUBATING:
        if p.exposure_time is None:
            p.exposure_time = float(sim_time)
        days_since_exposure = (sim_time - p.exposure_time) / cfg.game_day_length
        if days_since_exposure >= curve.onset_days():
            p.state = AgentState.INFECTED
            p.onset_time = float(sim_time)
            p.days_infected = 0
            for name, value in ONSET_SYMPTOMS[p.plague_type].items():
                setattr(p, name, value)
            p.overall_severity = overall_severity(p)
            logger.debug(f"Player plague onset: {p.plague_type.name} at t={sim_time}")
        return p

    if p.onset_time is None:
        p.onset_time = float(sim_time)
    days = (sim_time - p.onset_time) / cfg.game_day_length
    p.days_infected = int(math.floor(days))

    if p.plague_type == PlagueType.BUBONIC:
        rolls = roll_generator(p, cfg, rng)
        p.roll_count += 1
        _progress_bubonic(p, days, curve, rolls)
    elif p.plague_type == PlagueType.PNEUMONIC:
        rolls = roll_generator(p, cfg, rng)
        p.roll_count += 1
        _progress_pneumonic(p, days, rolls)
    else:
        _progress_septicemic(p, days)

    _clamp_symptoms(p)
    p.overall_severity = overall_severity(p)

    if p.state == AgentState.DECEASED:
        logger.info(
            f"Player died of {p.plague_type.name.lower()} plague "
            f"after {p.days_infected} days"
        )
    return p
