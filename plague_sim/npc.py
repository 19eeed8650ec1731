"""NPC plague progression — hour-scaled, two-threshold state machine.

NPCs carry no symptom micro-state. At infection we sample, once, the
subtype and two boundaries of the same disease curve the player follows:

  exposure ──incubation_hours──▶ onset ──death_hours──▶ death

Day-scale samples from the profile table are compressed by
``NpcSection.time_scale`` and clamped so that a whole NPC episode plays out
within one in-game day. Each tick is O(1): two comparisons.

Clock: NPC ``sim_time`` is in simulated HOURS.
"""

from __future__ import annotations

import dataclasses
from typing import Optional

from loguru import logger

from plague_sim.config import NpcSection
from plague_sim.profiles import DiseaseCurve, pick_plague_type
from plague_sim.rng import STREAM_NPC_META, agent_seed, check_sim_time, derive_rng
from plague_sim.types import AgentState, NPCPlagueMeta, NPCRecord, PlagueType

HOURS_PER_DAY = 24


def create_npc_plague_meta(
    seed: int,
    sim_time: float,
    cfg: Optional[NpcSection] = None,
    hours_per_day: int = HOURS_PER_DAY,
) -> NPCPlagueMeta:
    """Sample frozen infection timing for one NPC.

    Draw order on the NPC-meta stream: subtype, incubation, death.

    Args:
        seed: Per-agent seed (see ``rng.agent_seed``).
        sim_time: Exposure time (hours).
        cfg: NPC timing configuration.
        hours_per_day: Simulated hours per day.

    Returns:
        NPCPlagueMeta with incubation_hours in the incubation clamp and
        death_hours (onset → death) in the death clamp.
    """
    check_sim_time(sim_time)
    cfg = cfg if cfg is not None else NpcSection()
    rng = derive_rng(seed, STREAM_NPC_META)

    plague_type = pick_plague_type(rng.random())
    incubation_hours, death_hours = DiseaseCurve(plague_type).compressed_hours(
        rng.random(),
        rng.random(),
        time_scale=cfg.time_scale,
        incubation_clamp=(cfg.min_incubation_hours, cfg.max_incubation_hours),
        death_clamp=(cfg.min_death_hours, cfg.max_death_hours),
        hours_per_day=hours_per_day,
    )
    return NPCPlagueMeta(
        plague_type=plague_type,
        exposure_time=float(sim_time),
        incubation_hours=incubation_hours,
        death_hours=death_hours,
        onset_time=None,
    )


def reset_npc_plague_meta(record: NPCRecord) -> None:
    record.plague_meta = NPCPlagueMeta()


def ensure_npc_plague_meta(
    record: NPCRecord,
    sim_time: float,
    cfg: Optional[NpcSection] = None,
) -> NPCPlagueMeta:
    """Backfill metadata for an NPC placed into a sick state externally."""
    if record.plague_meta is not None and record.plague_meta.plague_type != PlagueType.NONE:
        return record.plague_meta
    seed = agent_seed(record.id, sim_time)
    record.plague_meta = create_npc_plague_meta(seed, sim_time, cfg)
    logger.debug(f"Backfilled plague metadata for NPC {record.id}")
    return record.plague_meta


def seed_npc_infection(
    record: NPCRecord,
    sim_time: float,
    seed: Optional[int] = None,
    cfg: Optional[NpcSection] = None,
) -> bool:
    """Put a HEALTHY NPC into INCUBATING with freshly sampled timing.

    Returns:
        True if the record was infected; sick and dead records are left alone.
    """
    check_sim_time(sim_time)
    if record.state != AgentState.HEALTHY:
        return False
    if seed is None:
        seed = agent_seed(record.id, sim_time)
    record.state = AgentState.INCUBATING
    record.state_start_time = float(sim_time)
    record.plague_meta = create_npc_plague_meta(seed, sim_time, cfg)
    return True


def seed_npc_infected_near_death(
    record: NPCRecord,
    sim_time: float,
    seed: Optional[int] = None,
    cfg: Optional[NpcSection] = None,
) -> bool:
    """Put a HEALTHY NPC into INFECTED with most of its death interval elapsed.

    Onset and exposure are back-dated so the remaining time to death is
    ``(1 − near_death_fraction) × death_hours``. No-op unless HEALTHY.
    """
    check_sim_time(sim_time)
    if record.state != AgentState.HEALTHY:
        return False
    cfg = cfg if cfg is not None else NpcSection()
    if seed is None:
        seed = agent_seed(record.id, sim_time)
    meta = create_npc_plague_meta(seed, sim_time, cfg)
    elapsed = max(cfg.near_death_min_elapsed, meta.death_hours * cfg.near_death_fraction)
    onset = sim_time - elapsed
    record.state = AgentState.INFECTED
    record.state_start_time = float(sim_time)
    record.plague_meta = dataclasses.replace(
        meta,
        onset_time=onset,
        exposure_time=onset - meta.incubation_hours,
    )
    return True


def advance_npc_health(
    record: NPCRecord,
    sim_time: float,
    cfg: Optional[NpcSection] = None,
) -> bool:
    """Advance one NPC to ``sim_time`` (hours). Mutates ``record`` in place.

    INCUBATING → INFECTED once incubation_hours have passed since exposure;
    INFECTED → DECEASED once death_hours have passed since onset. Metadata
    sampled at infection is never resampled.

    Returns:
        True if the record changed state this call.
    """
    check_sim_time(sim_time)
    cfg = cfg if cfg is not None else NpcSection()

    if record.state == AgentState.INCUBATING:
        meta = ensure_npc_plague_meta(record, sim_time, cfg)
        exposure_time = meta.exposure_time if meta.exposure_time is not None else record.state_start_time
        incubation = meta.incubation_hours if meta.incubation_hours is not None else cfg.hours_to_infected
        if sim_time - exposure_time >= incubation:
            record.state = AgentState.INFECTED
            record.state_start_time = float(sim_time)
            record.plague_meta = dataclasses.replace(
                meta,
                exposure_time=exposure_time,
                incubation_hours=incubation,
                onset_time=float(sim_time),
                death_hours=(meta.death_hours if meta.death_hours is not None
                             else cfg.hours_to_death - cfg.hours_to_infected),
            )
            logger.debug(f"NPC {record.id} symptomatic ({meta.plague_type.name})")
            return True
        return False

    if record.state == AgentState.INFECTED:
        meta = record.plague_meta if record.plague_meta is not None else NPCPlagueMeta()
        onset = meta.onset_time if meta.onset_time is not None else record.state_start_time
        death_hours = (meta.death_hours if meta.death_hours is not None
                       else cfg.hours_to_death - cfg.hours_to_infected)
        if sim_time - onset >= death_hours:
            record.state = AgentState.DECEASED
            record.state_start_time = float(sim_time)
            logger.debug(f"NPC {record.id} died")
            return True

    return False
