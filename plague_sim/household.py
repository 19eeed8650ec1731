"""Household exposure — ambient infection risk from sharing a building.

Transmission between NPCs is coarse: there is no contact graph. Each tick,
a building accrues exposure hours for every symptomatic occupant inside it,
and every healthy resident indoors rolls against

    p = min(household_max_chance, household_exposure_per_hour × hours)

on its own per-agent-per-time seed. A success seeds the NPC machine
directly; household exposure does not go through the flea/airborne/contact
split used for the player.
"""

from __future__ import annotations

from collections import defaultdict
from typing import Dict, Iterable, Optional

from plague_sim.config import NpcSection
from plague_sim.npc import seed_npc_infection
from plague_sim.rng import STREAM_HOUSEHOLD, agent_seed, check_sim_time, derive_rng
from plague_sim.types import AgentState, NPCRecord


def household_infection_chance(exposure_hours: float, cfg: Optional[NpcSection] = None) -> float:
    cfg = cfg if cfg is not None else NpcSection()
    return min(cfg.household_max_chance, cfg.household_exposure_per_hour * max(0.0, exposure_hours))


def apply_household_exposure(
    record: NPCRecord,
    sim_time: float,
    exposure_hours: float,
    seed_offset: int = 0,
    cfg: Optional[NpcSection] = None,
) -> bool:
    """Roll household infection for one NPC.

    No-op unless the NPC is HEALTHY. The same per-agent seed that drives the
    roll also seeds the NPC's infection timing (on a separate stream).

    Args:
        record: NPC to expose (mutated on infection).
        sim_time: Current time (hours).
        exposure_hours: Building exposure accrued this tick.
        seed_offset: Extra seed entropy, e.g. a per-building index.
        cfg: NPC configuration.

    Returns:
        True if the NPC became infected.
    """
    check_sim_time(sim_time)
    if record.state != AgentState.HEALTHY:
        return False
    seed = agent_seed(record.id, sim_time, seed_offset)
    chance = household_infection_chance(exposure_hours, cfg)
    if derive_rng(seed, STREAM_HOUSEHOLD).random() < chance:
        seed_npc_infection(record, sim_time, seed, cfg)
        return True
    return False


def household_exposure_hours(
    records: Iterable[NPCRecord],
    dt_hours: float,
) -> Dict[str, float]:
    """Exposure hours accrued per building over one tick.

    Each INFECTED occupant who is indoors in their home building contributes
    ``dt_hours``. Buildings with no symptomatic occupant are absent.
    """
    exposure: Dict[str, float] = defaultdict(float)
    for record in records:
        if (record.state == AgentState.INFECTED
                and record.location == 'interior'
                and record.home_building_id is not None):
            exposure[record.home_building_id] += dt_hours
    return dict(exposure)
