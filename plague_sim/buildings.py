"""Building infection aggregation.

Rolls occupant states up into one marker per building:

    clear < incubating < infected < deceased   (worst occupant wins)

Only occupants who are indoors in their own home building count. When a
building's occupants all look clear again, the previous marker lingers for
a decay window measured from ``last_seen_sim_time`` (hours):

    incubating 6 h, infected 8 h, deceased 12 h
    × 2   religious, civic, school, medical
    × 1.5 commercial, hospitality

Buildings that drop out of the building list keep any non-clear marker.
"""

from __future__ import annotations

from typing import Dict, Iterable, Mapping, Optional

from loguru import logger

from plague_sim.config import BuildingSection
from plague_sim.rng import check_sim_time
from plague_sim.types import (
    BUILDING_STATUSES,
    AgentState,
    BuildingInfectionState,
    BuildingType,
    NPCRecord,
)

STATUS_RANK = {status: rank for rank, status in enumerate(BUILDING_STATUSES)}

STATUS_FOR_STATE = {
    AgentState.HEALTHY: 'clear',
    AgentState.INCUBATING: 'incubating',
    AgentState.INFECTED: 'infected',
    AgentState.DECEASED: 'deceased',
}


def pick_status(current: str, candidate: str) -> str:
    """The more severe of two statuses."""
    return candidate if STATUS_RANK[candidate] > STATUS_RANK[current] else current


def decay_hours_for_status(
    status: str,
    building_type: BuildingType = BuildingType.RESIDENTIAL,
    cfg: Optional[BuildingSection] = None,
) -> float:
    """How long a marker lingers once its building looks clear."""
    cfg = cfg if cfg is not None else BuildingSection()
    base = cfg.decay_hours.get(status, 0.0)
    if base == 0.0:
        return 0.0
    return base * cfg.type_multipliers.get(BuildingType(building_type).name, 1.0)


def update_building_infections(
    buildings: Mapping[str, BuildingType],
    records: Iterable[NPCRecord],
    previous: Mapping[str, BuildingInfectionState],
    sim_time: float,
    cfg: Optional[BuildingSection] = None,
) -> Dict[str, BuildingInfectionState]:
    """Recompute every building marker from current occupants.

    Args:
        buildings: Building id → type, for buildings currently in the world.
        records: All NPC records.
        previous: Markers from the previous recompute.
        sim_time: Current time (hours).
        cfg: Building configuration.

    Returns:
        New map of building id → BuildingInfectionState.
    """
    check_sim_time(sim_time)

    interior_status: Dict[str, str] = {}
    for record in records:
        if record.location != 'interior' or record.home_building_id is None:
            continue
        existing = interior_status.get(record.home_building_id, 'clear')
        interior_status[record.home_building_id] = pick_status(
            existing, STATUS_FOR_STATE[record.state],
        )

    next_map: Dict[str, BuildingInfectionState] = {}
    for building_id, building_type in buildings.items():
        status = interior_status.get(building_id, 'clear')
        prev = previous.get(building_id)

        if status == 'clear' and prev is not None and prev.status != 'clear':
            decay = decay_hours_for_status(prev.status, building_type, cfg)
            if sim_time - prev.last_seen_sim_time < decay:
                next_map[building_id] = prev
                continue

        if status == 'clear':
            last_seen = prev.last_seen_sim_time if prev is not None else sim_time
        else:
            last_seen = sim_time
        next_map[building_id] = BuildingInfectionState(status, float(last_seen))

    # Vanished buildings keep their markers
    for building_id, state in previous.items():
        if building_id not in buildings and state.status != 'clear':
            next_map[building_id] = state

    return next_map


class BuildingInfectionAggregator:
    """Owns the building marker map between ticks.

    Use ``update()`` for a full recompute from all NPCs, or
    ``report_occupant()`` to fold in a single occupant as it changes state.
    """

    def __init__(
        self,
        building_types: Optional[Mapping[str, BuildingType]] = None,
        cfg: Optional[BuildingSection] = None,
    ):
        self.building_types: Dict[str, BuildingType] = dict(building_types or {})
        self.cfg = cfg if cfg is not None else BuildingSection()
        self.states: Dict[str, BuildingInfectionState] = {}

    def _type_of(self, building_id: str) -> BuildingType:
        return self.building_types.get(building_id, BuildingType.RESIDENTIAL)

    def _within_decay(self, state: BuildingInfectionState, building_id: str, sim_time: float) -> bool:
        decay = decay_hours_for_status(state.status, self._type_of(building_id), self.cfg)
        return sim_time - state.last_seen_sim_time < decay

    def report_occupant(
        self,
        building_id: str,
        agent_state: AgentState,
        sim_time: float,
    ) -> BuildingInfectionState:
        """Fold one occupant's state into its building's marker.

        A more severe status replaces the marker. A milder one only replaces
        it after the current marker's decay window has run out.
        """
        check_sim_time(sim_time)
        if not building_id:
            raise ValueError("building_id is required")

        status = STATUS_FOR_STATE[AgentState(agent_state)]
        prev = self.states.get(building_id)

        if prev is None:
            new = BuildingInfectionState(status, float(sim_time))
        elif prev.status != 'clear' and self._within_decay(prev, building_id, sim_time):
            if STATUS_RANK[status] >= STATUS_RANK[prev.status]:
                new = BuildingInfectionState(status, float(sim_time))
            else:
                new = prev
        elif status == 'clear':
            new = BuildingInfectionState('clear', prev.last_seen_sim_time)
        else:
            new = BuildingInfectionState(status, float(sim_time))

        self.states[building_id] = new
        return new

    def update(self, records: Iterable[NPCRecord], sim_time: float) -> Dict[str, BuildingInfectionState]:
        """Full recompute over all known buildings."""
        before = self.states
        self.states = update_building_infections(
            self.building_types, records, before, sim_time, self.cfg,
        )
        for building_id, state in self.states.items():
            old = before.get(building_id)
            if old is None or old.status != state.status:
                logger.debug(f"Building {building_id}: {old.status if old else 'new'} -> {state.status}")
        return self.states

    def status_of(self, building_id: str, sim_time: float) -> str:
        """Marker status as of ``sim_time``, with any expired marker read as clear."""
        state = self.states.get(building_id)
        if state is None:
            return 'clear'
        if state.status != 'clear' and not self._within_decay(state, building_id, sim_time):
            return 'clear'
        return state.status
