"""Epidemic model — one tick loop over the player, NPCs and buildings.

Hourly loop (``PlagueModel.step``):
  1. NPC progression: INCUBATING → INFECTED → DECEASED on frozen timings
  2. Household exposure: symptomatic occupants put healthy cohabitants at risk
  3. Player progression on the player clock (seconds)
  4. Building markers recomputed from occupants, with decay
  5. Outbreak curve recorded

The model clock is in simulated HOURS. The player machine runs on its own
clock, ``hours × game_day_length / hours_per_day`` seconds, so one simulated
day is the same length for both.

All randomness the model itself needs (outbreak seeding, player exposure
seeds) comes from one generator derived from ``simulation.seed``; its state
is saved with the rest of the model.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

import numpy as np
from loguru import logger

from plague_sim.buildings import BuildingInfectionAggregator
from plague_sim.config import SimulationConfig, default_config
from plague_sim.exposure import expose_to_plague
from plague_sim.household import apply_household_exposure, household_exposure_hours
from plague_sim.monitor import PlagueEvent, PlagueMonitor
from plague_sim.npc import (
    advance_npc_health,
    seed_npc_infected_near_death,
    seed_npc_infection,
)
from plague_sim.progression import progress_plague
from plague_sim.rng import (
    STREAM_OUTBREAK,
    check_sim_time,
    derive_rng,
    fresh_seed,
    restore_rng_state,
    rng_state_snapshot,
)
from plague_sim.snapshots import StateCountRecorder
from plague_sim.treatment import attempt_treatment
from plague_sim.types import (
    NPC_LOCATIONS,
    AgentState,
    BuildingInfectionState,
    BuildingType,
    NPCRecord,
    PlagueStatus,
)


@dataclass
class StepResult:
    """What changed during one model step."""
    sim_hour: float
    transitions: List[Tuple[str, AgentState]] = field(default_factory=list)
    household_infections: List[str] = field(default_factory=list)
    player_events: List[PlagueEvent] = field(default_factory=list)


class PlagueModel:
    """Owns every per-agent record and drives them one tick at a time.

    Records are exclusively owned by the model; call ``step`` from a single
    caller with non-decreasing time.
    """

    def __init__(
        self,
        config: Optional[SimulationConfig] = None,
        npcs: Iterable[NPCRecord] = (),
        buildings: Optional[Mapping[str, BuildingType]] = None,
        player: Optional[PlagueStatus] = None,
    ):
        self.config = config if config is not None else default_config()
        self.npcs: Dict[str, NPCRecord] = {}
        for record in npcs:
            self.add_npc(record)
        self.player = player if player is not None else PlagueStatus()
        self.aggregator = BuildingInfectionAggregator(buildings, self.config.buildings)
        self.recorder = StateCountRecorder(enabled=self.config.output.record_counts)
        self.monitor = PlagueMonitor(self.player)
        self.rng = derive_rng(self.config.simulation.seed, STREAM_OUTBREAK)
        self.sim_hour: Optional[float] = None
        self._pending_events: List[PlagueEvent] = []

    # ── Setup ────────────────────────────────────────────────────────

    def add_npc(self, record: NPCRecord) -> None:
        if not record.id:
            raise ValueError("NPC record needs an id")
        if record.id in self.npcs:
            raise ValueError(f"Duplicate NPC id '{record.id}'")
        if record.location not in NPC_LOCATIONS:
            raise ValueError(
                f"NPC {record.id} has unknown location '{record.location}', "
                f"expected one of {NPC_LOCATIONS}"
            )
        self.npcs[record.id] = record

    def _building_offsets(self) -> Dict[str, int]:
        return {bid: i for i, bid in enumerate(sorted(self.aggregator.building_types))}

    def seed_outbreak(self, sim_hour: float) -> List[str]:
        """Seed an initial outbreak.

        One building resident starts near death and indoors, so at least one
        building is marked from the first tick. Up to
        ``outbreak.max_additional_near_death`` more near-death cases follow,
        then ``min_incubating``..``max_incubating`` incubating cases.
        Only HEALTHY NPCs are picked, so seeding again later never touches
        a sick or dead record.

        Returns:
            Ids of the seeded NPCs, in seeding order.
        """
        check_sim_time(sim_hour)
        ob = self.config.outbreak
        npc_cfg = self.config.npc

        healthy = [r for r in self.npcs.values() if r.state == AgentState.HEALTHY]
        residents = [r.id for r in healthy if r.home_building_id is not None]
        street = [r.id for r in healthy if r.home_building_id is None]
        residents = list(self.rng.permutation(residents)) if residents else []

        seeded: List[str] = []
        if residents:
            first = self.npcs[str(residents[0])]
            seed_npc_infected_near_death(first, sim_hour, cfg=npc_cfg)
            first.location = 'interior'
            seeded.append(first.id)

        pool = [str(rid) for rid in residents[1:]] + street
        pool = [str(rid) for rid in self.rng.permutation(pool)] if pool else []

        n_near_death = min(len(pool), int(self.rng.integers(0, ob.max_additional_near_death + 1)))
        for rid in pool[:n_near_death]:
            seed_npc_infected_near_death(self.npcs[rid], sim_hour, cfg=npc_cfg)
            seeded.append(rid)

        remaining = pool[n_near_death:]
        n_incubating = min(
            len(remaining),
            int(self.rng.integers(ob.min_incubating, ob.max_incubating + 1)),
        )
        for rid in remaining[:n_incubating]:
            seed_npc_infection(self.npcs[rid], sim_hour, cfg=npc_cfg)
            seeded.append(rid)

        logger.info(
            f"Outbreak seeded at hour {sim_hour}: "
            f"{1 + n_near_death if residents else n_near_death} near death, "
            f"{n_incubating} incubating"
        )
        return seeded

    # ── Player ───────────────────────────────────────────────────────

    def player_time(self, sim_hour: float) -> float:
        """Model hours → player clock seconds."""
        sim = self.config.simulation
        return sim_hour * sim.game_day_length / sim.hours_per_day

    def expose_player(
        self,
        kind: str,
        intensity: float,
        seed: Optional[int] = None,
    ) -> PlagueStatus:
        """Expose the player at the current model time.

        Without an explicit seed, one is drawn from the model generator so a
        saved model replays the same exposures. Resulting events are
        reported with the next ``step``.
        """
        now = self.sim_hour if self.sim_hour is not None else 0.0
        if seed is None:
            seed = fresh_seed(self.rng)
        self.player = expose_to_plague(
            self.player, kind, intensity, self.player_time(now),
            seed=seed, cfg=self.config.exposure,
        )
        self._pending_events.extend(self.monitor.observe(self.player))
        return self.player

    def treat_player(self, kind: str) -> PlagueStatus:
        self.player = attempt_treatment(self.player, kind)
        self._pending_events.extend(self.monitor.observe(self.player))
        return self.player

    # ── Tick ─────────────────────────────────────────────────────────

    def step(self, sim_hour: float) -> StepResult:
        """Advance everything to ``sim_hour``.

        Raises:
            ValueError: If sim_hour is invalid or earlier than the last step.
        """
        check_sim_time(sim_hour)
        if self.sim_hour is not None and sim_hour < self.sim_hour:
            raise ValueError(
                f"sim_hour must be non-decreasing: {sim_hour} < {self.sim_hour}"
            )
        dt = 0.0 if self.sim_hour is None else sim_hour - self.sim_hour
        self.sim_hour = float(sim_hour)
        result = StepResult(sim_hour=self.sim_hour)
        records = list(self.npcs.values())

        for record in records:
            if advance_npc_health(record, sim_hour, self.config.npc):
                result.transitions.append((record.id, record.state))

        if dt > 0:
            exposure = household_exposure_hours(records, dt)
            offsets = self._building_offsets()
            for record in records:
                hours = exposure.get(record.home_building_id or '', 0.0)
                if hours <= 0 or record.location != 'interior':
                    continue
                if apply_household_exposure(
                    record, sim_hour, hours,
                    seed_offset=offsets.get(record.home_building_id, 0),
                    cfg=self.config.npc,
                ):
                    result.household_infections.append(record.id)

        self.player = progress_plague(
            self.player, self.player_time(sim_hour), self.config.simulation,
        )
        result.player_events = self._pending_events + self.monitor.observe(self.player)
        self._pending_events = []

        self.aggregator.update(records, sim_hour)
        self.recorder.capture(sim_hour, records, self.aggregator.states)

        if result.household_infections:
            logger.debug(
                f"Hour {sim_hour}: {len(result.household_infections)} household infections"
            )
        return result

    def counts(self) -> Dict[AgentState, int]:
        counts = {state: 0 for state in AgentState}
        for record in self.npcs.values():
            counts[record.state] += 1
        return counts

    # ── Persistence ──────────────────────────────────────────────────

    def to_dict(self) -> Dict[str, Any]:
        """JSON-safe snapshot of the whole model state (config excluded)."""
        return {
            'sim_hour': self.sim_hour,
            'player': self.player.to_dict(),
            'npcs': [r.to_dict() for r in self.npcs.values()],
            'building_types': {bid: int(t) for bid, t in self.aggregator.building_types.items()},
            'buildings': {bid: s.to_dict() for bid, s in self.aggregator.states.items()},
            'rng_state': rng_state_snapshot({'outbreak': self.rng}),
        }

    @classmethod
    def from_dict(
        cls,
        data: Mapping[str, Any],
        config: Optional[SimulationConfig] = None,
    ) -> 'PlagueModel':
        model = cls(
            config=config,
            npcs=[NPCRecord.from_dict(r) for r in data.get('npcs', [])],
            buildings={bid: BuildingType(t) for bid, t in data.get('building_types', {}).items()},
            player=PlagueStatus.from_dict(data['player']) if 'player' in data else None,
        )
        model.aggregator.states = {
            bid: BuildingInfectionState.from_dict(s)
            for bid, s in data.get('buildings', {}).items()
        }
        model.sim_hour = data.get('sim_hour')
        if 'rng_state' in data:
            restore_rng_state({'outbreak': model.rng}, data['rng_state'])
        return model


# ═══════════════════════════════════════════════════════════════════════
# BATCH RUN
# ═══════════════════════════════════════════════════════════════════════

@dataclass
class OutbreakResult:
    """Outcome of a fixed-length outbreak run."""
    hours: np.ndarray
    agent_counts: np.ndarray       # (n_steps, 4) by AgentState
    building_counts: np.ndarray    # (n_steps, 4) by building status
    total_deaths: int = 0
    household_infections: int = 0
    seeded: List[str] = field(default_factory=list)


def run_outbreak(
    npcs: Iterable[NPCRecord],
    buildings: Mapping[str, BuildingType],
    n_hours: int,
    config: Optional[SimulationConfig] = None,
    dt_hours: float = 1.0,
) -> OutbreakResult:
    """Seed an outbreak at hour 0 and step it hourly for ``n_hours``.

    Args:
        npcs: NPC records (owned by the run afterwards).
        buildings: Building id → type.
        n_hours: Number of steps.
        config: Engine configuration.
        dt_hours: Step length (hours).

    Returns:
        OutbreakResult with per-step counts.
    """
    if dt_hours <= 0:
        raise ValueError(f"dt_hours must be positive, got {dt_hours}")
    model = PlagueModel(config=config, npcs=npcs, buildings=buildings)
    model.recorder.enabled = True
    seeded = model.seed_outbreak(0.0)

    n_household = 0
    for i in range(n_hours + 1):
        result = model.step(i * dt_hours)
        n_household += len(result.household_infections)

    counts = model.counts()
    return OutbreakResult(
        hours=model.recorder.times,
        agent_counts=model.recorder.agent_counts,
        building_counts=model.recorder.building_counts,
        total_deaths=counts[AgentState.DECEASED],
        household_infections=n_household,
        seeded=seeded,
    )
