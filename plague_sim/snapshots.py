"""Epidemic curve recording.

Records, at each model step, how many NPCs are in each AgentState plus the
number of buildings showing each marker status. Designed for plotting the
outbreak curve after a run and for regression-checking replays.

Usage:
    recorder = StateCountRecorder(enabled=True)

    # In simulation loop:
    recorder.capture(sim_hour, npc_records, building_states)

    # After simulation:
    recorder.save("results/epidemic_curve.npz")
"""

from __future__ import annotations

from pathlib import Path
from typing import Iterable, List, Mapping

import numpy as np

from plague_sim.types import BUILDING_STATUSES, AgentState, BuildingInfectionState, NPCRecord

N_STATES = len(AgentState)


class StateCountRecorder:
    """Per-step AgentState and building-status counts.

    When enabled=False, capture() is a no-op.
    """

    def __init__(self, enabled: bool = True):
        self.enabled = enabled
        self._times: List[float] = []
        self._agent_counts: List[np.ndarray] = []
        self._building_counts: List[np.ndarray] = []

    def capture(
        self,
        sim_time: float,
        records: Iterable[NPCRecord],
        buildings: Mapping[str, BuildingInfectionState],
    ) -> None:
        """Record counts for one step."""
        if not self.enabled:
            return
        states = np.fromiter((int(r.state) for r in records), dtype=np.int8)
        agent_counts = np.bincount(states, minlength=N_STATES).astype(np.int32)

        building_counts = np.zeros(len(BUILDING_STATUSES), dtype=np.int32)
        for state in buildings.values():
            building_counts[BUILDING_STATUSES.index(state.status)] += 1

        self._times.append(float(sim_time))
        self._agent_counts.append(agent_counts)
        self._building_counts.append(building_counts)

    def __len__(self) -> int:
        return len(self._times)

    @property
    def times(self) -> np.ndarray:
        return np.asarray(self._times, dtype=np.float64)

    @property
    def agent_counts(self) -> np.ndarray:
        """Shape (n_steps, 4), columns indexed by AgentState."""
        if not self._agent_counts:
            return np.zeros((0, N_STATES), dtype=np.int32)
        return np.vstack(self._agent_counts)

    @property
    def building_counts(self) -> np.ndarray:
        """Shape (n_steps, 4), columns in BUILDING_STATUSES order."""
        if not self._building_counts:
            return np.zeros((0, len(BUILDING_STATUSES)), dtype=np.int32)
        return np.vstack(self._building_counts)

    def deaths(self) -> np.ndarray:
        """Cumulative DECEASED count per step."""
        return self.agent_counts[:, AgentState.DECEASED]

    def save(self, path: str) -> None:
        """Save all counts to a compressed npz file."""
        if not self._times:
            return
        Path(path).parent.mkdir(parents=True, exist_ok=True)
        np.savez_compressed(
            path,
            times=self.times,
            agent_counts=self.agent_counts,
            building_counts=self.building_counts,
        )

    @classmethod
    def load(cls, path: str) -> 'StateCountRecorder':
        """Load counts from npz file."""
        data = np.load(path)
        recorder = cls(enabled=False)  # Don't capture, just hold data
        recorder._times = [float(t) for t in data['times']]
        recorder._agent_counts = list(data['agent_counts'])
        recorder._building_counts = list(data['building_counts'])
        return recorder
