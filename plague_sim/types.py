"""Core data types for plague-sim.

This module is the SINGLE SOURCE OF TRUTH for:
  - AgentState, PlagueType, BuboLocation, BuildingType enumerations
  - The exposure and treatment kind vocabularies
  - Per-agent records: PlagueStatus (player), NPCPlagueMeta + NPCRecord (NPCs)
  - BuildingInfectionState (per-building aggregate)

Every record round-trips through ``to_dict()`` / ``from_dict()`` using only
JSON-safe scalars (enums are stored as ints), so save games can persist them
without knowing anything about the engine.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import IntEnum
from typing import Any, Dict, Optional


# ═══════════════════════════════════════════════════════════════════════
# ENUMERATIONS
# ═══════════════════════════════════════════════════════════════════════

class AgentState(IntEnum):
    """Coarse lifecycle shared by the player and NPCs.

    HEALTHY → INCUBATING → INFECTED → DECEASED, one direction only.
    There is no RECOVERED state: recovery shows up as falling symptom
    severity while the agent stays INFECTED.
    """
    HEALTHY    = 0
    INCUBATING = 1   # Exposed, no symptoms yet
    INFECTED   = 2   # Symptomatic
    DECEASED   = 3   # Terminal


class PlagueType(IntEnum):
    """Clinical form of Y. pestis infection."""
    NONE       = 0
    BUBONIC    = 1   # Flea bite → lymph node swelling
    PNEUMONIC  = 2   # Inhaled droplets → lungs
    SEPTICEMIC = 3   # Bloodstream


class BuboLocation(IntEnum):
    """Lymph node that swells. Bubonic only, fixed at infection."""
    NONE   = 0
    GROIN  = 1
    ARMPIT = 2
    NECK   = 3


class BuildingType(IntEnum):
    """Building categories that change how long infection markers linger."""
    RESIDENTIAL = 0
    COMMERCIAL  = 1
    RELIGIOUS   = 2
    CIVIC       = 3
    SCHOOL      = 4
    MEDICAL     = 5
    HOSPITALITY = 6


EXPOSURE_KINDS = ('flea', 'airborne', 'contact')
TREATMENT_KINDS = ('lanceBubo', 'rest', 'herbs', 'bloodletting', 'prayer')

# Building statuses in increasing order of severity
BUILDING_STATUSES = ('clear', 'incubating', 'infected', 'deceased')

NPC_LOCATIONS = ('outdoor', 'interior')

SYMPTOM_FIELDS = (
    'fever',
    'weakness',
    'buboes',
    'coughing_blood',
    'skin_bleeding',
    'delirium',
    'gangrene',
)


# ═══════════════════════════════════════════════════════════════════════
# PLAYER RECORD
# ═══════════════════════════════════════════════════════════════════════

@dataclass
class PlagueStatus:
    """Fine-grained plague record for the player.

    Symptom fields are scalars in [0, 100]. ``overall_severity`` is the max
    of the symptom fields and is recomputed on every progression tick.
    ``seed`` is the exposure seed; progression rolls derive from it and
    ``roll_count`` so a persisted record replays identically while each
    tick still gets a fresh draw.
    """
    plague_type: PlagueType = PlagueType.NONE
    state: AgentState = AgentState.HEALTHY
    exposure_time: Optional[float] = None
    onset_time: Optional[float] = None
    days_infected: int = 0
    bubo_location: BuboLocation = BuboLocation.NONE
    bubo_burst: bool = False
    fever: float = 0.0
    weakness: float = 0.0
    buboes: float = 0.0
    coughing_blood: float = 0.0
    skin_bleeding: float = 0.0
    delirium: float = 0.0
    gangrene: float = 0.0
    overall_severity: float = 0.0
    survival_chance: float = 100.0
    seed: Optional[int] = None
    roll_count: int = 0              # Seeded progression rolls drawn so far

    def symptoms(self) -> Dict[str, float]:
        """Symptom fields by name, in priority order."""
        return {name: getattr(self, name) for name in SYMPTOM_FIELDS}

    def max_symptom(self) -> float:
        return max(self.symptoms().values())

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d['plague_type'] = int(self.plague_type)
        d['state'] = int(self.state)
        d['bubo_location'] = int(self.bubo_location)
        return d

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'PlagueStatus':
        d = dict(data)
        d['plague_type'] = PlagueType(d.get('plague_type', PlagueType.NONE))
        d['state'] = AgentState(d.get('state', AgentState.HEALTHY))
        d['bubo_location'] = BuboLocation(d.get('bubo_location', BuboLocation.NONE))
        return cls(**d)


def initialize_plague() -> PlagueStatus:
    """A healthy, never-exposed player record."""
    return PlagueStatus()


# ═══════════════════════════════════════════════════════════════════════
# NPC RECORDS
# ═══════════════════════════════════════════════════════════════════════

@dataclass
class NPCPlagueMeta:
    """Compact per-NPC infection timing, sampled once at infection.

    Times are in simulated hours. ``incubation_hours`` and ``death_hours``
    (onset → death) are frozen for the episode.
    """
    plague_type: PlagueType = PlagueType.NONE
    exposure_time: Optional[float] = None
    incubation_hours: Optional[float] = None
    death_hours: Optional[float] = None
    onset_time: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d['plague_type'] = int(self.plague_type)
        return d

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'NPCPlagueMeta':
        d = dict(data)
        d['plague_type'] = PlagueType(d.get('plague_type', PlagueType.NONE))
        return cls(**d)


@dataclass
class NPCRecord:
    """One NPC as seen by the epidemic engine.

    ``id`` is the stable identity used for seeding. ``home_building_id`` is
    None for street NPCs.
    """
    id: str
    state: AgentState = AgentState.HEALTHY
    state_start_time: float = 0.0
    plague_meta: NPCPlagueMeta = field(default_factory=NPCPlagueMeta)
    home_building_id: Optional[str] = None
    location: str = 'outdoor'

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'state': int(self.state),
            'state_start_time': self.state_start_time,
            'plague_meta': self.plague_meta.to_dict(),
            'home_building_id': self.home_building_id,
            'location': self.location,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'NPCRecord':
        return cls(
            id=data['id'],
            state=AgentState(data.get('state', AgentState.HEALTHY)),
            state_start_time=data.get('state_start_time', 0.0),
            plague_meta=NPCPlagueMeta.from_dict(data.get('plague_meta') or {}),
            home_building_id=data.get('home_building_id'),
            location=data.get('location', 'outdoor'),
        )


# ═══════════════════════════════════════════════════════════════════════
# BUILDING AGGREGATE
# ═══════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class BuildingInfectionState:
    """Derived per-building status. ``last_seen_sim_time`` is in hours."""
    status: str = 'clear'
    last_seen_sim_time: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'BuildingInfectionState':
        return cls(**data)
