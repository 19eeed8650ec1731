"""Disease profile table — historical Y. pestis timing and mortality.

One row per clinical form, in simulated DAYS. Both the player machine
(day-banded symptoms) and the NPC machine (compressed hours) read the same
rows through ``DiseaseCurve``, so the two populations always face the same
disease at different time resolutions.

Sources for the curves are period accounts of the 1348 Damascus outbreak:
bubonic death typically in the second week, pneumonic within days,
septicemic within two to three days.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from plague_sim.types import BuboLocation, PlagueType


# ═══════════════════════════════════════════════════════════════════════
# PROFILE TABLE
# ═══════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class DiseaseProfile:
    """Timing (days) and mortality for one plague form."""
    incubation_days: Tuple[float, float]
    symptoms_onset_day: float
    death_day: Tuple[float, float]
    base_mortality: float
    lanced_mortality: Optional[float] = None   # Bubonic only
    bubo_critical_day: Optional[float] = None  # Bubonic only


PLAGUE_PROFILES: Dict[PlagueType, DiseaseProfile] = {
    PlagueType.BUBONIC: DiseaseProfile(
        incubation_days=(2.0, 6.0),
        symptoms_onset_day=4.0,
        death_day=(8.0, 12.0),
        base_mortality=0.70,      # untreated
        lanced_mortality=0.40,    # bubo drained
        bubo_critical_day=7.0,
    ),
    PlagueType.PNEUMONIC: DiseaseProfile(
        incubation_days=(1.0, 3.0),
        symptoms_onset_day=2.0,
        death_day=(3.0, 5.0),
        base_mortality=0.95,
    ),
    PlagueType.SEPTICEMIC: DiseaseProfile(
        incubation_days=(1.0, 2.0),
        symptoms_onset_day=1.5,   # very rapid onset
        death_day=(2.0, 3.0),
        base_mortality=0.98,
    ),
}

# Subtype odds for non-airborne exposure (cumulative thresholds)
SUBTYPE_WEIGHTS = (
    (PlagueType.BUBONIC, 0.80),
    (PlagueType.PNEUMONIC, 0.15),
    (PlagueType.SEPTICEMIC, 0.05),
)

BUBO_WEIGHTS = (
    (BuboLocation.GROIN, 0.60),
    (BuboLocation.ARMPIT, 0.30),
    (BuboLocation.NECK, 0.10),
)

# Survival chance (%) right after exposure
INITIAL_SURVIVAL = {
    PlagueType.BUBONIC: 40.0,
    PlagueType.PNEUMONIC: 5.0,
    PlagueType.SEPTICEMIC: 2.0,
}

# Symptoms seeded at onset
ONSET_SYMPTOMS: Dict[PlagueType, Dict[str, float]] = {
    PlagueType.BUBONIC: {'fever': 60.0, 'weakness': 50.0, 'buboes': 30.0},
    PlagueType.PNEUMONIC: {'fever': 70.0, 'weakness': 60.0, 'coughing_blood': 40.0},
    PlagueType.SEPTICEMIC: {'fever': 80.0, 'skin_bleeding': 60.0, 'weakness': 70.0},
}


def get_profile(plague_type: PlagueType) -> DiseaseProfile:
    """Profile row for a subtype.

    Raises:
        KeyError: For PlagueType.NONE.
    """
    if plague_type not in PLAGUE_PROFILES:
        raise KeyError(f"No disease profile for {plague_type!r}")
    return PLAGUE_PROFILES[plague_type]


def _pick_weighted(weights, u: float):
    cumulative = 0.0
    for value, weight in weights:
        cumulative += weight
        if u < cumulative:
            return value
    return weights[-1][0]


def pick_plague_type(u: float) -> PlagueType:
    """Map a uniform draw to a subtype: BUBONIC 80% / PNEUMONIC 15% / SEPTICEMIC 5%."""
    return _pick_weighted(SUBTYPE_WEIGHTS, u)


def pick_bubo_location(u: float) -> BuboLocation:
    """Map a uniform draw to a bubo site: GROIN 60% / ARMPIT 30% / NECK 10%."""
    return _pick_weighted(BUBO_WEIGHTS, u)


# ═══════════════════════════════════════════════════════════════════════
# DISEASE CURVE
# ═══════════════════════════════════════════════════════════════════════

class DiseaseCurve:
    """One disease trajectory, rendered at either time resolution.

    The player machine renders the full curve day by day from
    ``onset_days()``. The NPC machine only samples the onset and death
    boundaries via ``incubation_days`` / ``death_days`` and compresses them
    to hours.
    """

    def __init__(self, plague_type: PlagueType):
        self.plague_type = plague_type
        self.profile = get_profile(plague_type)

    def onset_days(self) -> float:
        """Days from exposure to symptom onset for the player."""
        return self.profile.symptoms_onset_day

    def incubation_days(self, u: float) -> float:
        lo, hi = self.profile.incubation_days
        return lo + (hi - lo) * u

    def death_days(self, u: float) -> float:
        """Days from exposure to death."""
        lo, hi = self.profile.death_day
        return lo + (hi - lo) * u

    def mortality(self, lanced: bool = False) -> float:
        if lanced and self.profile.lanced_mortality is not None:
            return self.profile.lanced_mortality
        return self.profile.base_mortality

    def compressed_hours(
        self,
        u_incubation: float,
        u_death: float,
        time_scale: float,
        incubation_clamp: Tuple[float, float],
        death_clamp: Tuple[float, float],
        hours_per_day: int = 24,
    ) -> Tuple[float, float]:
        """Sample (incubation_hours, onset→death hours) for an NPC.

        Raw day samples are converted to hours, scaled by ``time_scale`` and
        clamped. Exposure→death is held at least ``death_clamp[0]`` hours past
        incubation, so onset→death is never shorter than that margin.
        """
        min_inc, max_inc = incubation_clamp
        min_death, max_death = death_clamp

        raw_incubation = self.incubation_days(u_incubation) * hours_per_day
        raw_death = self.death_days(u_death) * hours_per_day

        incubation = min(max_inc, max(min_inc, raw_incubation * time_scale))
        death_from_exposure = min(
            max_death,
            max(incubation + min_death, raw_death * time_scale),
        )
        death = max(min_death, death_from_exposure - incubation)
        return incubation, death
