"""Player plague monitor — turns successive records into narrative events.

Feed every new player record to ``PlagueMonitor.observe``. It reports:
  - 'infected': HEALTHY → INCUBATING (the player was just exposed)
  - 'death':    any state → DECEASED, with a cause and an epitaph
  - 'symptom':  the first symptom (in priority order) that rose past the
                notice threshold since the previous observation
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional

from plague_sim.labels import bubo_site_name, get_plague_type_label
from plague_sim.types import AgentState, PlagueStatus

SYMPTOM_NOTICE_THRESHOLD = 40.0

DEATH_REASON = 'Claimed by the Pestilence'

# Priority order; first crossing wins
_SYMPTOM_NOTICES = (
    ('fever', 'A burning fever consumes you...'),
    ('buboes', 'Painful swellings appear in your {site}...'),
    ('coughing_blood', 'You begin coughing blood...'),
    ('skin_bleeding', 'Dark patches of bleeding appear beneath your skin...'),
    ('delirium', 'Your mind grows clouded with fever dreams...'),
    ('gangrene', 'Your extremities begin to blacken...'),
)


@dataclass(frozen=True)
class PlagueEvent:
    kind: str       # 'infected' | 'symptom' | 'death'
    message: str
    description: str = ''


def death_description(status: PlagueStatus) -> str:
    form = get_plague_type_label(status.plague_type).lower()
    return (
        f"After {status.days_infected} days of suffering, the {form} plague has "
        f"claimed your life. Your body joins the countless others in the streets "
        f"of Damascus, another victim of the Great Mortality."
    )


class PlagueMonitor:
    """Tracks the last observed player record and emits transition events."""

    def __init__(self, initial: Optional[PlagueStatus] = None):
        self._state = initial.state if initial is not None else AgentState.HEALTHY
        self._symptoms: Dict[str, float] = (
            {name: getattr(initial, name) for name, _ in _SYMPTOM_NOTICES}
            if initial is not None else {name: 0.0 for name, _ in _SYMPTOM_NOTICES}
        )

    def observe(self, status: PlagueStatus) -> List[PlagueEvent]:
        events: List[PlagueEvent] = []
        prev_state = self._state

        if prev_state != status.state:
            if prev_state == AgentState.HEALTHY and status.state == AgentState.INCUBATING:
                events.append(PlagueEvent('infected', 'You have been exposed to the plague.'))
            if status.state == AgentState.DECEASED:
                events.append(PlagueEvent('death', DEATH_REASON, death_description(status)))
            self._state = status.state

        if status.state == AgentState.INFECTED:
            for name, template in _SYMPTOM_NOTICES:
                value = getattr(status, name)
                if value >= SYMPTOM_NOTICE_THRESHOLD > self._symptoms[name]:
                    site = bubo_site_name(status.bubo_location).lower()
                    events.append(PlagueEvent('symptom', template.format(site=site)))
                    break
            self._symptoms = {name: getattr(status, name) for name, _ in _SYMPTOM_NOTICES}

        return events
