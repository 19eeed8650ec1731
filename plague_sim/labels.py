"""Display helpers for plague records."""

from __future__ import annotations

from typing import List

from plague_sim.types import AgentState, BuboLocation, PlagueStatus, PlagueType

MAX_SYMPTOM_LABELS = 3

SEVERE_THRESHOLD = 40.0
CRITICAL_THRESHOLD = 70.0

_BUBO_SITE_NAMES = {
    BuboLocation.GROIN: 'Groin',
    BuboLocation.ARMPIT: 'Armpit',
    BuboLocation.NECK: 'Neck',
}


def bubo_site_name(location: BuboLocation) -> str:
    return _BUBO_SITE_NAMES.get(location, 'Neck')


def get_symptom_labels(status: PlagueStatus) -> List[str]:
    """Up to three symptom tags, in fixed priority order."""
    labels: List[str] = []
    if status.fever > 40:
        labels.append('Fever')
    if status.buboes > 30:
        burst = ' (burst)' if status.bubo_burst else ''
        labels.append(f"{bubo_site_name(status.bubo_location)} Bubo{burst}")
    if status.weakness > 40:
        labels.append('Weakness')
    if status.coughing_blood > 30:
        labels.append('Bloody Cough')
    if status.skin_bleeding > 35:
        labels.append('Bleeding')
    if status.delirium > 40:
        labels.append('Delirium')
    if status.gangrene > 40:
        labels.append('Gangrene')
    return labels[:MAX_SYMPTOM_LABELS]


def get_health_status_label(status: PlagueStatus) -> str:
    """SOUND / FAIR / DECEASED, or INFECTED / SEVERE / CRITICAL by severity."""
    if status.state == AgentState.HEALTHY:
        return 'SOUND'
    if status.state == AgentState.INCUBATING:
        return 'FAIR'
    if status.state == AgentState.DECEASED:
        return 'DECEASED'
    if status.overall_severity < SEVERE_THRESHOLD:
        return 'INFECTED'
    if status.overall_severity < CRITICAL_THRESHOLD:
        return 'SEVERE'
    return 'CRITICAL'


def get_plague_type_label(plague_type: PlagueType) -> str:
    if plague_type in (PlagueType.BUBONIC, PlagueType.PNEUMONIC, PlagueType.SEPTICEMIC):
        return plague_type.name
    return 'NONE'
