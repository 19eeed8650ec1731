"""Tests for plague_sim.labels — display tags."""

import pytest

from plague_sim.labels import (
    bubo_site_name,
    get_health_status_label,
    get_plague_type_label,
    get_symptom_labels,
)
from plague_sim.types import AgentState, BuboLocation, PlagueStatus, PlagueType


class TestSymptomLabels:
    def test_none_when_mild(self):
        assert get_symptom_labels(PlagueStatus(fever=40.0, buboes=30.0)) == []

    def test_priority_order(self):
        p = PlagueStatus(fever=60.0, buboes=50.0, bubo_location=BuboLocation.ARMPIT)
        assert get_symptom_labels(p) == ['Fever', 'Armpit Bubo']

    def test_burst_bubo(self):
        p = PlagueStatus(buboes=60.0, bubo_location=BuboLocation.GROIN, bubo_burst=True)
        assert get_symptom_labels(p) == ['Groin Bubo (burst)']

    def test_at_most_three(self):
        p = PlagueStatus(
            fever=90.0, weakness=90.0, coughing_blood=90.0,
            skin_bleeding=90.0, delirium=90.0, gangrene=90.0,
        )
        assert get_symptom_labels(p) == ['Fever', 'Weakness', 'Bloody Cough']

    def test_late_symptoms(self):
        p = PlagueStatus(skin_bleeding=36.0, delirium=41.0, gangrene=41.0)
        assert get_symptom_labels(p) == ['Bleeding', 'Delirium', 'Gangrene']


class TestHealthStatusLabel:
    @pytest.mark.parametrize('state, label', [
        (AgentState.HEALTHY, 'SOUND'),
        (AgentState.INCUBATING, 'FAIR'),
        (AgentState.DECEASED, 'DECEASED'),
    ])
    def test_by_state(self, state, label):
        assert get_health_status_label(PlagueStatus(state=state, overall_severity=99.0)) == label

    @pytest.mark.parametrize('severity, label', [
        (0.0, 'INFECTED'),
        (39.9, 'INFECTED'),
        (40.0, 'SEVERE'),
        (69.9, 'SEVERE'),
        (70.0, 'CRITICAL'),
        (100.0, 'CRITICAL'),
    ])
    def test_infected_bands(self, severity, label):
        p = PlagueStatus(state=AgentState.INFECTED, overall_severity=severity)
        assert get_health_status_label(p) == label


class TestNames:
    def test_plague_type(self):
        assert get_plague_type_label(PlagueType.SEPTICEMIC) == 'SEPTICEMIC'
        assert get_plague_type_label(PlagueType.NONE) == 'NONE'

    def test_bubo_site(self):
        assert bubo_site_name(BuboLocation.ARMPIT) == 'Armpit'
        assert bubo_site_name(BuboLocation.NONE) == 'Neck'
