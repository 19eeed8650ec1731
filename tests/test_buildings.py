"""Tests for plague_sim.buildings — per-building infection markers."""

import pytest

from plague_sim.buildings import (
    BuildingInfectionAggregator,
    decay_hours_for_status,
    pick_status,
    update_building_infections,
)
from plague_sim.types import AgentState, BuildingInfectionState, BuildingType, NPCRecord


def occupant(i, state, building='b1', location='interior'):
    return NPCRecord(id=f'o{i}', state=state, home_building_id=building, location=location)


class TestDecay:
    @pytest.mark.parametrize('status, building_type, hours', [
        ('incubating', BuildingType.RESIDENTIAL, 6.0),
        ('infected', BuildingType.RESIDENTIAL, 8.0),
        ('deceased', BuildingType.RESIDENTIAL, 12.0),
        ('incubating', BuildingType.RELIGIOUS, 12.0),
        ('deceased', BuildingType.MEDICAL, 24.0),
        ('infected', BuildingType.COMMERCIAL, 12.0),
        ('deceased', BuildingType.HOSPITALITY, 18.0),
        ('clear', BuildingType.CIVIC, 0.0),
    ])
    def test_hours(self, status, building_type, hours):
        assert decay_hours_for_status(status, building_type) == pytest.approx(hours)

    def test_pick_status(self):
        assert pick_status('incubating', 'deceased') == 'deceased'
        assert pick_status('infected', 'clear') == 'infected'


class TestUpdateBuildingInfections:
    BUILDINGS = {'b1': BuildingType.RESIDENTIAL, 'b2': BuildingType.RELIGIOUS}

    def test_worst_occupant_wins(self):
        records = [
            occupant(0, AgentState.INCUBATING),
            occupant(1, AgentState.DECEASED),
            occupant(2, AgentState.HEALTHY),
        ]
        states = update_building_infections(self.BUILDINGS, records, {}, 5.0)
        assert states['b1'] == BuildingInfectionState('deceased', 5.0)
        assert states['b2'].status == 'clear'

    def test_outdoor_occupants_ignored(self):
        records = [occupant(0, AgentState.INFECTED, location='outdoor')]
        states = update_building_infections(self.BUILDINGS, records, {}, 5.0)
        assert states['b1'].status == 'clear'

    def test_marker_lingers_during_decay(self):
        sick = update_building_infections(self.BUILDINGS, [occupant(0, AgentState.INFECTED)], {}, 0.0)
        later = update_building_infections(self.BUILDINGS, [], sick, 7.0)
        assert later['b1'] == BuildingInfectionState('infected', 0.0)

    def test_marker_clears_after_decay(self):
        sick = update_building_infections(self.BUILDINGS, [occupant(0, AgentState.INFECTED)], {}, 0.0)
        later = update_building_infections(self.BUILDINGS, [], sick, 8.0)
        assert later['b1'].status == 'clear'

    def test_public_building_lingers_longer(self):
        records = [occupant(0, AgentState.INFECTED, building='b2')]
        sick = update_building_infections(self.BUILDINGS, records, {}, 0.0)
        assert update_building_infections(self.BUILDINGS, [], sick, 15.0)['b2'].status == 'infected'
        assert update_building_infections(self.BUILDINGS, [], sick, 16.0)['b2'].status == 'clear'

    def test_vanished_buildings_keep_markers(self):
        previous = {
            'gone': BuildingInfectionState('deceased', 1.0),
            'gone_clear': BuildingInfectionState('clear', 1.0),
        }
        states = update_building_infections(self.BUILDINGS, [], previous, 100.0)
        assert states['gone'] == previous['gone']
        assert 'gone_clear' not in states

    def test_bad_time(self):
        with pytest.raises(ValueError):
            update_building_infections(self.BUILDINGS, [], {}, float('nan'))


class TestAggregator:
    def test_report_new_building(self):
        agg = BuildingInfectionAggregator()
        state = agg.report_occupant('b1', AgentState.INCUBATING, 2.0)
        assert state == BuildingInfectionState('incubating', 2.0)

    def test_more_severe_replaces(self):
        agg = BuildingInfectionAggregator()
        agg.report_occupant('b1', AgentState.INCUBATING, 2.0)
        assert agg.report_occupant('b1', AgentState.DECEASED, 3.0).status == 'deceased'

    def test_milder_ignored_within_decay(self):
        agg = BuildingInfectionAggregator()
        agg.report_occupant('b1', AgentState.DECEASED, 0.0)
        assert agg.report_occupant('b1', AgentState.HEALTHY, 11.0).status == 'deceased'
        assert agg.report_occupant('b1', AgentState.INCUBATING, 11.5).status == 'deceased'

    def test_milder_replaces_after_decay(self):
        agg = BuildingInfectionAggregator()
        agg.report_occupant('b1', AgentState.DECEASED, 0.0)
        assert agg.report_occupant('b1', AgentState.INCUBATING, 12.0) == \
            BuildingInfectionState('incubating', 12.0)

    def test_clear_keeps_last_seen(self):
        agg = BuildingInfectionAggregator()
        agg.report_occupant('b1', AgentState.INFECTED, 1.0)
        assert agg.report_occupant('b1', AgentState.HEALTHY, 20.0) == \
            BuildingInfectionState('clear', 1.0)

    def test_empty_building_id(self):
        with pytest.raises(ValueError):
            BuildingInfectionAggregator().report_occupant('', AgentState.INFECTED, 1.0)

    def test_status_of_expires(self):
        agg = BuildingInfectionAggregator({'b1': BuildingType.SCHOOL})
        agg.update([occupant(0, AgentState.INCUBATING)], 0.0)
        assert agg.status_of('b1', 11.0) == 'incubating'
        assert agg.status_of('b1', 12.0) == 'clear'
        assert agg.status_of('unknown', 0.0) == 'clear'

    def test_update_covers_registered_buildings(self):
        agg = BuildingInfectionAggregator({'b1': BuildingType.RESIDENTIAL, 'b2': BuildingType.CIVIC})
        states = agg.update([occupant(0, AgentState.INFECTED)], 4.0)
        assert set(states) == {'b1', 'b2'}
        assert agg.states is states
