"""Tests for plague_sim.exposure — exposure resolution, protection, proximity."""

import math

import pytest

from plague_sim.config import ExposureSection
from plague_sim.exposure import (
    NearbyHazards,
    calculate_plague_protection,
    expose_to_plague,
    exposure_chance,
    roll_proximity_exposure,
)
from plague_sim.profiles import INITIAL_SURVIVAL
from plague_sim.types import AgentState, BuboLocation, PlagueStatus, PlagueType


class FixedRng:
    """Stands in for a Generator whose every draw is the same value."""

    def __init__(self, value):
        self.value = value

    def random(self):
        return self.value


def _infections(kind, intensity, seeds):
    results = []
    for seed in seeds:
        p = expose_to_plague(PlagueStatus(), kind, intensity, 10.0, seed=seed)
        if p.state == AgentState.INCUBATING:
            results.append(p)
    return results


# ── expose_to_plague ─────────────────────────────────────────────────

class TestExposeToPlague:
    def test_airborne_always_pneumonic(self):
        infected = _infections('airborne', 1.0, range(300))
        assert len(infected) > 100
        assert all(p.plague_type == PlagueType.PNEUMONIC for p in infected)
        assert all(p.bubo_location == BuboLocation.NONE for p in infected)

    def test_flea_mostly_bubonic(self):
        infected = _infections('flea', 1.0, range(2000))
        # ~30% succeed
        assert 450 < len(infected) < 750
        bubonic = [p for p in infected if p.plague_type == PlagueType.BUBONIC]
        assert len(bubonic) / len(infected) > 0.65

    def test_bubo_location_only_for_bubonic(self):
        for p in _infections('contact', 1.0, range(1000)):
            if p.plague_type == PlagueType.BUBONIC:
                assert p.bubo_location != BuboLocation.NONE
            else:
                assert p.bubo_location == BuboLocation.NONE

    def test_infected_record_fields(self):
        p = _infections('airborne', 1.0, range(50))[0]
        assert p.exposure_time == 10.0
        assert p.onset_time is None
        assert p.survival_chance == INITIAL_SURVIVAL[PlagueType.PNEUMONIC]
        assert p.seed is not None
        assert p.overall_severity == 0.0

    def test_zero_intensity_never_infects(self):
        assert _infections('airborne', 0.0, range(200)) == []

    def test_same_seed_same_outcome(self):
        for seed in range(50):
            a = expose_to_plague(PlagueStatus(), 'flea', 0.7, 3.0, seed=seed)
            b = expose_to_plague(PlagueStatus(), 'flea', 0.7, 3.0, seed=seed)
            assert a == b

    def test_seed_stored(self):
        p = _infections('airborne', 1.0, range(50))[0]
        again = expose_to_plague(PlagueStatus(), 'airborne', 1.0, 10.0, seed=p.seed)
        assert again == p

    def test_unseeded_exposure_records_seed(self):
        for _ in range(50):
            p = expose_to_plague(PlagueStatus(), 'airborne', 1.0, 0.0)
            if p.state == AgentState.INCUBATING:
                assert 0 <= p.seed < 1_000_000
                return
        pytest.fail("no unseeded airborne exposure succeeded in 50 tries")

    @pytest.mark.parametrize('state', [
        AgentState.INCUBATING, AgentState.INFECTED, AgentState.DECEASED,
    ])
    def test_non_healthy_identity(self, state):
        status = PlagueStatus(state=state, plague_type=PlagueType.BUBONIC)
        for seed in range(20):
            assert expose_to_plague(status, 'airborne', 1.0, 5.0, seed=seed) is status

    def test_input_not_mutated(self):
        status = PlagueStatus()
        for seed in range(20):
            expose_to_plague(status, 'airborne', 1.0, 5.0, seed=seed)
        assert status == PlagueStatus()

    def test_unknown_kind(self):
        with pytest.raises(ValueError):
            expose_to_plague(PlagueStatus(), 'miasma', 0.5, 0.0, seed=1)

    @pytest.mark.parametrize('intensity', [-0.1, 1.5, math.nan])
    def test_bad_intensity(self, intensity):
        with pytest.raises(ValueError):
            expose_to_plague(PlagueStatus(), 'flea', intensity, 0.0, seed=1)

    def test_bad_time(self):
        with pytest.raises(ValueError):
            expose_to_plague(PlagueStatus(), 'flea', 0.5, -1.0, seed=1)

    def test_validation_precedes_state_check(self):
        """Bad arguments are rejected even for an already-infected record."""
        with pytest.raises(ValueError):
            expose_to_plague(PlagueStatus(state=AgentState.INFECTED), 'miasma', 0.5, 0.0)


class TestExposureChance:
    def test_base_times_intensity(self):
        assert exposure_chance('flea', 0.5) == pytest.approx(0.15)
        assert exposure_chance('airborne', 1.0) == pytest.approx(0.60)
        assert exposure_chance('contact', 1.0) == pytest.approx(0.10)

    def test_configured_base(self):
        cfg = ExposureSection(base_chance={'flea': 1.0, 'airborne': 1.0, 'contact': 1.0})
        assert exposure_chance('contact', 0.4, cfg) == pytest.approx(0.4)


# ── Protection ───────────────────────────────────────────────────────

class TestProtection:
    def test_no_items(self):
        assert calculate_plague_protection([]) == 1.0

    def test_stacks_multiplicatively(self):
        inventory = [
            {'item_id': 'aromatic_herb_pouch', 'quantity': 1},
            {'item_id': 'face_cloth', 'quantity': 2},
        ]
        assert calculate_plague_protection(inventory) == pytest.approx(0.595)

    def test_each_item_counted_once(self):
        inventory = [('vinegar_cloth', 1), ('vinegar_cloth', 3)]
        assert calculate_plague_protection(inventory) == pytest.approx(0.65)

    def test_zero_quantity_ignored(self):
        assert calculate_plague_protection([('frankincense', 0)]) == 1.0

    def test_unknown_items_ignored(self):
        assert calculate_plague_protection([('bread', 4)]) == 1.0

    def test_all_items(self):
        inventory = [
            ('aromatic_herb_pouch', 1), ('face_cloth', 1), ('vinegar_cloth', 1),
            ('frankincense', 1), ('quranic_amulet', 1),
        ]
        expected = 0.70 * 0.85 * 0.65 * 0.90 * 0.95
        assert calculate_plague_protection(inventory) == pytest.approx(expected)


# ── Proximity ────────────────────────────────────────────────────────

class TestProximityExposure:
    def test_nothing_nearby(self):
        assert roll_proximity_exposure(NearbyHazards(), 1.0, FixedRng(0.0)) is None

    def test_rats_give_flea(self):
        assert roll_proximity_exposure(NearbyHazards(rats=2), 1.0, FixedRng(0.0)) == ('flea', 1.0)

    def test_infected_give_airborne(self):
        nearby = NearbyHazards(infected=1, pneumonic_infected=1)
        assert roll_proximity_exposure(nearby, 1.0, FixedRng(0.0)) == ('airborne', 0.8)

    def test_corpses_need_stillness(self):
        moving = NearbyHazards(corpses=1, stationary=False)
        still = NearbyHazards(corpses=1, stationary=True)
        assert roll_proximity_exposure(moving, 1.0, FixedRng(0.0)) is None
        assert roll_proximity_exposure(still, 1.0, FixedRng(0.0)) == ('contact', 0.6)

    def test_rats_checked_first(self):
        nearby = NearbyHazards(rats=5, infected=3, corpses=1, stationary=True)
        assert roll_proximity_exposure(nearby, 1.0, FixedRng(0.0))[0] == 'flea'

    def test_full_protection_blocks(self):
        nearby = NearbyHazards(rats=5, infected=3, corpses=1, stationary=True)
        assert roll_proximity_exposure(nearby, 0.0, FixedRng(0.0)) is None

    def test_high_draw_misses(self):
        nearby = NearbyHazards(rats=5, infected=3, pneumonic_infected=3, corpses=1, stationary=True)
        assert roll_proximity_exposure(nearby, 1.0, FixedRng(0.5)) is None

    def test_rat_density_scales_chance(self):
        """One rat of five gives a fifth of the base chance."""
        cfg = ExposureSection()
        just_under = cfg.rat_base_chance / 5 * 0.99
        just_over = cfg.rat_base_chance / 5 * 1.01
        assert roll_proximity_exposure(NearbyHazards(rats=1), 1.0, FixedRng(just_under)) == ('flea', 1.0)
        assert roll_proximity_exposure(NearbyHazards(rats=1), 1.0, FixedRng(just_over)) is None
