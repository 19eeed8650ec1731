"""Configuration system for plague-sim.

Hierarchical YAML configuration with deep-merge support:
  base.yaml → scenario override → ad-hoc overrides

Every tunable of the epidemic engine that is not part of the disease
profile table lives here: clock resolution, proximity exposure rates,
NPC time compression, household exposure, building marker decay and
protective items. The historical disease curves themselves are fixed in
``plague_sim.profiles`` so player and NPC machines can never drift apart.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml


# ═══════════════════════════════════════════════════════════════════════
# CONFIGURATION DATACLASSES
# ═══════════════════════════════════════════════════════════════════════

@dataclass
class SimulationSection:
    """Clock and seeding."""
    seed: int = 42
    game_day_length: float = 60.0   # Seconds of player clock per simulated day
    hours_per_day: int = 24
    deterministic_rolls: bool = True  # Seed burst/death rolls from the exposure seed


@dataclass
class ExposureSection:
    """Direct exposure of the player.

    ``base_chance`` is the per-event success probability before intensity
    scaling. The proximity rates are per exposure check (one per second).
    """
    base_chance: Dict[str, float] = field(
        default_factory=lambda: {'flea': 0.30, 'airborne': 0.60, 'contact': 0.10}
    )

    # Proximity sources (per check)
    rat_base_chance: float = 0.008        # Flea bites near rats
    infected_base_chance: float = 0.003   # Droplets near infected NPCs
    corpse_base_chance: float = 0.0015    # Handling contaminated bodies/items

    max_rat_density: int = 5
    max_infected_density: int = 3

    pneumonic_boost: float = 1.4          # Any pneumonic case in range
    non_pneumonic_boost: float = 0.35
    airborne_chance_cap: float = 0.2

    # Intensity handed to expose_to_plague per source
    flea_intensity: float = 1.0
    airborne_intensity: float = 0.8
    contact_intensity: float = 0.6


@dataclass
class ProtectionSection:
    """Risk multipliers for carried protective items. Stack multiplicatively."""
    items: Dict[str, float] = field(
        default_factory=lambda: {
            'aromatic_herb_pouch': 0.70,   # rue, wormwood, mint
            'face_cloth': 0.85,
            'vinegar_cloth': 0.65,
            'frankincense': 0.90,
            'quranic_amulet': 0.95,
        }
    )


@dataclass
class NpcSection:
    """Population-scale NPC disease timing (hours)."""
    time_scale: float = 0.12             # Compression of day-scale curves
    min_incubation_hours: float = 1.0
    max_incubation_hours: float = 8.0
    min_death_hours: float = 4.0         # Onset → death, also the min margin
    max_death_hours: float = 22.0

    # Fallbacks for records that reach a state without metadata
    hours_to_infected: float = 2.0
    hours_to_death: float = 24.0

    # Near-death seeding for an initial outbreak
    near_death_fraction: float = 0.8
    near_death_min_elapsed: float = 0.5

    # Household exposure
    household_exposure_per_hour: float = 0.04
    household_max_chance: float = 0.95


@dataclass
class BuildingSection:
    """Building infection marker decay."""
    decay_hours: Dict[str, float] = field(
        default_factory=lambda: {'incubating': 6.0, 'infected': 8.0, 'deceased': 12.0}
    )
    # Public buildings keep markers longer
    type_multipliers: Dict[str, float] = field(
        default_factory=lambda: {
            'RELIGIOUS': 2.0,
            'CIVIC': 2.0,
            'SCHOOL': 2.0,
            'MEDICAL': 2.0,
            'COMMERCIAL': 1.5,
            'HOSPITALITY': 1.5,
        }
    )


@dataclass
class OutbreakSection:
    """Initial outbreak seeding."""
    max_additional_near_death: int = 1   # 0..this many extra near-death cases
    min_incubating: int = 1
    max_incubating: int = 4


@dataclass
class OutputSection:
    """Output control."""
    record_counts: bool = True


@dataclass
class SimulationConfig:
    """Complete engine configuration.

    Load from YAML via `load_config()`. Sections map 1:1 to YAML top-level keys.
    """
    simulation: SimulationSection = field(default_factory=SimulationSection)
    exposure: ExposureSection = field(default_factory=ExposureSection)
    protection: ProtectionSection = field(default_factory=ProtectionSection)
    npc: NpcSection = field(default_factory=NpcSection)
    buildings: BuildingSection = field(default_factory=BuildingSection)
    outbreak: OutbreakSection = field(default_factory=OutbreakSection)
    output: OutputSection = field(default_factory=OutputSection)


# ═══════════════════════════════════════════════════════════════════════
# YAML LOADING & MERGING
# ═══════════════════════════════════════════════════════════════════════

def deep_merge(base: Dict, override: Dict) -> Dict:
    """Recursively merge override into base. Modifies base in place.

    - Dict values are merged recursively
    - Non-dict values are replaced
    - Keys in override but not base are added

    Args:
        base: Base dictionary (modified in place).
        override: Override dictionary.

    Returns:
        The merged base dictionary.
    """
    for key, value in override.items():
        if (
            key in base
            and isinstance(base[key], dict)
            and isinstance(value, dict)
        ):
            deep_merge(base[key], value)
        else:
            base[key] = value
    return base


def _dict_to_section(section_cls, data: Dict) -> Any:
    """Convert a dict to a dataclass, ignoring unknown keys.

    Dict-valued fields are merged over their defaults so a YAML file can
    override a single entry (e.g. one protective item).
    """
    defaults = section_cls()
    kwargs = {}
    for f in dataclasses.fields(section_cls):
        if f.name not in data:
            continue
        value = data[f.name]
        default = getattr(defaults, f.name)
        if isinstance(default, dict) and isinstance(value, dict):
            value = deep_merge(dict(default), value)
        kwargs[f.name] = value
    return section_cls(**kwargs)


_SECTION_MAP = {
    'simulation': SimulationSection,
    'exposure': ExposureSection,
    'protection': ProtectionSection,
    'npc': NpcSection,
    'buildings': BuildingSection,
    'outbreak': OutbreakSection,
    'output': OutputSection,
}


def _yaml_to_config(data: Dict) -> SimulationConfig:
    """Convert a merged YAML dict to a SimulationConfig."""
    sections = {}
    for key, cls in _SECTION_MAP.items():
        if key in data and isinstance(data[key], dict):
            sections[key] = _dict_to_section(cls, data[key])
        else:
            sections[key] = cls()
    return SimulationConfig(**sections)


def _check_probability(name: str, value: float) -> None:
    if not (0.0 <= value <= 1.0):
        raise ValueError(f"{name} must be in [0, 1], got {value}")


def validate_config(config: SimulationConfig) -> None:
    """Validate configuration constraints. Raises ValueError on failure.

    Checks:
      - Clock values are positive
      - Every probability and multiplier is in [0, 1]
      - NPC clamps are ordered and leave room for the death margin
      - Outbreak counts are ordered
    """
    sim = config.simulation
    if sim.seed < 0:
        raise ValueError("simulation.seed must be non-negative")
    if sim.game_day_length <= 0:
        raise ValueError(
            f"simulation.game_day_length must be positive, got {sim.game_day_length}"
        )
    if sim.hours_per_day <= 0:
        raise ValueError(
            f"simulation.hours_per_day must be positive, got {sim.hours_per_day}"
        )

    # Exposure
    exp = config.exposure
    missing = {'flea', 'airborne', 'contact'} - set(exp.base_chance)
    if missing:
        raise ValueError(f"exposure.base_chance missing kinds: {sorted(missing)}")
    for kind, chance in exp.base_chance.items():
        _check_probability(f"exposure.base_chance.{kind}", chance)
    for name in ('rat_base_chance', 'infected_base_chance', 'corpse_base_chance',
                 'airborne_chance_cap', 'flea_intensity', 'airborne_intensity',
                 'contact_intensity'):
        _check_probability(f"exposure.{name}", getattr(exp, name))
    if exp.max_rat_density < 1 or exp.max_infected_density < 1:
        raise ValueError("exposure density caps must be >= 1")

    for item, mult in config.protection.items.items():
        _check_probability(f"protection.items.{item}", mult)

    # NPC timing
    npc = config.npc
    if npc.time_scale <= 0:
        raise ValueError(f"npc.time_scale must be positive, got {npc.time_scale}")
    if not (0 < npc.min_incubation_hours <= npc.max_incubation_hours):
        raise ValueError(
            f"npc incubation clamp must satisfy 0 < min <= max, got "
            f"[{npc.min_incubation_hours}, {npc.max_incubation_hours}]"
        )
    if not (0 < npc.min_death_hours <= npc.max_death_hours):
        raise ValueError(
            f"npc death clamp must satisfy 0 < min <= max, got "
            f"[{npc.min_death_hours}, {npc.max_death_hours}]"
        )
    if npc.max_incubation_hours + npc.min_death_hours > npc.max_death_hours:
        raise ValueError(
            f"npc clamps leave no room for the death margin: "
            f"{npc.max_incubation_hours} + {npc.min_death_hours} > {npc.max_death_hours}"
        )
    if npc.hours_to_death <= npc.hours_to_infected:
        raise ValueError("npc.hours_to_death must exceed npc.hours_to_infected")
    _check_probability("npc.near_death_fraction", npc.near_death_fraction)
    _check_probability("npc.household_exposure_per_hour", npc.household_exposure_per_hour)
    _check_probability("npc.household_max_chance", npc.household_max_chance)

    # Buildings
    for status in ('incubating', 'infected', 'deceased'):
        if status not in config.buildings.decay_hours:
            raise ValueError(f"buildings.decay_hours missing '{status}'")
        if config.buildings.decay_hours[status] < 0:
            raise ValueError(f"buildings.decay_hours.{status} must be >= 0")
    for name, mult in config.buildings.type_multipliers.items():
        if mult <= 0:
            raise ValueError(f"buildings.type_multipliers.{name} must be positive")

    # Outbreak
    ob = config.outbreak
    if ob.max_additional_near_death < 0:
        raise ValueError("outbreak.max_additional_near_death must be >= 0")
    if not (0 <= ob.min_incubating <= ob.max_incubating):
        raise ValueError(
            f"outbreak incubating counts must satisfy 0 <= min <= max, got "
            f"[{ob.min_incubating}, {ob.max_incubating}]"
        )


def load_config(
    base_path: Union[str, Path],
    scenario_path: Optional[Union[str, Path]] = None,
    overrides: Optional[Dict] = None,
) -> SimulationConfig:
    """Load and merge hierarchical YAML configuration.

    Merge order: base → scenario → overrides.
    Each layer overrides only the fields it specifies.

    Args:
        base_path: Path to base configuration YAML.
        scenario_path: Optional scenario override YAML.
        overrides: Optional dict of parameter overrides.

    Returns:
        Validated SimulationConfig.

    Raises:
        FileNotFoundError: If base_path doesn't exist.
        ValueError: If validation fails.
    """
    base_path = Path(base_path)
    if not base_path.exists():
        raise FileNotFoundError(f"Config file not found: {base_path}")

    with open(base_path) as f:
        config_dict = yaml.safe_load(f) or {}

    if scenario_path is not None:
        scenario_path = Path(scenario_path)
        if scenario_path.exists():
            with open(scenario_path) as f:
                scenario = yaml.safe_load(f) or {}
            deep_merge(config_dict, scenario)

    if overrides is not None:
        deep_merge(config_dict, overrides)

    config = _yaml_to_config(config_dict)
    validate_config(config)
    return config


def default_config() -> SimulationConfig:
    """Return a SimulationConfig with all default values."""
    config = SimulationConfig()
    validate_config(config)
    return config
