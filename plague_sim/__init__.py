"""plague-sim: Seeded epidemic engine for a 1348 Damascus plague simulation.

A per-agent disease engine coupling:
  - A historical profile table for bubonic, pneumonic and septicemic plague
  - A fine-grained, day-banded symptom machine for the player
  - A compressed, two-threshold machine for NPCs on the same curves
  - Household exposure between NPCs sharing a building
  - Period treatments and per-building infection markers with decay

Every probabilistic branch is seeded from agent identity and simulated
time, so runs and save games replay exactly.
"""

__version__ = "0.1.0"
