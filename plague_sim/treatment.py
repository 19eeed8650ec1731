"""Treatment resolver — period remedies the player can try.

Effects are immediate and flat, with no duration or cooldown; repeated
application in one tick stacks, so callers gate availability themselves.

  lanceBubo     bubonic, unburst, buboes > 60: drain (−20 buboes, +30 survival
                capped at 100) and move onto the lanced mortality curve
  rest          −5 weakness
  herbs         −5 fever
  bloodletting  +10 weakness, −3 fever (net harmful)
  prayer        −3 delirium
"""

from __future__ import annotations

import dataclasses

from plague_sim.progression import overall_severity
from plague_sim.types import TREATMENT_KINDS, AgentState, PlagueStatus, PlagueType

LANCE_MIN_BUBOES = 60.0


def can_lance_bubo(status: PlagueStatus) -> bool:
    return (
        status.state == AgentState.INFECTED
        and status.plague_type == PlagueType.BUBONIC
        and not status.bubo_burst
        and status.buboes > LANCE_MIN_BUBOES
    )


def attempt_treatment(status: PlagueStatus, kind: str) -> PlagueStatus:
    """Apply a remedy. No-op unless the record is INFECTED.

    Raises:
        ValueError: Unknown treatment kind.
    """
    if kind not in TREATMENT_KINDS:
        raise ValueError(f"treatment must be one of {TREATMENT_KINDS}, got {kind!r}")
    if status.state != AgentState.INFECTED:
        return status

    p = dataclasses.replace(status)

    if kind == 'lanceBubo':
        if can_lance_bubo(status):
            p.bubo_burst = True
            p.buboes -= 20.0
            p.survival_chance = min(100.0, p.survival_chance + 30.0)
    elif kind == 'rest':
        p.weakness = max(0.0, p.weakness - 5.0)
    elif kind == 'herbs':
        p.fever = max(0.0, p.fever - 5.0)
    elif kind == 'bloodletting':
        p.weakness = min(100.0, p.weakness + 10.0)
        p.fever = max(0.0, p.fever - 3.0)
    elif kind == 'prayer':
        p.delirium = max(0.0, p.delirium - 3.0)

    p.overall_severity = overall_severity(p)
    return p
