"""
Server-side combat rules.

Clients report their own shots and hits; the server only enforces a small set
of rules on top of that: weapons cannot fire faster than their fire rate (with
a 20% jitter allowance), a single hit never deals more than MAX_DAMAGE, and
health reaching zero counts as exactly one kill for the attacker and one death
for the target. Dead players take no further damage until they respawn.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import TYPE_CHECKING

from arena.logic.spawn import random_spawn_point

if TYPE_CHECKING:
    import random

    from arena.logic.weapons import Weapon
    from arena.session.models import Player

MAX_HEALTH = 100
MAX_DAMAGE = 100

# Shots are accepted once 80% of the weapon's fire interval has elapsed.
FIRE_RATE_TOLERANCE = 0.8


@dataclass(frozen=True)
class HitResult:
    damage: int
    remaining_health: int
    killed: bool


def clamp_damage(damage: float) -> int:
    """Cap a reported damage at MAX_DAMAGE and truncate it to whole hit points."""
    return int(max(0, min(damage, MAX_DAMAGE)))


def accept_shot(player: Player, weapon: Weapon) -> bool:
    """Record a shot if the weapon's fire rate allows it.

    Returns False (and leaves the player untouched) when the shot arrives
    too soon after the previous accepted one.
    """
    now = time.monotonic()
    min_interval = weapon.fire_rate_ms * FIRE_RATE_TOLERANCE / 1000
    if player.last_shot_at and now - player.last_shot_at < min_interval:
        return False
    player.last_shot_at = now
    return True


def apply_hit(attacker: Player, target: Player, damage: float) -> HitResult:
    """Subtract clamped damage from the target and settle a kill if it died.

    Callers must not pass a target that is already dead; a death is counted
    only on the transition from positive to non-positive health.
    """
    if target.is_dead:
        raise ValueError(f"player {target.id} is already dead")

    applied = clamp_damage(damage)
    target.health -= applied
    killed = target.is_dead
    if killed:
        attacker.kills += 1
        target.deaths += 1
    return HitResult(damage=applied, remaining_health=target.health, killed=killed)


def respawn(player: Player, rng: random.Random | None = None) -> None:
    """Restore full health and move the player to a fresh spawn point."""
    player.health = MAX_HEALTH
    player.move_to(*random_spawn_point(rng))
