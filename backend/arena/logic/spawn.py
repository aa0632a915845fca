import random

SPAWN_HALF_EXTENT = 25.0
SPAWN_HEIGHT = 2.0


def random_spawn_point(rng: random.Random | None = None) -> tuple[float, float, float]:
    """Pick a spawn point on the arena floor: x and z in [-25, 25], y fixed at 2."""
    source = rng or random
    x = source.uniform(-SPAWN_HALF_EXTENT, SPAWN_HALF_EXTENT)
    z = source.uniform(-SPAWN_HALF_EXTENT, SPAWN_HALF_EXTENT)
    return x, SPAWN_HEIGHT, z
