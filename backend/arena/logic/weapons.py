"""Static weapon table shared by every room in the process."""

from types import MappingProxyType

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_WEAPON = "ak47"


class Weapon(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    damage: int = Field(ge=0)
    fire_rate_ms: int = Field(gt=0)  # minimum interval between two shots


WEAPONS: MappingProxyType[str, Weapon] = MappingProxyType(
    {
        "ak47": Weapon(name="ak47", damage=25, fire_rate_ms=100),
        "m4a1": Weapon(name="m4a1", damage=22, fire_rate_ms=80),
        "awp": Weapon(name="awp", damage=100, fire_rate_ms=1500),
        "deagle": Weapon(name="deagle", damage=50, fire_rate_ms=300),
    },
)


def get_weapon(name: str | None) -> Weapon:
    """Look up a weapon by name, falling back to the default rifle for unknown names."""
    if name is None:
        return WEAPONS[DEFAULT_WEAPON]
    return WEAPONS.get(name, WEAPONS[DEFAULT_WEAPON])
