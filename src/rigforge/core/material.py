"""Material definitions for rendering."""

from dataclasses import dataclass


@dataclass(eq=False)
class Material:
    """Rendering material properties.

    Compared by identity: two materials with equal fields are still
    different materials, so highlight revert can check ``is``.
    """
    color: tuple[float, float, float] = (0.8, 0.8, 0.8)
    opacity: float = 1.0
    shininess: float = 30.0
    emissive: tuple[float, float, float] = (0.0, 0.0, 0.0)
    emissive_intensity: float = 0.0
    double_sided: bool = False
    transparent: bool = False
    visible: bool = True
    depth_test: bool = True
    depth_write: bool = True
    name: str = ""

    @staticmethod
    def from_hex(color_int: int, **kwargs) -> "Material":
        """Create material from integer hex color (e.g., 0x60a5fa)."""
        return Material(color=Material.hex_to_rgb(color_int), **kwargs)

    @staticmethod
    def hex_to_rgb(color_int: int) -> tuple[float, float, float]:
        r = ((color_int >> 16) & 0xFF) / 255.0
        g = ((color_int >> 8) & 0xFF) / 255.0
        b = (color_int & 0xFF) / 255.0
        return (r, g, b)

    def copy(self) -> "Material":
        return Material(**{k: getattr(self, k) for k in self.__dataclass_fields__})


# Shared overlay materials. These are module singletons: never dispose
# or mutate them per-mesh except where the display pass says so.
HIGHLIGHT_MATERIAL = Material.from_hex(
    0x60A5FA, shininess=10.0, emissive=Material.hex_to_rgb(0x60A5FA),
    emissive_intensity=0.25, double_sided=True, name="highlight",
)

COLLISION_HIGHLIGHT_MATERIAL = Material.from_hex(
    0xFACC15, shininess=10.0, emissive=Material.hex_to_rgb(0xFACC15),
    emissive_intensity=0.5, double_sided=True, name="collision_highlight",
)

COLLISION_BASE_MATERIAL = Material.from_hex(
    0xA855F7, opacity=0.4, transparent=True, double_sided=True,
    depth_test=False, depth_write=False, name="collision_base",
)

SHARED_MATERIALS = frozenset(
    id(m) for m in (HIGHLIGHT_MATERIAL, COLLISION_HIGHLIGHT_MATERIAL, COLLISION_BASE_MATERIAL)
)


def is_shared_material(material: Material) -> bool:
    return id(material) in SHARED_MATERIALS
