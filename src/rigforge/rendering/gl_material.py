"""Apply Material properties to a shader program and configure GL state."""

from OpenGL.GL import (
    GL_BACK,
    GL_BLEND,
    GL_CULL_FACE,
    GL_DEPTH_TEST,
    GL_ONE_MINUS_SRC_ALPHA,
    GL_SRC_ALPHA,
    glBlendFunc,
    glCullFace,
    glDepthMask,
    glDisable,
    glEnable,
)

from rigforge.core.material import Material
from rigforge.rendering.shader_program import ShaderProgram


def is_translucent(material: Material) -> bool:
    return material.transparent or material.opacity < 1.0


def apply_material(shader: ShaderProgram, material: Material) -> None:
    """Set uniforms and GL state for *material*. Call after ``shader.use()``."""
    shader.set_uniform_vec3("uColor", material.color)
    shader.set_uniform_float("uOpacity", material.opacity)
    shader.set_uniform_float("uShininess", material.shininess)
    shader.set_uniform_vec3("uEmissive", tuple(
        c * material.emissive_intensity for c in material.emissive
    ))

    if is_translucent(material):
        glEnable(GL_BLEND)
        glBlendFunc(GL_SRC_ALPHA, GL_ONE_MINUS_SRC_ALPHA)
    else:
        glDisable(GL_BLEND)

    if material.depth_test:
        glEnable(GL_DEPTH_TEST)
    else:
        glDisable(GL_DEPTH_TEST)
    glDepthMask(bool(material.depth_write) and not is_translucent(material))

    if material.double_sided:
        glDisable(GL_CULL_FACE)
    else:
        glEnable(GL_CULL_FACE)
        glCullFace(GL_BACK)


def restore_material_defaults() -> None:
    """Reset GL state changed by :func:`apply_material`."""
    glDisable(GL_BLEND)
    glEnable(GL_DEPTH_TEST)
    glDepthMask(True)
    glDisable(GL_CULL_FACE)
