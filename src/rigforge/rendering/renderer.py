"""Main OpenGL renderer -- draws the scene's visible meshes in render order.

Opaque meshes draw first, then translucent ones; within each pass meshes
are ordered by ``render_order`` so overlays (collision geometry,
highlights) land on top.
"""

import logging

import numpy as np
from OpenGL.GL import (
    GL_COLOR_BUFFER_BIT,
    GL_DEPTH_BUFFER_BIT,
    GL_DEPTH_TEST,
    GL_LESS,
    GL_MULTISAMPLE,
    glClear,
    glClearColor,
    glDepthFunc,
    glEnable,
    glViewport,
)

from rigforge.core.math_utils import Mat4, mat3_normal
from rigforge.core.mesh import MeshInstance
from rigforge.core.scene_graph import Scene
from rigforge.rendering.camera import Camera
from rigforge.rendering.gl_material import apply_material, is_translucent, restore_material_defaults
from rigforge.rendering.gl_mesh import GLMesh
from rigforge.rendering.shader_program import ShaderProgram

logger = logging.getLogger(__name__)


def draw_order(meshes: list[tuple[MeshInstance, Mat4]]) -> list[tuple[MeshInstance, Mat4]]:
    """Opaque before translucent, each pass by ascending render order."""
    return sorted(
        meshes,
        key=lambda item: (is_translucent(item[0].material), item[0].render_order),
    )


class GLRenderer:
    """Uploads meshes on demand and draws them.

    1. :meth:`init_gl` once with a current context.
    2. :meth:`resize` on viewport changes.
    3. :meth:`render` each frame.
    4. :meth:`destroy` on shutdown.
    """

    CLEAR_COLOR = (0.11, 0.12, 0.15, 1.0)

    def __init__(self) -> None:
        self._shader: ShaderProgram | None = None
        self._gl_meshes: dict[int, GLMesh] = {}  # keyed by id(MeshInstance)
        self._initialised: bool = False
        self._width: int = 1
        self._height: int = 1

    def init_gl(self) -> None:
        glClearColor(*self.CLEAR_COLOR)
        glEnable(GL_DEPTH_TEST)
        glDepthFunc(GL_LESS)
        glEnable(GL_MULTISAMPLE)

        self._shader = ShaderProgram.from_files("mesh.vert", "mesh.frag")
        self._shader.compile()
        self._initialised = True
        logger.info("GLRenderer initialised.")

    def resize(self, width: int, height: int) -> None:
        self._width = max(width, 1)
        self._height = max(height, 1)

    def destroy(self) -> None:
        for gl_mesh in self._gl_meshes.values():
            gl_mesh.destroy()
        self._gl_meshes.clear()
        if self._shader is not None:
            self._shader.destroy()
            self._shader = None
        self._initialised = False
        logger.info("GLRenderer destroyed.")

    def render(self, scene: Scene, camera: Camera) -> None:
        if not self._initialised:
            return

        glViewport(0, 0, self._width, self._height)
        glClear(GL_COLOR_BUFFER_BIT | GL_DEPTH_BUFFER_BIT)

        # Frozen nodes keep their cached matrices
        scene.update()

        view = camera.get_view_matrix()
        proj = camera.get_projection_matrix()
        shader = self._shader
        shader.use()
        shader.set_uniform_mat4("uProjection", proj)

        for mesh, world in draw_order(scene.collect_meshes()):
            self._draw_mesh(shader, mesh, world, view)
        restore_material_defaults()

    def _draw_mesh(self, shader: ShaderProgram, mesh: MeshInstance, world: Mat4, view: Mat4) -> None:
        if mesh.geometry.vertex_count == 0:
            return
        gl_mesh = self._gl_meshes.get(id(mesh))
        if gl_mesh is None:
            gl_mesh = GLMesh(mesh.geometry)
            self._gl_meshes[id(mesh)] = gl_mesh
            mesh.gl_handle = gl_mesh
            mesh.needs_update = True
        if mesh.needs_update:
            gl_mesh.upload(mesh.geometry)
            mesh.needs_update = False

        model_view = view @ world
        shader.set_uniform_mat4("uModelView", model_view)
        try:
            normal_mat = mat3_normal(model_view)
        except np.linalg.LinAlgError:
            normal_mat = np.eye(3, dtype=np.float64)
        shader.set_uniform_mat3("uNormalMatrix", normal_mat)
        apply_material(shader, mesh.material)
        gl_mesh.draw()

    def remove_mesh(self, mesh: MeshInstance) -> None:
        """Free a mesh's GL objects (the session's dispose hook)."""
        gl_mesh = self._gl_meshes.pop(id(mesh), None)
        if gl_mesh is not None:
            gl_mesh.destroy()
        mesh.gl_handle = None
