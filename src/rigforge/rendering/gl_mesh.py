"""VAO / VBO ownership for one MeshInstance's geometry.

Attribute layout: location 0 positions, location 1 normals, optional EBO.
"""

import logging

import numpy as np
from OpenGL.GL import (
    GL_ARRAY_BUFFER,
    GL_ELEMENT_ARRAY_BUFFER,
    GL_FALSE,
    GL_FLOAT,
    GL_STATIC_DRAW,
    GL_TRIANGLES,
    GL_UNSIGNED_INT,
    glBindBuffer,
    glBindVertexArray,
    glBufferData,
    glDeleteBuffers,
    glDeleteVertexArrays,
    glDrawArrays,
    glDrawElements,
    glEnableVertexAttribArray,
    glGenBuffers,
    glGenVertexArrays,
    glVertexAttribPointer,
)

from rigforge.core.mesh import BufferGeometry

logger = logging.getLogger(__name__)


class GLMesh:
    """GPU copy of a BufferGeometry. ``destroy`` is safe to call twice."""

    def __init__(self, geometry: BufferGeometry) -> None:
        self._geometry = geometry
        self._vao: int = 0
        self._buffers: list[int] = []
        self._vertex_count: int = geometry.vertex_count
        self._index_count: int = 0
        self._uploaded: bool = False

    @property
    def uploaded(self) -> bool:
        return self._uploaded

    def upload(self, geometry: BufferGeometry | None = None) -> None:
        if geometry is not None:
            self._geometry = geometry
            self._vertex_count = geometry.vertex_count
        if self._uploaded:
            self.destroy()

        geo = self._geometry
        self._vao = glGenVertexArrays(1)
        glBindVertexArray(self._vao)

        for location, data in ((0, geo.positions), (1, geo.normals)):
            arr = np.ascontiguousarray(data, dtype=np.float32)
            vbo = glGenBuffers(1)
            self._buffers.append(vbo)
            glBindBuffer(GL_ARRAY_BUFFER, vbo)
            glBufferData(GL_ARRAY_BUFFER, arr.nbytes, arr, GL_STATIC_DRAW)
            glVertexAttribPointer(location, 3, GL_FLOAT, GL_FALSE, 0, None)
            glEnableVertexAttribArray(location)

        if geo.has_indices:
            idx = np.ascontiguousarray(geo.indices, dtype=np.uint32)
            self._index_count = len(idx)
            ebo = glGenBuffers(1)
            self._buffers.append(ebo)
            glBindBuffer(GL_ELEMENT_ARRAY_BUFFER, ebo)
            glBufferData(GL_ELEMENT_ARRAY_BUFFER, idx.nbytes, idx, GL_STATIC_DRAW)
        else:
            self._index_count = 0

        glBindVertexArray(0)
        glBindBuffer(GL_ARRAY_BUFFER, 0)
        self._uploaded = True
        logger.debug("GLMesh uploaded: %d verts, %d indices",
                     self._vertex_count, self._index_count)

    def draw(self) -> None:
        if not self._uploaded:
            return
        glBindVertexArray(self._vao)
        if self._index_count:
            glDrawElements(GL_TRIANGLES, self._index_count, GL_UNSIGNED_INT, None)
        else:
            glDrawArrays(GL_TRIANGLES, 0, self._vertex_count)
        glBindVertexArray(0)

    def destroy(self) -> None:
        if self._buffers:
            glDeleteBuffers(len(self._buffers), self._buffers)
            self._buffers = []
        if self._vao:
            glDeleteVertexArrays(1, [self._vao])
            self._vao = 0
        self._uploaded = False
