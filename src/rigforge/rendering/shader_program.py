"""Compile and link GLSL shader programs for OpenGL 3.3 core profile."""

import logging
from pathlib import Path

import numpy as np
from OpenGL.GL import (
    GL_COMPILE_STATUS,
    GL_FRAGMENT_SHADER,
    GL_LINK_STATUS,
    GL_VERTEX_SHADER,
    glAttachShader,
    glCompileShader,
    glCreateProgram,
    glCreateShader,
    glDeleteProgram,
    glDeleteShader,
    glGetProgramInfoLog,
    glGetProgramiv,
    glGetShaderInfoLog,
    glGetShaderiv,
    glGetUniformLocation,
    glLinkProgram,
    glShaderSource,
    glUniform1f,
    glUniform3f,
    glUniformMatrix3fv,
    glUniformMatrix4fv,
    glUseProgram,
)

logger = logging.getLogger(__name__)

_SHADER_DIR = Path(__file__).parent / "shaders"


def load_shader_source(filename: str) -> str:
    return (_SHADER_DIR / filename).read_text(encoding="utf-8")


def _decode(info) -> str:
    if isinstance(info, bytes):
        return info.decode("utf-8", errors="replace")
    return str(info)


class ShaderProgram:
    """A linked vertex + fragment program with cached uniform locations."""

    def __init__(self, vertex_source: str, fragment_source: str) -> None:
        self._vertex_source = vertex_source
        self._fragment_source = fragment_source
        self._program: int = 0
        self._uniform_cache: dict[str, int] = {}

    @classmethod
    def from_files(cls, vert_filename: str, frag_filename: str) -> "ShaderProgram":
        return cls(load_shader_source(vert_filename), load_shader_source(frag_filename))

    def compile(self) -> None:
        """Compile and link. Raises ``RuntimeError`` with the GL info log on failure."""
        vert = self._compile_shader(GL_VERTEX_SHADER, self._vertex_source)
        frag = self._compile_shader(GL_FRAGMENT_SHADER, self._fragment_source)

        program = glCreateProgram()
        glAttachShader(program, vert)
        glAttachShader(program, frag)
        glLinkProgram(program)
        glDeleteShader(vert)
        glDeleteShader(frag)

        if glGetProgramiv(program, GL_LINK_STATUS) != 1:
            info = _decode(glGetProgramInfoLog(program))
            glDeleteProgram(program)
            raise RuntimeError(f"Shader program link error:\n{info}")

        self._program = program
        self._uniform_cache.clear()
        logger.debug("Shader program %d linked.", program)

    def use(self) -> None:
        glUseProgram(self._program)

    def set_uniform_mat4(self, name: str, m: np.ndarray) -> None:
        loc = self.get_uniform_location(name)
        if loc >= 0:
            # Row-major numpy -> column-major GL, transposed here since
            # core profiles on macOS reject transpose=True
            glUniformMatrix4fv(loc, 1, False, np.ascontiguousarray(m.T, dtype=np.float32))

    def set_uniform_mat3(self, name: str, m: np.ndarray) -> None:
        loc = self.get_uniform_location(name)
        if loc >= 0:
            glUniformMatrix3fv(loc, 1, False, np.ascontiguousarray(m.T, dtype=np.float32))

    def set_uniform_vec3(self, name: str, v) -> None:
        loc = self.get_uniform_location(name)
        if loc >= 0:
            glUniform3f(loc, float(v[0]), float(v[1]), float(v[2]))

    def set_uniform_float(self, name: str, value: float) -> None:
        loc = self.get_uniform_location(name)
        if loc >= 0:
            glUniform1f(loc, float(value))

    def get_uniform_location(self, name: str) -> int:
        cached = self._uniform_cache.get(name)
        if cached is not None:
            return cached
        loc = glGetUniformLocation(self._program, name)
        self._uniform_cache[name] = loc
        if loc < 0:
            logger.debug("Uniform '%s' not found (may be optimised out).", name)
        return loc

    def destroy(self) -> None:
        if self._program:
            glDeleteProgram(self._program)
            self._program = 0
            self._uniform_cache.clear()

    @staticmethod
    def _compile_shader(shader_type: int, source: str) -> int:
        shader = glCreateShader(shader_type)
        glShaderSource(shader, source)
        glCompileShader(shader)
        if glGetShaderiv(shader, GL_COMPILE_STATUS) != 1:
            info = _decode(glGetShaderInfoLog(shader))
            kind = "vertex" if shader_type == GL_VERTEX_SHADER else "fragment"
            glDeleteShader(shader)
            raise RuntimeError(f"{kind} shader compile error:\n{info}")
        return shader
