"""Rendering subsystem -- OpenGL 3.3 core profile with PySide6 integration.

GL modules import PyOpenGL at load time, so they are not re-exported here;
import them directly (``rigforge.rendering.renderer`` and friends).
"""

from rigforge.rendering.camera import Camera

__all__ = ["Camera"]
