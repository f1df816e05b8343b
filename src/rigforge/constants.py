"""Shared constants and tunables for RigForge."""

import math
from pathlib import Path

# Project paths
PROJECT_ROOT = Path(__file__).parent.parent.parent
CONFIG_DIR = PROJECT_ROOT / "config"
DEFAULT_CONFIG_FILE = CONFIG_DIR / "viewer.json"

# Joint defaults applied when the model omits or garbles them
DEFAULT_JOINT_AXIS = (0.0, 0.0, 1.0)
DEFAULT_JOINT_LOWER = -math.pi
DEFAULT_JOINT_UPPER = math.pi

# Joint values closer than this are considered equal when syncing
JOINT_SYNC_TOLERANCE = 1e-4

# Pointer: minimum movement (pixels) before a hover raycast is scheduled
MOUSE_MOVE_THRESHOLD = 2.0

# Margin added around the model's bounds for the coarse ray test
BOUNDING_BOX_MARGIN = 0.05

# Render order buckets
RENDER_ORDER_DEFAULT = 0
RENDER_ORDER_COLLISION = 999
RENDER_ORDER_HIGHLIGHT = 1000

# Opacity of collision geometry while it is shown
COLLISION_OPACITY = 0.4

# Links whose names match this are treated as sensors (mass-less frames)
SENSOR_NAME_PATTERN = r"(?:imu|radar|lidar|camera|sensor)"

# Camera defaults
DEFAULT_CAMERA_POS = (1.5, -1.5, 1.2)
DEFAULT_CAMERA_TARGET = (0.0, 0.0, 0.4)
DEFAULT_CAMERA_UP = (0.0, 0.0, 1.0)

# Animation defaults
TARGET_FPS = 60
