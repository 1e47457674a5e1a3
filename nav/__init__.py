# ================================
# file: nav/__init__.py
# ================================
from .motion_controller import WaypointController
from .navigator import Navigator

__all__ = ["WaypointController", "Navigator"]
