"""Chess rules and decision engine for the 3D browser chess game."""

__version__ = "1.0.0"
