"""tripstudio: headless image editing engine for trip and planner assets."""

__version__ = "0.1.0"
