"""Post cadence planner: slot planning, content import and post relocation."""

__version__ = "0.1.0"
