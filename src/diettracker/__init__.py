"""Personal energy-balance tracker.

Holds a versioned snapshot of per-day meals, workouts and body weight,
and derives intake, TDEE, energy balance and multi-day momentum from it.
"""

__version__ = "0.1.0"
