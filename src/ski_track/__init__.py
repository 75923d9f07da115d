"""
Ski Track

Classifies GPS logs recorded by a ski-tracking device into lift rides, ski
descents and stops, and aggregates them into runs and rides.
"""

__version__ = "1.0.0"
