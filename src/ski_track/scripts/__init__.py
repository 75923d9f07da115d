"""
Ski Track Scripts Package

Command-line entry points for processing ski tracker exports.

Available scripts:
- process_ski_data: Classify a CSV/GSD export and write CSV/GeoJSON summaries
"""

__all__ = ["process_ski_data"]
