"""
Netatmo Orchestration Package

Provides orchestration tools for pulling historical observations from the
Netatmo public weather-station network:
- historical: paginated per-variable fetches merged into per-station records
"""

__version__ = "1.0.0"
