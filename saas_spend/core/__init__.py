"""
Core modules for SaaS Spend Analyzer.

This package contains cost trend aggregation, license utilization
scoring, savings detection, usage patterns and forecasting.
"""

from .engine import AnalysisEngine, get_engine

__all__ = ["AnalysisEngine", "get_engine"]
