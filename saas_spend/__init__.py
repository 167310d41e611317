"""
SaaS Spend Analyzer.

Cost, utilization and savings analysis for an organization's SaaS licenses.
"""

__version__ = "0.1.0"
