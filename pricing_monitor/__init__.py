"""
Cloud VM pricing monitor.
Polls AWS and GCP billing APIs and exports normalized prices as Prometheus metrics.
"""

__version__ = "0.1.0"
