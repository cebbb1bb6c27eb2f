"""Metric registry with enable/configure lifecycle and Prometheus text export."""

__version__ = "0.1.0"
