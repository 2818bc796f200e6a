"""Sonobuoy plugins for Kubernetes clusters: inventory, requirement checks and plugin helpers."""

__version__ = "0.1.0"