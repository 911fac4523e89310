"""Cluster image pre-warmer and container job submission for Slurm."""

__version__ = "0.1.0"
