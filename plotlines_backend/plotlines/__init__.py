"""Plotlines: ten-step social stories with illustrations."""

__version__ = "0.1.0"
