"""Plotting utilities."""
