"""Unit tests for the Trading Analyst pattern detection system.

This package contains comprehensive unit tests for all components of the
pattern detection framework, including detectors, services, indicators,
scoring mechanisms, and registry functionality.
"""
