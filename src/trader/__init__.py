"""Autonomous single-instrument perpetual futures position-trading engine."""
