"""Insight Cache: process-local result cache for slow remote computations."""
