"""
Core modules for Creation Studio.

This package contains pricing, usage metering, access gating and the
creation state machine.
"""
