"""Behavioural tests for lockstep."""
