"""Step definitions for the behavioural scenarios."""
