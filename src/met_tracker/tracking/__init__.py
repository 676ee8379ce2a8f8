"""Activity state, session aggregation, sampling control and service lifecycle."""
