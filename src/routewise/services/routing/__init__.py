"""Route scoring and planning."""
