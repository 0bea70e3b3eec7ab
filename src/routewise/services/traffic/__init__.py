"""Traffic evaluation and live monitoring."""
