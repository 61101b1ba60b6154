"""HTTP routers for Signal Gateway."""
