"""Version-control adapters."""
