"""Translation Gateway backend."""
