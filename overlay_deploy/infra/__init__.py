"""Infrastructure layer (Kubernetes access)."""
