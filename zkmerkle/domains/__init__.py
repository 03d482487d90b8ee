"""Chain-specific verifiers."""
