"""Application layer - ports and sync use cases."""
