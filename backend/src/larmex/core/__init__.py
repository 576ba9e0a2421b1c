"""Core domain logic for larmex."""
