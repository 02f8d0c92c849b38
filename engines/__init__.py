"""Adaptive mastery engines: level selection, scaffolding, profiles and review scheduling."""
