"""Command-line interface for abilitykit."""
