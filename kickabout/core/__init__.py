"""Core types and helpers shared by the blueprints."""
