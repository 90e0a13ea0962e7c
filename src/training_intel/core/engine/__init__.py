"""YAML-backed configuration loading."""
