"""Ports (interfaces) for repositories and external collaborators."""
