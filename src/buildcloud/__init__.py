"""Ephemeral build-service workers for a CI controller."""
