"""Relay pipeline: request models, validation and the relayer service."""
