"""Telemetry integrations."""
