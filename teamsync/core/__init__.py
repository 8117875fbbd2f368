"""Core infrastructure helpers for TeamSync (config, dates, HTTP)."""
