"""Configuration and local storage helpers."""
