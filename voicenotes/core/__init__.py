"""Configuration, exceptions, shared models and helpers."""
