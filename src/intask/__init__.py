"""Intask — interview task orchestration for hiring and instructor readiness."""

__version__ = "0.1.0"
