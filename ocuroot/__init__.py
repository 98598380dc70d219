"""Refs, ref stores, package data and handoff graphs for release pipelines."""

__version__ = "0.1.0"

__all__ = [
    "backend",
    "fsrefstore",
    "globs",
    "handoff",
    "increment",
    "listen",
    "models",
    "readonly",
    "reduce",
    "refs",
    "refstore",
    "sdkdata",
    "stacktrees",
]