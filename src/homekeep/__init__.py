"""homekeep: local task cache with incremental sync for a household task app."""

__version__ = "0.1.0"
