"""
Jobs infrastructure for background plan generation.

This package provides the generation job pipeline with:
- Postgres-backed queue with leases and conditional claiming
- Idempotent submission via deterministic job keys
- Registry-based pluggable handlers
- Exponential backoff retries with terminal failure propagation
"""
