"""HTTP API for ADR Assistant."""
