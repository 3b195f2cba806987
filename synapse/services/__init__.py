"""Core services: detection and knowledge pipelines, plus adapters."""
