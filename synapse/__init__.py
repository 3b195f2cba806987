"""Synapse core: behavioral-state inference and concept-graph construction."""

__version__ = "0.1.0"
