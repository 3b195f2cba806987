"""
Custom exception hierarchy for the Synapse core.

All application exceptions inherit from SynapseError.
"""


class SynapseError(Exception):
    """Base exception for all application errors."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


# =============================================================================
# Configuration Errors
# =============================================================================


class ConfigurationError(SynapseError):
    """Invalid or missing configuration."""

    pass


class ValidationError(SynapseError):
    """Input validation failed."""

    pass


# =============================================================================
# Graph Errors
# =============================================================================


class GraphError(SynapseError):
    """Concept graph operation error."""

    pass


class NodeNotFoundError(GraphError):
    """Node does not exist in the concept graph."""

    pass


class GraphConsistencyError(GraphError):
    """Graph violates the symmetric-connection invariant."""

    pass


# =============================================================================
# Persistence Errors
# =============================================================================


class PersistenceError(SynapseError):
    """Storage collaborator failed to read or write.

    Raised by repositories; adapters catch it at the boundary so the
    in-memory result is still returned to the caller.
    """

    pass
