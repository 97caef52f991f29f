"""Exception hierarchy for target indexing."""


class TargetIndexError(Exception):
    """Base class for all targetindex errors."""


class ConfigurationError(TargetIndexError):
    """Raised when a component is used in a way its setup does not allow.

    The main case is an ownerless association bucket asked to create a
    record that has no owner reference.
    """


class HierarchyCycleError(TargetIndexError):
    """Raised when hierarchy flattening revisits a node still being flattened."""

    def __init__(self, node_id: str, path: list):
        self.node_id = node_id
        self.path = list(path)
        chain = " -> ".join(self.path + [node_id])
        super().__init__(f"Cycle detected in hierarchy: {chain}")


class CorpusLoadError(TargetIndexError):
    """Raised when a corpus file cannot be read or validated."""
