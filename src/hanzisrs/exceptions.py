"""Exceptions raised by the scheduling services."""


class PersistenceError(Exception):
    """A storage operation failed and the enclosing transaction was rolled back."""
    pass


class ItemNotFoundError(ValueError):
    """The requested item has no catalog entry or progress record."""
    pass


class ItemStateError(ValueError):
    """The item is not in a state that allows the requested operation."""
    pass
