"""Exceptions raised by the cascade engine and its catalogs."""


class InvalidReferenceError(KeyError):
    """Unknown element or scenario identifier."""
    
    def __str__(self) -> str:
        # KeyError quotes its argument; keep the message readable.
        return str(self.args[0]) if self.args else ""


class CatalogIntegrityError(ValueError):
    """A static catalog entry violates its invariants."""
