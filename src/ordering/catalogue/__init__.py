"""Catalogue adapter factory.

Provides get_catalogue() / set_catalogue() so the ordering services can be
pointed at the real product service or an in-memory stand-in.
"""

from ordering.catalogue.memory_adapter import InMemoryCatalogue
from ordering.catalogue.port import CatalogueService

_current_catalogue: CatalogueService | None = None


def get_catalogue() -> CatalogueService:
    """Return the current catalogue. Defaults to InMemoryCatalogue."""
    global _current_catalogue
    if _current_catalogue is None:
        _current_catalogue = InMemoryCatalogue()
    return _current_catalogue


def set_catalogue(catalogue: CatalogueService) -> None:
    """Override the active catalogue (useful for tests)."""
    global _current_catalogue
    _current_catalogue = catalogue


def reset_catalogue() -> None:
    """Reset to the default catalogue."""
    global _current_catalogue
    _current_catalogue = None
