"""Variant value object and the normalized identity used to match line items."""

from protean.fields import String

from ordering.domain import ordering


@ordering.value_object
class Variant:
    """A product option chosen by the shopper, such as size or colour."""

    name = String(max_length=100)
    option = String(max_length=100)


def variant_key(variant) -> tuple | None:
    """Return a structural key for a variant, independent of key order.

    Accepts a ``Variant``, a plain dict, or ``None``. Empty values are
    dropped, so ``{}`` and ``None`` both mean "no variant".
    """
    if variant is None:
        return None
    data = variant if isinstance(variant, dict) else variant.to_dict()
    pairs = tuple(sorted((str(k), str(v)) for k, v in data.items() if v not in (None, "")))
    return pairs or None


def to_variant(data) -> Variant | None:
    """Build a ``Variant`` from a dict, passing existing variants through."""
    if data is None or isinstance(data, Variant):
        return data
    if not variant_key(data):
        return None
    return Variant(name=data.get("name"), option=data.get("option"))
