"""Tests for variant normalization."""

from ordering.shared.variant import Variant, to_variant, variant_key


class TestVariantKey:
    def test_key_ignores_field_order(self):
        assert variant_key({"name": "size", "option": "M"}) == variant_key({"option": "M", "name": "size"})

    def test_value_object_and_dict_agree(self):
        assert variant_key(Variant(name="size", option="M")) == variant_key({"name": "size", "option": "M"})

    def test_empty_means_no_variant(self):
        assert variant_key(None) is None
        assert variant_key({}) is None
        assert variant_key({"name": "", "option": None}) is None

    def test_to_variant_passes_through(self):
        variant = Variant(name="size", option="M")
        assert to_variant(variant) is variant
        assert to_variant({}) is None
        assert to_variant({"name": "colour", "option": "red"}).option == "red"
