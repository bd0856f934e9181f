"""
Tests for composite key encoding.

The encoding must be deterministic and injective: if two attribute
tuples could ever map to one key, two data records would silently
share a storage slot.
"""

import pytest

from iotledger.core.errors import InvalidKeyError
from iotledger.core.keys import (
    create_composite_key,
    is_composite_key,
    split_composite_key,
    validate_simple_key,
)


class TestCreateCompositeKey:

    def test_layout(self):
        """Namespace, category and every attribute are U+0000 terminated."""
        key = create_composite_key("DataRecord", ["dev-1", "2024-01-01T00:00:00Z"])
        assert key == "\x00DataRecord\x00dev-1\x002024-01-01T00:00:00Z\x00"

    def test_deterministic(self):
        assert create_composite_key("C", ["a", "b"]) == create_composite_key("C", ("a", "b"))

    def test_no_collision_on_shifted_boundaries(self):
        """('a', 'bc') and ('ab', 'c') are different keys."""
        assert create_composite_key("C", ["a", "bc"]) != create_composite_key("C", ["ab", "c"])

    def test_no_collision_with_empty_attributes(self):
        keys = {
            create_composite_key("C", []),
            create_composite_key("C", [""]),
            create_composite_key("C", ["", ""]),
            create_composite_key("C", ["a", ""]),
            create_composite_key("C", ["", "a"]),
        }
        assert len(keys) == 5

    def test_category_separates_key_spaces(self):
        assert create_composite_key("A", ["x"]) != create_composite_key("B", ["x"])

    def test_partial_key_is_prefix(self):
        """A key over leading attributes prefixes every full key sharing them."""
        partial = create_composite_key("DataRecord", ["dev-1"])
        full = create_composite_key("DataRecord", ["dev-1", "t1"])
        other = create_composite_key("DataRecord", ["dev-10", "t1"])
        assert full.startswith(partial)
        assert not other.startswith(partial)

    @pytest.mark.parametrize("attribute", ["a\x00b", "\x00", "x\U0010ffff", "\udc80"])
    def test_rejects_bad_attributes(self, attribute):
        with pytest.raises(InvalidKeyError):
            create_composite_key("C", ["ok", attribute])

    @pytest.mark.parametrize("category", ["", "Data\x00Record"])
    def test_rejects_bad_category(self, category):
        with pytest.raises(InvalidKeyError):
            create_composite_key(category, ["a"])

    def test_rejects_non_string_attribute(self):
        with pytest.raises(InvalidKeyError, match="must be a string"):
            create_composite_key("C", ["a", 42])


class TestSplitCompositeKey:

    @pytest.mark.parametrize("attributes", [[], [""], ["dev-1", "2024-01-01T00:00:00Z"], ["ü", "", "x"]])
    def test_inverse_of_create(self, attributes):
        key = create_composite_key("DataRecord", attributes)
        assert split_composite_key(key) == ("DataRecord", attributes)

    @pytest.mark.parametrize("key", ["dev-1", "", "\x00", "\x00\x00", "\x00abc"])
    def test_rejects_non_composite(self, key):
        with pytest.raises(InvalidKeyError):
            split_composite_key(key)


class TestSimpleKeys:

    def test_plain_ids_accepted(self):
        validate_simple_key("dev-1")
        assert not is_composite_key("dev-1")

    def test_composite_space_reserved(self):
        with pytest.raises(InvalidKeyError, match="reserved"):
            validate_simple_key("\x00dev")

    def test_empty_rejected(self):
        with pytest.raises(InvalidKeyError):
            validate_simple_key("")

    def test_lone_surrogate_rejected(self):
        with pytest.raises(InvalidKeyError, match="UTF-8"):
            validate_simple_key("dev-\ud800")
