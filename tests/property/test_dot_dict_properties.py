"""Property-based tests for DotDict."""

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from groundwork.dot_dict import DotDict

RESERVED = {"set", "dict", "to_dict", "get", "has"}
valid_key = st.text(alphabet="abcdefghijklmnopqrstuvwxyz", min_size=1, max_size=10).filter(
    lambda s: s not in RESERVED and s not in {"self", "cls"}
)


@pytest.mark.property
@pytest.mark.unit
class TestDotDictProperties:
    @given(key=valid_key, value=st.text(max_size=50))
    def test_set_get_roundtrip(self, key: str, value: str) -> None:
        d = DotDict()
        d[key] = value
        assert d[key] == value
        assert getattr(d, key) == value

    @given(keys=st.lists(valid_key, min_size=1, max_size=4, unique=True), value=st.integers())
    @settings(max_examples=50)
    def test_dotted_path_reaches_nested_value(self, keys: list[str], value: int) -> None:
        nested: dict = {keys[-1]: value}
        for key in reversed(keys[:-1]):
            nested = {key: nested}

        d = DotDict(**nested)

        assert d.get(".".join(keys)) == value
        assert d.has(".".join(keys))
        assert d.to_dict() == nested

    @given(key=valid_key)
    def test_missing_key_behavior(self, key: str) -> None:
        d = DotDict()
        assert d[key] is None
        assert d.get(key) is None
        assert d.get(f"{key}.deeper", "fallback") == "fallback"
        assert not d.has(key)

    @given(key=st.sampled_from(sorted(RESERVED)), value=st.integers())
    def test_reserved_keys_raise_error(self, key: str, value: int) -> None:
        d = DotDict()
        with pytest.raises(ValueError, match="reserved"):
            d[key] = value
