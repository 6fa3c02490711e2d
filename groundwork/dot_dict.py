"""
Dictionary-like object with attribute access and dot-path lookup.

Configuration sections are exposed as DotDict instances so code can write
``config.server.port`` or ``config.get("server.session.secret")``.
"""

from collections.abc import ItemsView, Iterator, KeysView, ValuesView
from typing import Any


class DotDict:
    """
    Dictionary-like object with attribute-style access and nested structure support.

    Nested dictionaries are converted to DotDict instances on assignment and
    lists are mapped element by element.
    """

    # Keys that would shadow methods used by the framework
    _RESERVED_KEYS = frozenset({"set", "dict", "to_dict", "get", "has"})

    def __init__(self, **kwargs: Any) -> None:
        self.set(**kwargs)

    def set(self, **kwargs: Any) -> "DotDict":
        """Set multiple key-value pairs, returning self for chaining."""
        for key, val in kwargs.items():
            self._set_item(key, val)
        return self

    def _set_item(self, key: Any, val: Any) -> None:
        if not isinstance(key, str):
            key = str(key)

        if key in self._RESERVED_KEYS:
            raise ValueError(
                f"Key '{key}' is reserved and cannot be used (would shadow method)"
            )

        if isinstance(val, dict):
            setattr(self, key, DotDict(**val))
        elif isinstance(val, list):
            setattr(self, key, list(map(self._map_entry, val)))
        else:
            setattr(self, key, val)

    @staticmethod
    def _map_entry(entry: Any) -> Any:
        if isinstance(entry, dict):
            return DotDict(**entry)
        return entry

    def to_dict(self) -> dict[str, Any]:
        """Recursively convert to plain dicts and lists."""
        result: dict[str, Any] = {}
        for key, val in self.__dict__.items():
            if isinstance(val, DotDict):
                result[key] = val.to_dict()
            elif isinstance(val, list):
                result[key] = [
                    item.to_dict() if isinstance(item, DotDict) else item
                    for item in val
                ]
            else:
                result[key] = val
        return result

    def keys(self) -> KeysView[str]:
        return self.__dict__.keys()

    def values(self) -> ValuesView[Any]:
        return self.__dict__.values()

    def items(self) -> ItemsView[str, Any]:
        return self.__dict__.items()

    def __iter__(self) -> Iterator[str]:
        return iter(self.__dict__)

    def __contains__(self, key: Any) -> bool:
        return key in self.__dict__

    def __getitem__(self, key: str) -> Any:
        return getattr(self, key) if key in self.__dict__ else None

    def __setitem__(self, key: str, val: Any) -> None:
        if key in self.__dict__:
            delattr(self, key)
        self._set_item(key, val)

    def __len__(self) -> int:
        return len(self.__dict__)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, DotDict):
            return self.to_dict() == other.to_dict()
        if isinstance(other, dict):
            return self.to_dict() == other
        return NotImplemented

    def __repr__(self) -> str:
        return f"DotDict({self.to_dict()!r})"

    def has(self, path: str) -> bool:
        """
        Check if a dot-separated path exists.

        Args:
            path: Dot-separated path to check (e.g., "server.session.secret")
        """
        sentinel = object()
        return self.get(path, sentinel) is not sentinel

    def get(self, path: str, default: Any = None) -> Any:
        """
        Get value by dot-separated path.

        Follows dict.get() semantics: returns default if the path is not found.

        Args:
            path: Dot-separated path (e.g., "server.port")
            default: Value returned when the path is missing
        """
        if not path:
            return default

        cur: Any = self
        for item in (part for part in path.split(".") if part):
            if not isinstance(cur, DotDict) or item not in cur.__dict__:
                return default
            cur = cur.__dict__[item]
        return cur
