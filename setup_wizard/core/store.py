from typing import Any, Dict, Protocol


class KeyValueStore(Protocol):
    """The slice of a host settings store the wizard relies on."""

    def get(self, key: str, default: Any = None) -> Any:
        ...

    def set(self, key: str, value: Any) -> None:
        ...

    def add(self, key: str, value: Any) -> bool:
        ...

    def delete(self, key: str) -> bool:
        ...

    def __contains__(self, key: str) -> bool:
        ...


class MemoryStore:
    def __init__(self, data: Dict[str, Any] | None = None):
        self.data: Dict[str, Any] = dict(data or {})

    def get(self, key: str, default: Any = None) -> Any:
        return self.data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self.data[key] = value

    def add(self, key: str, value: Any) -> bool:
        if key in self.data:
            return False
        self.data[key] = value
        return True

    def delete(self, key: str) -> bool:
        if key not in self.data:
            return False
        del self.data[key]
        return True

    def __contains__(self, key: str) -> bool:
        return key in self.data
