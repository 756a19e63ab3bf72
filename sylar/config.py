"""Named, typed configuration variables with change listeners and YAML loading.

Variables live in one process-wide registry keyed by dotted, lower-case
names such as ``system.port``. Loading a YAML document maps nested keys
onto those names and updates every variable that is already registered.
"""

from __future__ import annotations

import itertools
import logging
import threading
from abc import ABC, abstractmethod
from typing import Any, Callable, ClassVar, Dict, Generic, List, Optional, Tuple, TypeVar

import yaml

logger = logging.getLogger(__name__)

T = TypeVar("T")
Listener = Callable[[Any, Any], None]

_VALID_NAME_CHARS = frozenset("abcdefghijklmnopqrstuvwxyz._0123456789")
_listener_ids = itertools.count(1)


def _is_valid_name(name: str) -> bool:
    return all(ch in _VALID_NAME_CHARS for ch in name)


def _plain(value: Any) -> Any:
    """Turn a value into plain YAML-serialisable data."""
    if isinstance(value, dict):
        return {str(k): _plain(v) for k, v in value.items()}
    if isinstance(value, (set, frozenset)):
        items = [_plain(v) for v in value]
        try:
            return sorted(items)
        except TypeError:
            return items
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    return value


def _scalar_text(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return ""
    return str(value)


def _to_text(value: Any) -> str:
    if isinstance(value, (dict, list, tuple, set, frozenset)):
        return yaml.safe_dump(_plain(value), default_flow_style=False, sort_keys=True).rstrip("\n")
    return _scalar_text(value)


def _coerce(data: Any, template: Any) -> Any:
    """Convert parsed YAML data to the shape and type of ``template``."""
    if isinstance(template, bool):
        if isinstance(data, bool):
            return data
        if isinstance(data, int) and data in (0, 1):
            return bool(data)
        raise ValueError(f"cannot convert {data!r} to bool")
    if isinstance(template, int):
        if isinstance(data, bool):
            raise ValueError(f"cannot convert {data!r} to int")
        if isinstance(data, int):
            return data
        if isinstance(data, str):
            return int(data)
        raise ValueError(f"cannot convert {data!r} to int")
    if isinstance(template, float):
        if isinstance(data, bool):
            raise ValueError(f"cannot convert {data!r} to float")
        if isinstance(data, (int, float)):
            return float(data)
        if isinstance(data, str):
            return float(data)
        raise ValueError(f"cannot convert {data!r} to float")
    if isinstance(template, str):
        if isinstance(data, (dict, list)):
            return _to_text(data)
        return _scalar_text(data)
    if isinstance(template, (list, tuple, set, frozenset)):
        if data is None:
            data = []
        if not isinstance(data, list):
            raise ValueError(f"expected a sequence, got {data!r}")
        element = next(iter(template), None)
        items = [_coerce(item, element) if element is not None else item for item in data]
        return type(template)(items)
    if isinstance(template, dict):
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ValueError(f"expected a mapping, got {data!r}")
        element = next(iter(template.values()), None)
        return type(template)(
            (str(k), _coerce(v, element) if element is not None else v) for k, v in data.items()
        )
    if template is None or isinstance(data, type(template)):
        return data
    return type(template)(data)


class ConfigVarBase(ABC):
    """A named configuration entry that converts to and from text."""

    def __init__(self, name: str, description: str = "") -> None:
        self._name = name.lower()
        self._description = description

    @property
    def name(self) -> str:
        return self._name

    @property
    def description(self) -> str:
        return self._description

    @property
    @abstractmethod
    def type_name(self) -> str:
        """Name of the value's type."""

    @abstractmethod
    def to_string(self) -> str:
        """The value rendered as text."""

    @abstractmethod
    def from_string(self, text: str) -> bool:
        """Set the value from text; return whether it succeeded."""


class ConfigVar(ConfigVarBase, Generic[T]):
    """A configuration variable whose type is that of its default value."""

    def __init__(self, name: str, default_value: T, description: str = "") -> None:
        super().__init__(name, description)
        self._value = default_value
        self._value_type = type(default_value)
        self._listeners: Dict[int, Listener] = {}
        self._lock = threading.RLock()

    @property
    def value_type(self) -> type:
        return self._value_type

    @property
    def type_name(self) -> str:
        return self._value_type.__name__

    @property
    def value(self) -> T:
        with self._lock:
            return self._value

    @value.setter
    def value(self, new_value: T) -> None:
        with self._lock:
            if new_value == self._value:
                return
            for callback in list(self._listeners.values()):
                callback(self._value, new_value)
            self._value = new_value

    def to_string(self) -> str:
        try:
            with self._lock:
                return _to_text(self._value)
        except Exception as exc:  # noqa: BLE001 - conversion failures are reported, not raised
            logger.error("ConfigVar.to_string exception %s convert: %s to string",
                         exc, self.type_name)
        return ""

    def from_string(self, text: str) -> bool:
        try:
            template = self.value
            if isinstance(template, str):
                converted: Any = text
            else:
                converted = _coerce(yaml.safe_load(text), template)
            self.value = converted
            return True
        except Exception as exc:  # noqa: BLE001 - conversion failures are reported, not raised
            logger.error("ConfigVar.from_string exception %s convert: string to %s",
                         exc, self.type_name)
        return False

    def add_listener(self, callback: Listener) -> int:
        """Register ``callback(old, new)``; return its key."""
        with self._lock:
            key = next(_listener_ids)
            self._listeners[key] = callback
            return key

    def del_listener(self, key: int) -> None:
        with self._lock:
            self._listeners.pop(key, None)

    def get_listener(self, key: int) -> Optional[Listener]:
        with self._lock:
            return self._listeners.get(key)

    def clear_listeners(self) -> None:
        with self._lock:
            self._listeners.clear()

    def __repr__(self) -> str:
        return f"ConfigVar({self._name!r}, {self._value!r})"


def _list_all_members(prefix: str, node: Any, output: List[Tuple[str, Any]]) -> None:
    if not _is_valid_name(prefix):
        logger.error("Config invalid name %s.%s", prefix, node)
        return
    output.append((prefix, node))
    if isinstance(node, dict):
        for key, child in node.items():
            key_text = _scalar_text(key)
            _list_all_members(key_text if not prefix else f"{prefix}.{key_text}", child, output)


class Config:
    """Process-wide registry of configuration variables."""

    _datas: ClassVar[Dict[str, ConfigVarBase]] = {}
    _lock: ClassVar[threading.RLock] = threading.RLock()

    @classmethod
    def lookup(cls, name: str, default_value: Any, description: str = "") -> Optional[ConfigVar]:
        """Return the variable ``name``, creating it with ``default_value`` if absent.

        Returns None when it exists with a different type; raises ValueError
        for a name with characters outside ``[a-z0-9._]``.
        """
        with cls._lock:
            existing = cls._datas.get(name)
            if existing is not None:
                if isinstance(existing, ConfigVar) and existing.value_type is type(default_value):
                    logger.info("Lookup name=%s exists", name)
                    return existing
                logger.error("Lookup name=%s exists but type not %s real type = %s %s",
                             name, type(default_value).__name__, existing.type_name,
                             existing.to_string())
                return None
            if not _is_valid_name(name):
                logger.error("Lookup name invalid %s", name)
                raise ValueError(name)
            logger.info("create config: %s", name)
            var = ConfigVar(name, default_value, description)
            cls._datas[name] = var
            return var

    @classmethod
    def find(cls, name: str) -> Optional[ConfigVar]:
        """The typed variable ``name``, or None."""
        with cls._lock:
            var = cls._datas.get(name)
        return var if isinstance(var, ConfigVar) else None

    @classmethod
    def lookup_base(cls, name: str) -> Optional[ConfigVarBase]:
        with cls._lock:
            return cls._datas.get(name)

    @classmethod
    def load_from_yaml(cls, root: Any) -> None:
        """Update registered variables from parsed YAML data."""
        nodes: List[Tuple[str, Any]] = []
        _list_all_members("", root, nodes)
        for key, node in nodes:
            if not key:
                continue
            var = cls.lookup_base(key.lower())
            if var is None:
                continue
            if isinstance(node, (dict, list)):
                var.from_string(_to_text(node))
            else:
                var.from_string(_scalar_text(node))

    @classmethod
    def load_from_string(cls, text: str) -> None:
        """Parse YAML text and update registered variables from it."""
        cls.load_from_yaml(yaml.safe_load(text))

    @classmethod
    def visit(cls, callback: Callable[[ConfigVarBase], None]) -> None:
        with cls._lock:
            for var in list(cls._datas.values()):
                callback(var)

    @classmethod
    def clear(cls) -> None:
        """Forget every registered variable."""
        with cls._lock:
            cls._datas.clear()