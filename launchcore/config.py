"""Application locations and INI backed persistent settings."""

from __future__ import annotations

import threading
from configparser import ConfigParser
from pathlib import Path
from typing import Any, Iterable, Mapping

import platformdirs

APP_NAME = "launchcore"
GENERAL_SECTION = "General"

_write_lock = threading.RLock()


def config_location() -> Path:
    """The directory where configuration files are stored."""
    return Path(platformdirs.user_config_dir(APP_NAME))


def data_location() -> Path:
    """The directory where data files are stored."""
    return Path(platformdirs.user_data_dir(APP_NAME))


def cache_location() -> Path:
    """The directory where cache files are stored."""
    return Path(platformdirs.user_cache_dir(APP_NAME))


def _format(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _convert(raw: str, default: Any) -> Any:
    try:
        if isinstance(default, bool):
            return raw.strip().lower() in ("true", "1", "yes", "on")
        if isinstance(default, int):
            return int(raw)
        if isinstance(default, float):
            return float(raw)
    except ValueError:
        return default
    return raw


def _split_key(key: str) -> tuple[str, str]:
    section, separator, option = key.partition("/")
    if not separator:
        section, option = GENERAL_SECTION, key
    if not section or not option:
        raise ValueError(f"invalid settings key: {key!r}")
    return section, option


class Settings:
    """Key/value settings stored in an INI file.

    Keys of the form ``group/name`` live in section ``group``; keys without a
    group live in the ``General`` section. Every change is written at once.
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def _load(self) -> ConfigParser:
        parser = ConfigParser(interpolation=None, delimiters=("=",))
        parser.optionxform = str
        if self.path.exists():
            parser.read(self.path, encoding="utf-8")
        return parser

    def _save(self, parser: ConfigParser) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.path.open("w", encoding="utf-8") as stream:
            parser.write(stream)

    def value(self, key: str, default: Any = None) -> Any:
        """Return the value of ``key`` converted to the type of ``default``."""
        section, option = _split_key(key)
        parser = self._load()
        if not parser.has_option(section, option):
            return default
        return _convert(parser.get(section, option), default)

    def set_value(self, key: str, value: Any) -> None:
        """Store ``value`` under ``key``."""
        section, option = _split_key(key)
        with _write_lock:
            parser = self._load()
            if not parser.has_section(section):
                parser.add_section(section)
            parser.set(section, option, _format(value))
            self._save(parser)

    def remove(self, key: str) -> None:
        """Remove ``key``; a bare group name removes the whole group."""
        with _write_lock:
            parser = self._load()
            if "/" not in key:
                parser.remove_section(key)
            section, option = _split_key(key)
            if parser.has_section(section):
                parser.remove_option(section, option)
                if not parser.options(section):
                    parser.remove_section(section)
            self._save(parser)

    def read_array(self, name: str) -> list[dict[str, str]]:
        """Read the rows of array ``name`` as dictionaries of strings."""
        parser = self._load()
        if not parser.has_section(name):
            return []
        section = parser[name]
        try:
            size = int(section.get("size", "0"))
        except ValueError:
            return []
        rows: list[dict[str, str]] = [{} for _ in range(size)]
        for option, raw in section.items():
            row, separator, field_name = option.partition("/")
            if separator and row.isdigit() and 1 <= int(row) <= size:
                rows[int(row) - 1][field_name] = raw
        return rows

    def write_array(self, name: str, rows: Iterable[Mapping[str, Any]]) -> None:
        """Replace array ``name`` with ``rows``."""
        rows = list(rows)
        with _write_lock:
            parser = self._load()
            parser.remove_section(name)
            parser.add_section(name)
            for number, row in enumerate(rows, start=1):
                for field_name, value in row.items():
                    parser.set(name, f"{number}/{field_name}", _format(value))
            parser.set(name, "size", str(len(rows)))
            self._save(parser)


def settings() -> Settings:
    """Persistent application settings."""
    return Settings(config_location() / "config")


def state() -> Settings:
    """Persistent application state."""
    return Settings(cache_location() / "state")