"""The extension pool, observers of it and plugin dependency holders."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Callable, Generic, TypeVar

log = logging.getLogger(__name__)

T = TypeVar("T")


class Signal:
    """A minimal synchronous signal with connectable slots."""

    def __init__(self):
        self._slots: list[Callable[..., object]] = []

    def connect(self, slot: Callable[..., object]) -> Callable[..., object]:
        """Connect ``slot``; it is called on every emission."""
        self._slots.append(slot)
        return slot

    def disconnect(self, slot: Callable[..., object]) -> None:
        """Disconnect ``slot`` if it is connected."""
        try:
            self._slots.remove(slot)
        except ValueError:
            pass

    def emit(self, *args) -> None:
        """Call every connected slot with ``args``."""
        for slot in list(self._slots):
            slot(*args)


class Extension(ABC):
    """A member of the extension pool."""

    @property
    @abstractmethod
    def id(self) -> str:
        """Identifier; namespaced by the plugin, e.g. ``files.rootbrowser``."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Pretty, human readable name."""

    @property
    @abstractmethod
    def description(self) -> str:
        """Brief description of this extension."""


class ExtensionRegistry:
    """The common extension pool.

    Services track extensions through the ``added`` and ``removed`` signals
    or with an :class:`ExtensionWatcher`.
    """

    def __init__(self):
        self._extensions: dict[str, Extension] = {}
        self.added = Signal()
        self.removed = Signal()

    def register(self, extension: Extension) -> bool:
        """Add ``extension``; returns False if its id is already taken."""
        if extension.id in self._extensions:
            log.warning("Extension '%s' is already registered.", extension.id)
            return False
        self._extensions[extension.id] = extension
        self.added.emit(extension)
        return True

    def deregister(self, extension: Extension) -> None:
        """Remove ``extension`` from the registry."""
        if self._extensions.get(extension.id) is not extension:
            log.warning("Extension '%s' is not registered.", extension.id)
            return
        del self._extensions[extension.id]
        self.removed.emit(extension)

    def extensions(self, kind: type | None = None) -> dict[str, Extension]:
        """Registered extensions by id, in id order, optionally of ``kind`` only."""
        return {
            extension_id: extension
            for extension_id, extension in sorted(self._extensions.items())
            if kind is None or isinstance(extension, kind)
        }

    def extension(self, extension_id: str, kind: type | None = None) -> Extension | None:
        """The extension with ``extension_id`` if it exists and is of ``kind``."""
        extension = self._extensions.get(extension_id)
        if extension is None or (kind is not None and not isinstance(extension, kind)):
            return None
        return extension


class ExtensionWatcher(Generic[T]):
    """Observes a registry for extensions of one kind.

    Subclasses override :meth:`on_add` and :meth:`on_remove`, or callbacks
    are given to the constructor; the kind is given to the constructor or
    set as the class attribute ``kind``.
    """

    kind: type = Extension

    def __init__(self, registry: ExtensionRegistry | None = None, kind: type | None = None,
                 on_add: Callable[[T], object] | None = None,
                 on_remove: Callable[[T], object] | None = None):
        if kind is not None:
            self.kind = kind
        self._add_callback = on_add
        self._remove_callback = on_remove
        self._registry: ExtensionRegistry | None = None
        if registry is not None:
            self.set_registry(registry)

    def _added(self, extension: Extension) -> None:
        if isinstance(extension, self.kind):
            self.on_add(extension)

    def _removed(self, extension: Extension) -> None:
        if isinstance(extension, self.kind):
            self.on_remove(extension)

    def set_registry(self, registry: ExtensionRegistry) -> None:
        """Track ``registry`` instead of the one tracked so far."""
        self.close()
        self._registry = registry
        registry.added.connect(self._added)
        registry.removed.connect(self._removed)

    def on_add(self, extension: T) -> None:
        """Called when an extension of the watched kind has been registered."""
        if self._add_callback is not None:
            self._add_callback(extension)

    def on_remove(self, extension: T) -> None:
        """Called when an extension of the watched kind has been deregistered."""
        if self._remove_callback is not None:
            self._remove_callback(extension)

    def close(self) -> None:
        """Stop tracking the registry."""
        if self._registry is not None:
            self._registry.added.disconnect(self._added)
            self._registry.removed.disconnect(self._removed)
            self._registry = None


class DependencyError(RuntimeError):
    """Raised when a required dependency is not available."""


class _Dependency(Generic[T]):
    def __init__(self, registry: ExtensionRegistry, extension_id: str, kind: type = Extension):
        self.extension_id = extension_id
        self.kind = kind
        self.dependency: T | None = None
        extension = registry.extensions().get(extension_id)
        if extension is not None:
            if isinstance(extension, kind):
                self.dependency = extension
            else:
                log.warning("Found '%s' but failed casting to expected type.", extension_id)

    def __bool__(self) -> bool:
        return self.dependency is not None


class StrongDependency(_Dependency[T]):
    """Holds a required dependency; raises if it is not available."""

    def __init__(self, registry: ExtensionRegistry, extension_id: str, kind: type = Extension):
        super().__init__(registry, extension_id, kind)
        if self.dependency is None:
            raise DependencyError(f"Required dependency '{extension_id}' not available.")


class WeakDependency(_Dependency[T]):
    """Holds an optional dependency, following its (de)registration.

    ``callback`` is called with True when the dependency appears and with
    False when it goes away; in the latter case it is still usable during
    the call.
    """

    def __init__(self, registry: ExtensionRegistry, extension_id: str,
                 kind: type = Extension, callback: Callable[[bool], object] | None = None):
        super().__init__(registry, extension_id, kind)
        self.callback = callback
        self._registry: ExtensionRegistry | None = registry
        registry.added.connect(self._added)
        registry.removed.connect(self._removed)

    def _added(self, extension: Extension) -> None:
        if extension.id != self.extension_id:
            return
        if self.dependency is not None:
            log.warning("WeakDependency already set. Internal logic error?")
        elif isinstance(extension, self.kind):
            self.dependency = extension
            if self.callback:
                self.callback(True)
        else:
            log.warning("Failed casting '%s' to expected type.", self.extension_id)

    def _removed(self, extension: Extension) -> None:
        if extension.id != self.extension_id:
            return
        if self.dependency is None:
            log.warning("WeakDependency already unset. Internal logic error?")
        elif isinstance(extension, self.kind):
            if self.callback:
                self.callback(False)
            self.dependency = None
        else:
            log.warning("Failed casting '%s' to expected type.", self.extension_id)

    def close(self) -> None:
        """Stop following the registry."""
        if self._registry is not None:
            self._registry.added.disconnect(self._added)
            self._registry.removed.disconnect(self._removed)
            self._registry = None