# coding: utf-8

"""
Minimal per-event object store that the calibrator reads its inputs from and publishes its outputs
to.
"""

from __future__ import annotations

__all__ = ["EventStore"]

from collections import OrderedDict

from jetcalib.types import Any
from jetcalib.errors import MissingInputError


class EventStore(object):
    """
    Store of named objects of a single event. Objects are recorded once and cannot be overwritten,
    ownership of recorded objects is transferred to the store.

    .. code-block:: python

        store = EventStore({"Jets": jets, "EventInfo": {"event": 1234, "rho": 18.3}})
        store.retrieve("Jets")
        store.record("Jets_Calib", calibrated_jets)
    """

    def __init__(self, objects: dict[str, Any] | None = None):
        super().__init__()

        self._objects = OrderedDict(objects or {})

    def __contains__(self, name: str) -> bool:
        return name in self._objects

    def __len__(self) -> int:
        return len(self._objects)

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} objects={list(self._objects)}>"

    def keys(self) -> list[str]:
        return list(self._objects.keys())

    def retrieve(self, name: str) -> Any:
        """
        Returns the object stored under *name*.

        :raises MissingInputError: If no such object exists.
        """
        if name not in self._objects:
            raise MissingInputError(f"no object named '{name}' in event store")
        return self._objects[name]

    def record(self, name: str, obj: Any) -> None:
        """
        Stores *obj* under *name*.

        :raises ValueError: If an object with the same name was already recorded.
        """
        if name in self._objects:
            raise ValueError(f"object named '{name}' already recorded in event store")
        self._objects[name] = obj
