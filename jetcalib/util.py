# coding: utf-8

"""
Helpers shared by the calibration tools, stages and configuration.
"""

from __future__ import annotations

__all__ = [
    "maybe_import", "real_path", "is_pattern", "is_regex", "pattern_matcher",
    "load_correction_set", "DotDict", "MockModule", "classproperty", "DerivableMeta", "Derivable",
]

import os
import abc
import gzip
import importlib
import fnmatch
import re
import inspect
from collections import OrderedDict

from jetcalib.types import Callable, Any, Sequence, ModuleType


def maybe_import(name: str, force: bool = False) -> ModuleType | MockModule:
    """
    Imports and returns the module *name*. When the module itself is not installed, a
    :py:class:`MockModule` with the same name is returned instead so that module-level imports of
    optional array libraries do not fail, unless *force* is *True*. Import errors of other modules
    are always raised.
    """
    try:
        return importlib.import_module(name)
    except ImportError as e:
        m = re.match(r"^No\smodule\snamed\s\'(.+)\'$", str(e))
        if force or not m or not name.startswith(m.group(1)):
            raise
        return MockModule(name)


correctionlib = maybe_import("correctionlib")


def real_path(*path: str) -> str:
    """
    Joins the *path* fragments, expands user directories and environment variables, also when
    they are nested, and returns the absolute, real location.
    """
    path = os.path.join(*map(str, path))
    while "$" in path or "~" in path:
        expanded = os.path.expandvars(os.path.expanduser(path))
        # unset variables stay unexpanded
        if expanded == path:
            break
        path = expanded

    return os.path.realpath(path)


def is_pattern(s: str) -> bool:
    """
    Returns *True* if *s* contains fnmatch wildcards ("*" or "?").
    """
    return "*" in s or "?" in s


def is_regex(s: str) -> bool:
    """
    Returns *True* if *s* is a regular expression, i.e., it starts with "^" and ends with "$".
    """
    return s.startswith("^") and s.endswith("$")


def pattern_matcher(pattern: Sequence[str] | str, mode: Callable = any) -> Callable[[str], bool]:
    r"""
    Returns a function testing whether a string matches *pattern*, which can be a regular
    expression (``^...$``), an fnmatch pattern or a plain name. For a sequence of patterns, the
    single results are combined with *mode*, e.g. *any* or *all*.

    .. code-block:: python

        matcher = pattern_matcher("JET_EffectiveNP_*")
        matcher("JET_EffectiveNP_1__1up")  # -> True
        matcher("JET_JER_SINGLE_NP__1up")  # -> False

        matcher = pattern_matcher(r"^JET_JER_NP\d+__1up$")
        matcher("JET_JER_NP3__1up")  # -> True

        matcher = pattern_matcher(("*InSitu*", "*Insitu*"))
        matcher("EtaIntercalibration_InSitu")  # -> True
    """
    if isinstance(pattern, (list, tuple, set)):
        matchers = [pattern_matcher(p) for p in pattern]
        return lambda s: mode(match(s) for match in matchers)

    if is_regex(pattern):
        cre = re.compile(pattern)
        return lambda s: cre.match(s) is not None

    if is_pattern(pattern):
        return lambda s: fnmatch.fnmatch(s, pattern)

    return lambda s: s == pattern


def load_correction_set(target: str | Any) -> correctionlib.highlevel.CorrectionSet:
    """
    Loads a :external+correctionlib:py:class:`correctionlib.highlevel.CorrectionSet` from a json
    file located at *target*, which is allowed to be gzipped. When *target* is not a string, it is
    assumed to be an already loaded correction set (or an object with the same interface) and is
    returned unchanged.

    :param target: Path to the json file, or a loaded correction set.
    :raises IOError: If *target* refers to a file that does not exist.
    :return: The correction set.
    """
    if not isinstance(target, str):
        return target

    path = real_path(target)
    if not os.path.isfile(path):
        raise IOError(f"correction file '{path}' does not exist")

    if path.endswith(".gz"):
        with gzip.open(path, "rt") as f:
            return correctionlib.CorrectionSet.from_string(f.read().strip())

    return correctionlib.CorrectionSet.from_file(path)


class DotDict(OrderedDict):
    """
    Ordered dictionary with attribute access to its items, used for tool sets, tool classes and
    event information. Missing items accessed as attributes raise an *AttributeError*.

    .. code-block:: python

        tools = DotDict(calibration=calib_tool, jes=None)
        tools.calibration  # -> calib_tool

        event_info = DotDict.wrap({"event": 1234, "beam": {"energy": 6800.0}})
        event_info.beam.energy  # -> 6800.0
    """

    def __getattr__(self, attr: str) -> Any:
        try:
            return self[attr]
        except KeyError:
            raise AttributeError(f"'{self.__class__.__name__}' object has no attribute '{attr}'")

    def __setattr__(self, attr: str, value: Any) -> None:
        self[attr] = value

    @classmethod
    def wrap(cls, *args, **kwargs) -> DotDict:
        """
        Creates a :py:class:`DotDict` from the dictionary arguments, converting nested dictionaries
        as well.
        """
        wrap = lambda d: cls((k, wrap(v)) for k, v in d.items()) if isinstance(d, dict) else d
        return wrap(OrderedDict(*args, **kwargs))


class MockModule(object):
    """
    Placeholder returned by :py:func:`maybe_import` for modules that are not installed. Every
    attribute lookup returns the placeholder itself, so annotations such as ``ak.Array`` still
    work, while calling it fails.
    """

    def __init__(self, name: str):
        super().__init__()

        self._name = name

    def __getattr__(self, attr: str) -> MockModule:
        return self

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} '{self._name}' at {hex(id(self))}>"

    def __call__(self, *args, **kwargs) -> None:
        raise Exception(f"{self._name} is not installed and cannot be called")

    def __bool__(self) -> bool:
        return False


class classproperty(object):
    """
    Read-only property of a class, also accessible on instances.
    """

    def __init__(self, fget: Callable):
        super().__init__()

        self.fget = fget

    def __get__(self, obj: Any, cls: type | None = None) -> Any:
        return self.fget(type(obj) if cls is None else cls)


class DerivableMeta(abc.ABCMeta):
    """
    Meta class of :py:class:`Derivable` objects that allows creating subclasses in a single call
    with :py:meth:`derive`.

    Classes can define an ``update_cls_dict(cls_name, cls_dict, get_attr)`` hook that is called
    with the attributes of every subclass before it is created. *get_attr* looks up an attribute in
    the new class dict first and falls back to the bases.
    """

    def __new__(metacls, cls_name: str, bases: tuple, cls_dict: dict) -> DerivableMeta:
        cls_dict = cls_dict.copy()

        def get_attr(attr):
            if attr in cls_dict:
                return cls_dict[attr]
            for base in bases:
                if hasattr(base, attr):
                    return getattr(base, attr)
            raise AttributeError(f"attribute {attr} not found in {cls_name}")

        update_cls_dict = cls_dict.get("update_cls_dict")
        if update_cls_dict is not None:
            # stored as static method so that subclasses can reuse it
            cls_dict["update_cls_dict"] = staticmethod(update_cls_dict)
        else:
            hooks = [base.update_cls_dict for base in bases if hasattr(base, "update_cls_dict")]
            update_cls_dict = hooks[0] if hooks else None
        if update_cls_dict is not None:
            update_cls_dict(cls_name, cls_dict, get_attr)

        return super().__new__(metacls, cls_name, bases, cls_dict)

    def derive(
        cls,
        cls_name: str,
        bases: tuple = (),
        cls_dict: dict[str, Any] | None = None,
        module: ModuleType | None = None,
    ) -> DerivableMeta:
        """
        Creates a subclass named *cls_name* of this class and the optional *bases*, with the
        attributes in *cls_dict*. The ``__module__`` of the subclass is set to *module*, or to the
        module of the caller.
        """
        bases = tuple(bases) if isinstance(bases, (list, tuple)) else (bases,)
        subcls = cls.__class__(cls_name, (cls,) + bases, cls_dict or {})

        if not module:
            module = inspect.getmodule(inspect.stack()[1][0])
        if module:
            subcls.__module__ = module.__name__

        return subcls

    def derived_by(cls, other: Any) -> bool:
        """
        Returns *True* if *other* is this class or one of its subclasses.
        """
        return isinstance(other, DerivableMeta) and issubclass(other, cls)


class Derivable(object, metaclass=DerivableMeta):
    """
    Base class of objects that are derived with :py:meth:`DerivableMeta.derive`, such as
    calibration stages and provider tools.
    """

    @classproperty
    def cls_name(cls) -> str:
        return cls.__name__
