# coding: utf-8

"""
Shorthands to simplify imports of types that are spread across multiple packages.
"""

from __future__ import annotations

__all__ = []

from collections.abc import Mapping  # noqa
from types import ModuleType  # noqa
from typing import Any, Sequence, Callable  # noqa
