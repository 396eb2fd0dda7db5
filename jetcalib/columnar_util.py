# coding: utf-8

"""
Helpers and utilities for working with columnar libraries.
"""

from __future__ import annotations

__all__ = [
    "split_route", "has_ak_column", "set_ak_column", "layout_ak_array",
    "flat_np_view", "sort_ak_by",
]

from jetcalib.types import Sequence
from jetcalib.util import maybe_import

np = maybe_import("numpy")
ak = maybe_import("awkward")


def split_route(route: Sequence[str] | str) -> tuple[str, ...]:
    """
    Splits a *route* given in dot format (e.g. ``"parent.pt"``) or as a sequence of field names into
    a tuple of field names. Empty fragments are dropped.
    """
    if isinstance(route, str):
        route = route.split(".")
    return tuple(str(field) for field in route if field)


def has_ak_column(
    ak_array: ak.Array,
    route: Sequence[str] | str,
) -> bool:
    """
    Returns whether an awkward array *ak_array* contains a nested field identified by a *route*. A
    route can be a tuple of strings where each string refers to a subfield, e.g.
    ``("parent", "pt")``, or a string with dot format (e.g. ``"parent.pt"``).
    """
    fields = split_route(route)

    # handle empty route
    if not fields:
        return False

    for field in fields:
        if field not in ak.fields(ak_array):
            return False
        ak_array = ak_array[field]

    return True


def set_ak_column(
    ak_array: ak.Array,
    route: Sequence[str] | str,
    value: ak.Array,
    value_type: type | str | None = None,
) -> ak.Array:
    """
    Inserts a new column into awkward array *ak_array* and returns a new view with the column added
    or overwritten. The original array is not changed, and all other columns are shared between the
    original array and the returned view.

    The column is defined through a route, i.e., a tuple of strings where each string refers to a
    subfield, e.g. ``("parent", "pt")``, or a string with dot format (e.g. ``"parent.pt"``), and the
    column *value* itself. Intermediate, non-existing fields are automatically created. When a
    *value_type* is defined, *value* is casted into this type before it is inserted.

    Example:

    .. code-block:: python

        jets = ak.zip({"pt": [30.0, 20.0], "eta": [2.5, -1.0]})

        set_ak_column(jets, "jvt", [0.9, 0.3])
        set_ak_column(jets, "parent.pt", [250.0, 80.0])  # creates subfield "parent" first
    """
    fields = split_route(route)

    # handle empty route
    if not fields:
        raise ValueError("route must not be empty")

    # cast type
    if value_type:
        value = ak.values_astype(value, value_type)

    # force creating a view for consistent behavior
    ak_array = ak.Array(ak_array)

    # identify the longest existing part of the route
    # example: route is ("a", "b", "c"), "a" exists, the sub field "b" does not, "c" should be set
    n_existing = len(fields) - 1
    while n_existing and not has_ak_column(ak_array, fields[:n_existing]):
        n_existing -= 1

    # wrap the value via ak.zip for all missing intermediate fields
    for field in reversed(fields[n_existing + 1:]):
        value = ak.zip({field: value})

    # insert the value
    where = fields[:n_existing + 1]
    return ak.with_field(ak_array, value, where=where[0] if len(where) == 1 else list(where))


def layout_ak_array(data_array: np.array | ak.Array, layout_array: ak.Array) -> ak.Array:
    """
    Takes a *data_array* and structures its contents into the same structure as *layout_array*, with
    up to one level of nesting. In particular, this function can be used to create new awkward
    arrays from existing numpy arrays and forcing a known, potentially ragged shape to it. Example:

    .. code-block:: python

        a = np.array([1.0, 2.0, 3.0, 4.0, 5.0])
        b = ak.Array([[], [0, 0], [], [0, 0, 0]])

        c = layout_ak_array(a, b)
        # <Array [[], [1.0, 2.0], [], [3.0, 4.0, 5.0]] type='4 * var * float64'>

    When *layout_array* is flat, i.e., it contains the jets of a single event, the flat data is
    returned as an awkward array.
    """
    flat_data = ak.flatten(data_array, axis=None)
    if layout_array.ndim == 1:
        return ak.Array(flat_data)
    return ak.unflatten(flat_data, ak.num(layout_array, axis=1), axis=0)


def flat_np_view(ak_array: ak.Array, axis: int | None = None) -> np.array:
    """
    Takes an *ak_array* and returns a fully flattened numpy view. The flattening is applied along
    *axis*. See *ak.flatten* for more info.
    """
    return np.asarray(ak.flatten(ak_array, axis=axis))


def sort_ak_by(ak_array: ak.Array, field: str, ascending: bool = False) -> ak.Array:
    """
    Sorts the innermost list of records in *ak_array* by the values in *field*. The sorting is
    stable, i.e., records with equal values keep their relative order.
    """
    if ak_array[field].ndim == 1:
        values = np.asarray(ak_array[field])
        indices = np.argsort(values if ascending else -values, kind="stable")
    else:
        indices = ak.argsort(ak_array[field], axis=-1, ascending=ascending, stable=True)

    return ak_array[indices]
