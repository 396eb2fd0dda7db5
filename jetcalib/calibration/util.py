# coding: utf-8

"""
Useful functions for use by calibration stages and correction providers.
"""

from __future__ import annotations

import warnings

from jetcalib.types import Any, Callable
from jetcalib.errors import NumericWarning, MissingInputError
from jetcalib.columnar_util import flat_np_view, layout_ak_array
from jetcalib.util import maybe_import

np = maybe_import("numpy")
ak = maybe_import("awkward")
correctionlib = maybe_import("correctionlib")


def get_evaluators(
    correction_set: correctionlib.highlevel.CorrectionSet,
    names: list[str],
) -> list[Any]:
    """
    Helper function to get a list of correction evaluators from a
    :external+correctionlib:py:class:`correctionlib.highlevel.CorrectionSet` object given
    a list of *names*. The *names* can refer to either simple or compound
    corrections.

    :param correction_set: evaluator provided by :external+correctionlib:doc:`index`
    :param names: List of names of corrections to be applied
    :raises RuntimeError: If a requested correction in *names* is not available
    :return: List of compounded corrections, see
        :external+correctionlib:py:class:`correctionlib.highlevel.CorrectionSet`
    """
    # raise nice error if keys not found
    available_keys = set(correction_set.keys()).union(correction_set.compound.keys())
    missing_keys = set(names) - available_keys
    if missing_keys:
        raise RuntimeError("corrections not found:" + "".join(
            f"\n  - {name}" for name in names if name in missing_keys
        ) + "\navailable:" + "".join(
            f"\n  - {name}" for name in sorted(available_keys)
        ))

    # retrieve the evaluators
    return [
        correction_set.compound[name]
        if name in correction_set.compound
        else correction_set[name]
        for name in names
    ]


def ak_evaluate(evaluator: correctionlib.highlevel.Correction, *args) -> ak.Array:
    """
    Evaluate a :external+correctionlib:py:class:`correctionlib.highlevel.Correction`
    using one or more :external+ak:py:class:`awkward arrays <ak.Array>` as inputs. Inputs that are
    not awkward arrays, such as the per-event energy density or a systematic name, are passed
    as they are.

    :param evaluator: Evaluator instance
    :raises ValueError: If no arguments are provided
    :return: The correction values, structured like the first awkward array input
    """
    # fail if no arguments
    if not args:
        raise ValueError("Expected at least one argument.")

    # collect arguments that are awkward arrays
    ak_args = [
        arg for arg in args if isinstance(arg, ak.Array)
    ]

    # broadcast akward arrays together and flatten
    if ak_args:
        bc_args = ak.broadcast_arrays(*ak_args)
        flat_args = (
            np.asarray(ak.flatten(bc_arg, axis=None))
            for bc_arg in bc_args
        )
        output_layout_array = bc_args[0]
    else:
        flat_args = iter(())
        output_layout_array = None

    # multiplex flattened and non-awkward inputs
    all_flat_args = [
        next(flat_args) if isinstance(arg, ak.Array) else arg
        for arg in args
    ]

    # apply evaluator to flattened/multiplexed inputs
    result = evaluator.evaluate(*all_flat_args)

    # apply broadcasted layout to result
    if output_layout_array is not None:
        result = layout_ak_array(result, output_layout_array)

    return result


def evaluate_inputs(evaluator: correctionlib.highlevel.Correction, variable_map: dict) -> ak.Array:
    """
    Shorthand for evaluating *evaluator* with the inputs it declares, looked up by name in
    *variable_map*.

    :raises MissingInputError: If an input declared by the evaluator is missing in *variable_map*.
    """
    missing = [inp.name for inp in evaluator.inputs if inp.name not in variable_map]
    if missing:
        raise MissingInputError(
            f"inputs {', '.join(missing)} of correction '{evaluator.name}' are not available",
        )

    inputs = [variable_map[inp.name] for inp in evaluator.inputs]
    return ak_evaluate(evaluator, *inputs)


# https://github.com/scikit-hep/awkward/issues/489\#issuecomment-711090923
def ak_random(*args, rand_func: Callable) -> ak.Array:
    """
    Return an awkward array filled with random numbers.

    The *args* must be broadcastable awkward arrays and will be passed as positional arguments to
    *rand_func* to obtain the random numbers.

    :param rand_func: Callable to generate random numbers from awkward arrays in *args*.
    :return: awkward array filled with random numbers.
    """
    args = ak.broadcast_arrays(*args)

    if hasattr(args[0].layout, "offsets"):
        # pass flat arrays to random function and get random values
        np_randvals = rand_func(*map(flat_np_view, args))

        # apply layout of first (ak) array
        return layout_ak_array(np_randvals, args[0])

    # pass args directly (this may fail for some array types)
    np_randvals = rand_func(*map(np.asarray, args))
    return ak.from_numpy(np_randvals)


def check_finite(values: ak.Array, what: str, fill: float = 1.0) -> ak.Array:
    """
    Checks *values* for non-finite entries, emits a :py:class:`~jetcalib.errors.NumericWarning`
    describing *what* was computed if there are any, and returns *values* with those entries
    replaced by *fill*.
    """
    bad = ~np.isfinite(values)
    n_bad = int(ak.sum(bad))
    if not n_bad:
        return values

    warnings.warn(f"{n_bad} non-finite value(s) found in {what}, set to {fill}", NumericWarning)
    return ak.where(bad, fill, values)
