# coding: utf-8

"""
Stages of the per-event jet calibration pipeline, applied in the order of :py:data:`default_stages`
to the working copy of the jets for each systematic variation.
"""

from __future__ import annotations

import functools

import law

from jetcalib.calibration import Stage, stage
from jetcalib.systematics import SystematicOrigin, SystematicVariation
from jetcalib.errors import ConfigurationError, MissingInputError
from jetcalib.util import maybe_import, DotDict
from jetcalib.columnar_util import set_ak_column, has_ak_column, sort_ak_by

np = maybe_import("numpy")
ak = maybe_import("awkward")


logger = law.logger.get_logger(__name__)

# helper
set_ak_column_f32 = functools.partial(set_ak_column, value_type=np.float32)


@stage
def calibrate_jets(
    self: Stage,
    jets: ak.Array,
    variation: SystematicVariation,
    event_info: DotDict,
) -> ak.Array:
    """
    Applies the calibration sequence. Runs for every variation, including the nominal one.
    """
    return self.tools.calibration.apply(jets, event_info)


@calibrate_jets.init
def calibrate_jets_init(self: Stage) -> None:
    if self.tools.get("calibration") is None:
        raise ConfigurationError("jet calibration requires a calibration tool")


@stage
def shift_jets(
    self: Stage,
    jets: ak.Array,
    variation: SystematicVariation,
    event_info: DotDict,
) -> ak.Array:
    """
    Applies the shift of JES variations, followed by the JER smearing. The smearing tool decides
    whether jets of a variation are smeared, see
    :py:class:`~jetcalib.tools.smearing.HybridJERSmearingTool`.
    """
    if variation.origin == SystematicOrigin.JES:
        jets = self.tools.jes.apply(jets, variation, event_info)

    if self.tools.get("jer_smearing") is not None:
        jets = self.tools.jer_smearing.apply(jets, variation, event_info)
    elif variation.origin == SystematicOrigin.JER:
        raise ConfigurationError(f"no JER smearing tool available to apply variation {variation}")

    return jets


@shift_jets.skip
def shift_jets_skip(self: Stage) -> bool:
    return self.tools.get("jes") is None and self.tools.get("jer_smearing") is None


@stage(enabled_by="redo_jvt")
def update_jvt(
    self: Stage,
    jets: ak.Array,
    variation: SystematicVariation,
    event_info: DotDict,
) -> ak.Array:
    """
    Recomputes the JVT discriminant with the calibrated momenta and stores it in the ``jvt`` column.
    """
    return set_ak_column_f32(jets, "jvt", self.tools.jvt.update(jets))


@stage(enabled_by="do_cleaning", parent_column="parent")
def clean_jets(
    self: Stage,
    jets: ak.Array,
    variation: SystematicVariation,
    event_info: DotDict,
) -> ak.Array:
    """
    Adds one boolean column per cleaning tool, named after the tool label. When the ``clean_parent``
    option is set, the decisions are evaluated for the parent jets stored in the ``parent`` column.
    """
    if self.config.clean_parent:
        if not has_ak_column(jets, self.parent_column):
            raise MissingInputError(
                f"parent jets required for cleaning are not available in column "
                f"'{self.parent_column}'",
            )
        target = jets[self.parent_column]
    else:
        target = jets

    for tool in self.tools.cleaning:
        jets = set_ak_column(jets, tool.label, tool.decision(target))

    return jets


@stage(enabled_by="do_jet_tile_corr")
def correct_tile(
    self: Stage,
    jets: ak.Array,
    variation: SystematicVariation,
    event_info: DotDict,
) -> ak.Array:
    return self.tools.tile.apply(jets, event_info)


@stage(enabled_by="sort")
def sort_jets(
    self: Stage,
    jets: ak.Array,
    variation: SystematicVariation,
    event_info: DotDict,
) -> ak.Array:
    # descending pt, keeps the order of jets with equal pt
    return sort_ak_by(jets, "pt", ascending=False)


#: Stages in the order they are applied.
default_stages = (
    calibrate_jets,
    shift_jets,
    update_jvt,
    clean_jets,
    correct_tile,
    sort_jets,
)
