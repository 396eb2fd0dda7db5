# coding: utf-8

"""
Correction of jets pointing to inactive tile calorimeter modules with correctionlib.
"""

from __future__ import annotations

import functools

import law

from jetcalib.tools import TileCorrectionTool
from jetcalib.util import maybe_import, DotDict
from jetcalib.columnar_util import set_ak_column
from jetcalib.calibration.util import evaluate_inputs, check_finite

np = maybe_import("numpy")
ak = maybe_import("awkward")


logger = law.logger.get_logger(__name__)

# helper
set_ak_column_f32 = functools.partial(set_ak_column, value_type=np.float32)


class CorrectionlibTileCorrectionTool(TileCorrectionTool):
    """
    Scales the momenta and masses of calibrated jets by the factors stored as
    ``<jet_algo>_TileCorrection``, which are one for jets far from inactive modules.
    """

    def setup(self) -> None:
        self.evaluator = self.get_evaluator(f"{self.jet_algo}_TileCorrection")

    def apply(self, jets: ak.Array, event_info: DotDict) -> ak.Array:
        factor = evaluate_inputs(self.evaluator, self.variable_map(jets, event_info))
        factor = check_finite(factor, f"tile correction factors of {self.jet_algo} jets")

        jets = set_ak_column_f32(jets, "pt", jets.pt * factor)
        jets = set_ak_column_f32(jets, "mass", jets.mass * factor)

        return jets
