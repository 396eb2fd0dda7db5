# coding: utf-8

"""
Jet cleaning decisions with correctionlib.
"""

from __future__ import annotations

import law

from jetcalib.tools import CleaningTool
from jetcalib.errors import MissingInputError
from jetcalib.util import maybe_import
from jetcalib.columnar_util import has_ak_column
from jetcalib.calibration.util import ak_evaluate

ak = maybe_import("awkward")


logger = law.logger.get_logger(__name__)


class CorrectionlibCleaningTool(CleaningTool):
    """
    Evaluates the cleaning working point *cut_level* stored as ``<jet_algo>_<cut_level>``. The
    inputs of the correction are taken from the jet columns of the same name, a jet is clean when
    the correction returns a value above 0.5. With *ugly*, jets with more than half of their energy
    in the tile gap scintillators (``tile_gap3_frac`` column) are considered unclean as well.

    The decision is stored in the column *label*.
    """

    ugly_column = "tile_gap3_frac"

    def setup(self, cut_level: str, label: str, ugly: bool = False) -> None:
        self.cut_level = cut_level
        self.label = label
        self.ugly = ugly

        self.evaluator = self.get_evaluator(f"{self.jet_algo}_{cut_level}")

    def __repr__(self) -> str:
        return f"<{self.cls_name} '{self.jet_algo}' '{self.cut_level}' at {hex(id(self))}>"

    def decision(self, jets: ak.Array) -> ak.Array:
        required = [inp.name for inp in self.evaluator.inputs]
        if self.ugly:
            required.append(self.ugly_column)
        missing = [c for c in required if not has_ak_column(jets, c)]
        if missing:
            raise MissingInputError(
                f"columns {', '.join(missing)} required for {self.cut_level} jet cleaning are not "
                "available",
            )

        inputs = [jets[inp.name] for inp in self.evaluator.inputs]
        clean = ak_evaluate(self.evaluator, *inputs) > 0.5

        if self.ugly:
            clean = clean & (jets[self.ugly_column] <= 0.5)

        return ak.values_astype(clean, bool)
