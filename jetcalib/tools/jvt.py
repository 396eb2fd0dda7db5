# coding: utf-8

"""
Recomputation of the jet vertex tagger discriminant with correctionlib.
"""

from __future__ import annotations

import law

from jetcalib.tools import JvtTool
from jetcalib.errors import MissingInputError
from jetcalib.util import maybe_import
from jetcalib.columnar_util import has_ak_column
from jetcalib.calibration.util import evaluate_inputs, check_finite

ak = maybe_import("awkward")


logger = law.logger.get_logger(__name__)


class CorrectionlibJvtTool(JvtTool):
    """
    Recomputes the JVT discriminant from the corrected jet vertex fraction (``jvf_corr`` column)
    and the ratio of the scalar sum of the momenta of tracks from the primary vertex
    (``sum_pt_trk`` column) to the calibrated jet momentum, using the likelihood stored as
    ``<jet_algo>_JVT``.
    """

    required_columns = ("jvf_corr", "sum_pt_trk")

    def setup(self) -> None:
        self.evaluator = self.get_evaluator(f"{self.jet_algo}_JVT")

    def update(self, jets: ak.Array) -> ak.Array:
        missing = [c for c in self.required_columns if not has_ak_column(jets, c)]
        if missing:
            raise MissingInputError(
                f"columns {', '.join(missing)} required to update JVT are not available",
            )

        # jets with vanishing momenta have no meaningful ratio
        has_pt = jets.pt > 0
        rpt = ak.where(has_pt, jets.sum_pt_trk / ak.where(has_pt, jets.pt, 1.0), 0.0)

        variable_map = {
            **self.variable_map(jets),
            "JVFCorr": jets.jvf_corr,
            "RpT": rpt,
        }
        jvt = evaluate_inputs(self.evaluator, variable_map)

        return check_finite(jvt, f"JVT of {self.jet_algo} jets", fill=-0.1)
