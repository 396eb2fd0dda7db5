# coding: utf-8

"""
Jet calibration with correctionlib.
"""

from __future__ import annotations

import functools

import law

from jetcalib.tools import CalibrationTool
from jetcalib.util import maybe_import, DotDict
from jetcalib.columnar_util import set_ak_column, has_ak_column
from jetcalib.calibration.util import get_evaluators, evaluate_inputs, check_finite

np = maybe_import("numpy")
ak = maybe_import("awkward")


logger = law.logger.get_logger(__name__)

# helper
set_ak_column_f32 = functools.partial(set_ak_column, value_type=np.float32)


class CorrectionlibCalibrationTool(CalibrationTool):
    """
    Applies the steps of a calibration sequence one after another, each of them multiplying the jet
    momentum and mass with a factor looked up from the correction named
    ``<jet_algo>_<step>`` (``<jet_algo>_Trigger_<step>`` for trigger jets). Inputs of each step
    are evaluated with the momenta resulting from the previous steps.

    The uncalibrated momenta and masses are kept in the ``pt_raw`` and ``mass_raw`` columns. When
    they already exist, the calibration starts from them.
    """

    def setup(self, calib_config, is_trigger: bool = False) -> None:
        self.calib_config = calib_config
        self.is_trigger = is_trigger

        prefix = f"{self.jet_algo}_Trigger" if is_trigger else self.jet_algo
        steps = calib_config.sequence
        self.evaluators = dict(zip(
            steps,
            get_evaluators(self.correction_set, [f"{prefix}_{step}" for step in steps]),
        ))

        logger.debug(
            f"loaded {len(steps)} calibration steps for {'trigger ' if is_trigger else ''}"
            f"{self.jet_algo} jets from {calib_config.config_path}",
        )

    def apply(self, jets: ak.Array, event_info: DotDict) -> ak.Array:
        # start from the uncalibrated kinematics
        if has_ak_column(jets, "pt_raw"):
            jets = set_ak_column_f32(jets, "pt", jets.pt_raw)
            jets = set_ak_column_f32(jets, "mass", jets.mass_raw)
        else:
            jets = set_ak_column_f32(jets, "pt_raw", jets.pt)
            jets = set_ak_column_f32(jets, "mass_raw", jets.mass)

        for step, evaluator in self.evaluators.items():
            factor = evaluate_inputs(evaluator, self.variable_map(jets, event_info))
            factor = check_finite(factor, f"{step} calibration factors of {self.jet_algo} jets")

            jets = set_ak_column_f32(jets, "pt", jets.pt * factor)
            jets = set_ak_column_f32(jets, "mass", jets.mass * factor)

        return jets
