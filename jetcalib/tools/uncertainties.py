# coding: utf-8

"""
Jet energy scale and resolution uncertainties with correctionlib.
"""

from __future__ import annotations

import functools

import law

from jetcalib.tools import UncertaintyTool, ResolutionTool
from jetcalib.systematics import SystematicOrigin, SystematicVariation
from jetcalib.errors import ConfigurationError
from jetcalib.util import maybe_import, pattern_matcher, DotDict
from jetcalib.columnar_util import set_ak_column
from jetcalib.calibration.util import evaluate_inputs, check_finite

np = maybe_import("numpy")
ak = maybe_import("awkward")


logger = law.logger.get_logger(__name__)

# helper
set_ak_column_f32 = functools.partial(set_ak_column, value_type=np.float32)


def fat_jet_preselection(jets: ak.Array) -> ak.Array:
    """
    Returns a mask of the large-R jets in the phase space that uncertainties are provided for, i.e.,
    150 <= pt < 3000 GeV, 0 <= m / pt < 1 and |eta| < 2.
    """
    pt_ok = (jets.pt >= 150.0) & (jets.pt < 3000.0)
    # the mass ratio is only evaluated for jets passing the pt cut
    m_over_pt = jets.mass / ak.where(pt_ok, jets.pt, 1.0)
    return pt_ok & (m_over_pt >= 0.0) & (m_over_pt < 1.0) & (abs(jets.eta) < 2.0)


class CorrectionlibJESTool(UncertaintyTool):
    """
    Provides the jet energy scale uncertainty sources stored as corrections named
    ``<jet_algo>_<mc_type>_<source>``. Each source yields an up and a down variation named
    ``JET_<source>__<syst_val>up`` and ``JET_<source>__<syst_val>down``, shifting the jet momentum
    and mass by ``1 + parameter * uncertainty``.

    Sources that only exist when a certain calibration step ran are not registered when the step is
    missing in the calibration sequence, see :py:attr:`sequence_dependent_sources`. When
    *fat_jet_pre_sel* is set, only jets passing :py:func:`fat_jet_preselection` are shifted.
    """

    # calibration steps mapped to patterns of uncertainty sources that depend on them
    sequence_dependent_sources = {
        "Insitu": ("*InSitu*", "*Insitu*"),
    }

    def setup(
        self,
        mc_type: str,
        calib_sequence: tuple[str, ...],
        syst_val: float = 1.0,
        fat_jet_pre_sel: bool = False,
    ) -> None:
        if not syst_val:
            raise ConfigurationError("the sigma of JES variations must not be zero")

        self.mc_type = mc_type
        self.calib_sequence = tuple(calib_sequence)
        self.syst_val = float(syst_val)
        self.fat_jet_pre_sel = fat_jet_pre_sel

        # patterns of sources to skip
        skip_patterns = [
            pattern
            for step, patterns in self.sequence_dependent_sources.items()
            if step not in self.calib_sequence
            for pattern in patterns
        ]
        skip_source = pattern_matcher(skip_patterns) if skip_patterns else (lambda s: False)

        # discover sources
        prefix = f"{self.jet_algo}_{mc_type}_"
        self.evaluators = {}
        for name in self.correction_set.keys():
            if not name.startswith(prefix):
                continue
            source = name[len(prefix):]
            if skip_source(source):
                logger.debug(
                    f"skipping JES source {source} as the calibration sequence "
                    f"{'_'.join(self.calib_sequence)} does not contain the step it depends on",
                )
                continue
            self.evaluators[source] = self.correction_set[name]

        if not self.evaluators:
            logger.warning(f"no JES uncertainty sources found with prefix '{prefix}'")

        # map variation names to sources
        self.variation_sources = {
            variation.name: source
            for source, variation in self._iter_variations()
        }

    def _iter_variations(self):
        for source in self.evaluators:
            for param in (self.syst_val, -self.syst_val):
                direction = "up" if param > 0 else "down"
                name = f"JET_{source}__{abs(param):g}{direction}"
                yield source, SystematicVariation(
                    name=name,
                    origin=SystematicOrigin.JES,
                    parameter=param,
                )

    def recommended_systematics(self) -> list[SystematicVariation]:
        return [variation for _, variation in self._iter_variations()]

    def apply(self, jets: ak.Array, variation: SystematicVariation, event_info: DotDict) -> ak.Array:
        source = self.variation_sources.get(variation.name)
        if source is None:
            raise ValueError(f"variation {variation.name} is not provided by {self}")

        evaluator = self.evaluators[source]
        unc = evaluate_inputs(evaluator, self.variable_map(jets, event_info))
        unc = check_finite(unc, f"JES uncertainty {source} of {self.jet_algo} jets", fill=0.0)

        factor = 1.0 + variation.parameter * unc
        if self.fat_jet_pre_sel:
            factor = ak.where(fat_jet_preselection(jets), factor, 1.0)

        jets = set_ak_column_f32(jets, "pt", jets.pt * factor)
        jets = set_ak_column_f32(jets, "mass", jets.mass * factor)

        return jets


class CorrectionlibJERTool(ResolutionTool):
    """
    Provides the relative jet momentum resolution (``<jet_algo>_PtResolution``), the data-to-
    simulation resolution scale factors (``<jet_algo>_ScaleFactor``, evaluated with
    ``systematic="nom"``) and the nuisance parameters of the scale factors
    (``<jet_algo>_JER_<np>``). Each nuisance parameter is registered as a variation named
    ``JET_JER_<np>__1up``, the simplified variation ``JET_JER_SINGLE_NP__1up`` shifts the scale
    factor by the quadratic sum of all of them.
    """

    simplified_name = "JET_JER_SINGLE_NP__1up"

    def setup(self) -> None:
        self.reso_evaluator = self.get_evaluator(f"{self.jet_algo}_PtResolution")
        self.sf_evaluator = self.get_evaluator(f"{self.jet_algo}_ScaleFactor")

        prefix = f"{self.jet_algo}_JER_"
        self.np_evaluators = {
            f"JET_JER_{name[len(prefix):]}__1up": self.correction_set[name]
            for name in self.correction_set.keys()
            if name.startswith(prefix)
        }
        if not self.np_evaluators:
            logger.warning(f"no JER nuisance parameters found with prefix '{prefix}'")

    def recommended_systematics(self) -> list[SystematicVariation]:
        return [
            SystematicVariation(name=name, origin=SystematicOrigin.JER, parameter=1.0)
            for name in self.np_evaluators
        ]

    def simplified_systematic(self) -> SystematicVariation:
        return SystematicVariation(
            name=self.simplified_name,
            origin=SystematicOrigin.JER,
            parameter=1.0,
        )

    def resolution(self, jets: ak.Array, event_info: DotDict) -> ak.Array:
        reso = evaluate_inputs(self.reso_evaluator, self.variable_map(jets, event_info))
        return check_finite(reso, f"pt resolution of {self.jet_algo} jets", fill=0.0)

    def scale_factor(
        self,
        jets: ak.Array,
        variation: SystematicVariation,
        event_info: DotDict,
    ) -> ak.Array:
        variable_map = self.variable_map(jets, event_info)
        sf = evaluate_inputs(self.sf_evaluator, {**variable_map, "systematic": "nom"})
        sf = check_finite(sf, f"JER scale factors of {self.jet_algo} jets")

        if variation.origin != SystematicOrigin.JER:
            return sf

        # absolute uncertainty of the scale factor
        if variation.name == self.simplified_name:
            unc2 = ak.zeros_like(sf)
            for evaluator in self.np_evaluators.values():
                unc2 = unc2 + evaluate_inputs(evaluator, variable_map)**2
            unc = np.sqrt(unc2)
        elif variation.name in self.np_evaluators:
            unc = evaluate_inputs(self.np_evaluators[variation.name], variable_map)
        else:
            raise ValueError(f"variation {variation.name} is not provided by {self}")
        unc = check_finite(unc, f"JER uncertainty {variation.name} of {self.jet_algo} jets", 0.0)

        return sf + variation.parameter * unc
