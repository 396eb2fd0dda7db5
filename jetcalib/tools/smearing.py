# coding: utf-8

"""
Jet energy resolution smearing.
"""

from __future__ import annotations

import functools

import law

from jetcalib.tools import SmearingTool, ResolutionTool
from jetcalib.systematics import SystematicOrigin, SystematicVariation
from jetcalib.errors import ConfigurationError, MissingInputError
from jetcalib.util import maybe_import, DotDict
from jetcalib.columnar_util import set_ak_column, has_ak_column
from jetcalib.calibration.util import ak_random

np = maybe_import("numpy")
ak = maybe_import("awkward")


logger = law.logger.get_logger(__name__)

# helper
set_ak_column_f32 = functools.partial(set_ak_column, value_type=np.float32)


class HybridJERSmearingTool(SmearingTool):
    """
    Smears the momenta and masses of simulated jets with the resolutions and scale factors provided
    by a *resolution_tool*, following the hybrid method: jets matched to a generator-level jet
    (``gen_pt`` column, within three times the resolution) are scaled according to their relative
    momentum difference, all other jets are smeared stochastically with
    ``1 + N(0, 1) * resolution * sqrt(max(sf^2 - 1, 0))``.

    Jets of JER variations are smeared with the shifted scale factors. Jets of all other variations
    are smeared with the nominal scale factors only when *apply_nominal* is set, and are left
    unchanged otherwise.

    Random numbers are drawn from a generator seeded with the event number plus *seed_offset*, so
    that all variations of an event, and repeated runs over the same event, see identical numbers.
    """

    def setup(
        self,
        resolution_tool: ResolutionTool,
        apply_nominal: bool = False,
        seed_offset: int = 0,
    ) -> None:
        if resolution_tool is None:
            raise ConfigurationError("JER smearing requires a resolution tool")

        self.resolution_tool = resolution_tool
        self.apply_nominal = apply_nominal
        self.seed_offset = int(seed_offset)

    def random_normal(self, jets: ak.Array, event_info: DotDict) -> ak.Array:
        """
        Returns normally distributed random numbers per jet, seeded with the event number.
        """
        if "event" not in event_info:
            raise MissingInputError("event number required for JER smearing is not available")

        seed = int(event_info["event"]) + self.seed_offset
        rand_func = np.random.Generator(np.random.SFC64(seed)).normal

        return ak_random(ak.zeros_like(jets.pt), ak.ones_like(jets.pt), rand_func=rand_func)

    def apply(self, jets: ak.Array, variation: SystematicVariation, event_info: DotDict) -> ak.Array:
        if variation.origin != SystematicOrigin.JER and not self.apply_nominal:
            return jets

        reso = self.resolution_tool.resolution(jets, event_info)
        sf = self.resolution_tool.scale_factor(jets, variation, event_info)

        # -- stochastic smearing

        # scale random numbers according to JER SF
        sf2_m1 = sf**2 - 1
        add_smear = np.sqrt(ak.where(sf2_m1 < 0, 0, sf2_m1))
        smear_factors = 1.0 + self.random_normal(jets, event_info) * reso * add_smear

        # -- scaling method (using gen match)

        if has_ak_column(jets, "gen_pt"):
            has_gen = jets.gen_pt > 0
            pt_relative_diff = 1 - jets.gen_pt / jets.pt

            # test if matched gen jets are within 3 * resolution
            is_matched_pt = has_gen & (np.abs(pt_relative_diff) < 3 * reso)
            smear_factors = ak.where(
                is_matched_pt,
                1.0 + (sf - 1.0) * pt_relative_diff,
                smear_factors,
            )

        # negative factors would flip the jet direction
        smear_factors = ak.where(smear_factors < 0, 0.0, smear_factors)

        # save the unsmeared properties in case they are needed later
        jets = set_ak_column_f32(jets, "pt_unsmeared", jets.pt)
        jets = set_ak_column_f32(jets, "mass_unsmeared", jets.mass)

        jets = set_ak_column_f32(jets, "pt", jets.pt * smear_factors)
        jets = set_ak_column_f32(jets, "mass", jets.mass * smear_factors)

        return jets
