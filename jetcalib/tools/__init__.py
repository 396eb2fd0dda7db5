# coding: utf-8

"""
Interfaces of the correction providers used by the calibration pipeline.

Each provider capability (calibration, uncertainties, smearing, JVT, cleaning, tile correction) is
described by an abstract class below, with one correctionlib based implementation per capability in
the submodules of this package.
"""

from __future__ import annotations

__all__ = [
    "ProviderTool", "CalibrationTool", "UncertaintyTool", "ResolutionTool", "SmearingTool",
    "JvtTool", "CleaningTool", "TileCorrectionTool",
]

import abc

import law

from jetcalib.types import Any
from jetcalib.util import Derivable, DotDict, maybe_import, load_correction_set
from jetcalib.columnar_util import has_ak_column
from jetcalib.calibration.util import get_evaluators

ak = maybe_import("awkward")
correctionlib = maybe_import("correctionlib")


logger = law.logger.get_logger(__name__)


class ProviderTool(Derivable):
    """
    Base class of all provider tools.

    A tool is configured once for a jet algorithm *jet_algo* and, optionally, a *correction_file*
    that is loaded through :py:meth:`get_correction_set`. All additional *kwargs* are forwarded to
    :py:meth:`setup`, which subclasses implement to look up their evaluators. Tools hold read-only
    configuration only and can be reused across events and variations.
    """

    # function to load the correction set, can be overwritten in subclasses
    get_correction_set = lambda self, target: load_correction_set(target)

    def __init__(self, jet_algo: str, correction_file: str | Any | None = None, **kwargs):
        super().__init__()

        self.jet_algo = jet_algo
        self.correction_file = correction_file
        self.correction_set = (
            None
            if correction_file is None
            else self.get_correction_set(correction_file)
        )

        self.setup(**kwargs)

    def __repr__(self) -> str:
        return f"<{self.cls_name} '{self.jet_algo}' at {hex(id(self))}>"

    def setup(self, **kwargs) -> None:
        return

    def get_evaluator(self, name: str) -> correctionlib.highlevel.Correction:
        """
        Returns the evaluator of the correction *name* in the correction set.
        """
        return get_evaluators(self.correction_set, [name])[0]

    def variable_map(self, jets: ak.Array, event_info: DotDict | None = None) -> dict[str, Any]:
        """
        Returns the mapping of correction input names to the per-jet and per-event values they
        are evaluated with.
        """
        variable_map = {
            "JetPt": jets.pt,
            "JetEta": jets.eta,
            "JetPhi": jets.phi,
            "JetMass": jets.mass,
        }
        if has_ak_column(jets, "area"):
            variable_map["JetA"] = jets.area
        if event_info is not None:
            for name, key in [("Rho", "rho"), ("RunNumber", "run"), ("EventNumber", "event")]:
                if key in event_info:
                    variable_map[name] = event_info[key]

        return variable_map


class CalibrationTool(ProviderTool):
    """
    Interface of tools applying the calibration sequence to jets.
    """

    @abc.abstractmethod
    def apply(self, jets: ak.Array, event_info: DotDict) -> ak.Array:
        """
        Returns the calibrated *jets*.
        """
        ...


class UncertaintyTool(ProviderTool):
    """
    Interface of tools providing systematic variations of the jet energy scale.
    """

    @abc.abstractmethod
    def recommended_systematics(self) -> list:
        """
        Returns the ordered list of :py:class:`~jetcalib.systematics.SystematicVariation`'s that
        this tool can apply.
        """
        ...

    @abc.abstractmethod
    def apply(self, jets: ak.Array, variation: Any, event_info: DotDict) -> ak.Array:
        """
        Returns the *jets* shifted according to *variation*.
        """
        ...


class ResolutionTool(ProviderTool):
    """
    Interface of tools providing the jet energy resolution, its scale factors and their systematic
    variations.
    """

    @abc.abstractmethod
    def recommended_systematics(self) -> list:
        ...

    @abc.abstractmethod
    def simplified_systematic(self) -> Any:
        """
        Returns the single variation that summarizes all registered variations.
        """
        ...

    @abc.abstractmethod
    def resolution(self, jets: ak.Array, event_info: DotDict) -> ak.Array:
        """
        Returns the relative transverse momentum resolution per jet.
        """
        ...

    @abc.abstractmethod
    def scale_factor(self, jets: ak.Array, variation: Any, event_info: DotDict) -> ak.Array:
        """
        Returns the resolution scale factor per jet, shifted according to *variation*.
        """
        ...


class SmearingTool(ProviderTool):
    """
    Interface of tools smearing simulated jets to the resolution observed in data.
    """

    @abc.abstractmethod
    def apply(self, jets: ak.Array, variation: Any, event_info: DotDict) -> ak.Array:
        ...


class JvtTool(ProviderTool):
    """
    Interface of tools recomputing the jet vertex tagger discriminant.
    """

    @abc.abstractmethod
    def update(self, jets: ak.Array) -> ak.Array:
        """
        Returns the updated discriminant per jet, computed with the calibrated momenta.
        """
        ...


class CleaningTool(ProviderTool):
    """
    Interface of tools deciding whether jets pass a cleaning working point. The decision is stored
    in a column named :py:attr:`label`.
    """

    label = None

    @abc.abstractmethod
    def decision(self, jets: ak.Array) -> ak.Array:
        """
        Returns a boolean per jet, *True* when the jet is considered clean.
        """
        ...


class TileCorrectionTool(ProviderTool):
    """
    Interface of tools correcting the kinematics of jets pointing to inactive tile modules.
    """

    @abc.abstractmethod
    def apply(self, jets: ak.Array, event_info: DotDict) -> ak.Array:
        ...
