# coding: utf-8

"""
Configuration of the jet calibrator.
"""

from __future__ import annotations

__all__ = ["JetCalibratorConfig"]

import dataclasses
from dataclasses import dataclass, field

import law

from jetcalib.errors import ConfigurationError


logger = law.logger.get_logger(__name__)


@dataclass
class JetCalibratorConfig:
    """
    Options of the :py:class:`~jetcalib.calibrator.JetCalibrator`. Defaults follow the recommended
    settings for small-R jets. Instances can be created directly or from a section of the law config
    file via :py:meth:`from_law_config`. The *output_algo* defaults to ``<out_container_name>_Algo``.
    """

    # input and output collections
    in_container_name: str = ""
    out_container_name: str = ""
    jet_algo: str = ""
    output_algo: str = ""
    event_info_name: str = "EventInfo"

    # calibration
    calib_config_data: str = ""
    calib_config_full_sim: str = ""
    calib_config_afii: str = ""
    calib_sequence: str = "JetArea_Residual_Origin_EtaJES_GSC"
    set_afii: bool = False
    force_insitu: bool = False
    is_trigger: bool = False

    # systematics
    jes_uncert_config: str = ""
    jes_uncert_mc_type: str = "MC16"
    jer_uncert_config: str = ""
    jer_full_sys: bool = False
    jer_apply_nominal: bool = False
    jer_seed_offset: int = 0
    syst_name: str = "All"
    syst_val: float = 1.0
    apply_fat_jet_pre_sel: bool = False

    # cleaning
    do_cleaning: bool = True
    cleaning_config: str = ""
    jet_clean_cut_level: str = "LooseBad"
    save_all_clean_decisions: bool = False
    clean_decision_levels: tuple[str, ...] = field(default=("LooseBad", "TightBad"))
    jet_clean_ugly: bool = False
    clean_parent: bool = False

    # jvt, tile correction and sorting
    redo_jvt: bool = False
    jvt_config: str = ""
    do_jet_tile_corr: bool = False
    tile_corr_config: str = ""
    sort: bool = True

    def __post_init__(self) -> None:
        self.clean_decision_levels = tuple(self.clean_decision_levels)
        if not self.output_algo and self.out_container_name:
            self.output_algo = f"{self.out_container_name}_Algo"

    @classmethod
    def from_law_config(cls, section: str | None = None, **kwargs) -> JetCalibratorConfig:
        """
        Creates a new instance with options read from *section* of the law config, defaulting to
        :py:attr:`jetcalib.config_section`. Option names are the same as the attribute names.
        Options not present in the section keep their defaults, and *kwargs* have precedence over
        both.
        """
        if section is None:
            from jetcalib import config_section as section

        options = {}
        for f in dataclasses.fields(cls):
            if f.name in kwargs or not law.config.has_option(section, f.name):
                continue

            default = f.default
            if isinstance(default, bool):
                value = law.config.get_expanded_bool(section, f.name)
            elif isinstance(default, int):
                value = law.config.get_expanded_int(section, f.name)
            elif isinstance(default, float):
                value = law.config.get_expanded_float(section, f.name)
            elif isinstance(default, tuple):
                value = tuple(law.config.get_expanded(section, f.name, split_csv=True))
            else:
                value = law.config.get_expanded(section, f.name)
            options[f.name] = value

        options.update(kwargs)
        logger.debug(f"read {len(options)} jet calibrator option(s) from config section {section}")

        return cls(**options)

    def replace(self, **kwargs) -> JetCalibratorConfig:
        return dataclasses.replace(self, **kwargs)

    @property
    def clean_levels(self) -> tuple[str, ...]:
        """
        The cleaning cut levels to evaluate, the primary level first.
        """
        levels = (self.jet_clean_cut_level,)
        if self.save_all_clean_decisions:
            levels += tuple(
                level for level in self.clean_decision_levels
                if level != self.jet_clean_cut_level
            )
        return levels

    def validate(self) -> JetCalibratorConfig:
        """
        Checks the consistency of all options and returns the instance itself.

        :raises ConfigurationError: If a required option is missing or options contradict each other.
        """
        for attr in ["in_container_name", "out_container_name", "jet_algo", "calib_sequence"]:
            if not getattr(self, attr):
                raise ConfigurationError(f"option {attr} must not be empty")

        if self.in_container_name == self.out_container_name:
            raise ConfigurationError(
                f"input and output collections must differ, got '{self.in_container_name}'",
            )

        if not (self.calib_config_data or self.calib_config_full_sim or self.calib_config_afii):
            raise ConfigurationError("at least one calibration config must be given")

        if self.jes_uncert_config and not self.jes_uncert_mc_type:
            raise ConfigurationError("option jes_uncert_mc_type is required for JES uncertainties")

        if not self.syst_val:
            raise ConfigurationError("option syst_val must not be zero")

        if self.do_cleaning:
            if not self.cleaning_config:
                raise ConfigurationError("jet cleaning is enabled, but no cleaning_config is given")
            if not self.jet_clean_cut_level:
                raise ConfigurationError("jet cleaning is enabled, but no cut level is given")
        elif self.clean_parent:
            logger.warning("clean_parent is set, but jet cleaning is disabled")

        if self.redo_jvt and not self.jvt_config:
            raise ConfigurationError("JVT recomputation is enabled, but no jvt_config is given")

        if self.do_jet_tile_corr and not self.tile_corr_config:
            raise ConfigurationError("tile correction is enabled, but no tile_corr_config is given")

        if self.jer_apply_nominal and not self.jer_uncert_config:
            logger.warning("jer_apply_nominal is set, but no jer_uncert_config is given")

        return self
