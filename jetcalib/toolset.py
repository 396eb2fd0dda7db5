# coding: utf-8

"""
Construction of the provider tools used by the calibration pipeline.
"""

from __future__ import annotations

__all__ = ["default_tool_classes", "clean_label", "build_tool", "initialize_tools"]

import law

from jetcalib.types import Any
from jetcalib.errors import ConfigurationError, ProviderInitializationError
from jetcalib.util import DotDict
from jetcalib.provenance import Provenance
from jetcalib.calibration.sequence import CalibrationConfig, INSITU
from jetcalib.tools.calib import CorrectionlibCalibrationTool
from jetcalib.tools.uncertainties import CorrectionlibJESTool, CorrectionlibJERTool
from jetcalib.tools.smearing import HybridJERSmearingTool
from jetcalib.tools.jvt import CorrectionlibJvtTool
from jetcalib.tools.cleaning import CorrectionlibCleaningTool
from jetcalib.tools.tile import CorrectionlibTileCorrectionTool


logger = law.logger.get_logger(__name__)

#: Tool classes used by default, keyed by the name of the capability they provide.
default_tool_classes = DotDict(
    calibration=CorrectionlibCalibrationTool,
    jes=CorrectionlibJESTool,
    jer=CorrectionlibJERTool,
    jer_smearing=HybridJERSmearingTool,
    jvt=CorrectionlibJvtTool,
    cleaning=CorrectionlibCleaningTool,
    tile=CorrectionlibTileCorrectionTool,
)


def clean_label(cut_level: str, primary: bool = False) -> str:
    """
    Returns the name of the column storing the decision of the cleaning *cut_level*, which is
    ``clean_jet`` for the *primary* level and ``clean_pass<cut_level>`` otherwise.
    """
    return "clean_jet" if primary else f"clean_pass{cut_level}"


def build_tool(name: str, tool_cls: type, *args, **kwargs) -> Any:
    """
    Instantiates *tool_cls* with all *args* and *kwargs*.

    :raises ProviderInitializationError: If the tool fails to set itself up, naming the tool *name*.
    """
    try:
        tool = tool_cls(*args, **kwargs)
    except ConfigurationError:
        raise
    except Exception as e:
        raise ProviderInitializationError(name, str(e)) from e

    logger.debug(f"initialized {name} tool {tool!r}")

    return tool


def initialize_tools(
    calib_config: CalibrationConfig,
    provenance: Provenance,
    config: Any,
    tool_classes: dict[str, type] | None = None,
) -> DotDict:
    """
    Builds all tools requested by the calibrator *config* for the selected *calib_config* and
    *provenance*, using the classes in *tool_classes* in place of the :py:data:`default_tool_classes`.

    The returned :py:class:`~jetcalib.util.DotDict` maps the capabilities ``calibration``, ``jes``,
    ``jer``, ``jer_smearing``, ``jvt`` and ``tile`` to their tools, or *None* when not requested, and
    ``cleaning`` to a list of cleaning tools, the one of the primary cut level first. JER tools are
    only created for simulation.

    :raises ConfigurationError: If tile correction is requested but the calibration sequence does
        not contain the in-situ step.
    :raises ProviderInitializationError: If a tool fails to set itself up.
    """
    tool_classes = DotDict(default_tool_classes, **(tool_classes or {}))

    if config.do_jet_tile_corr and INSITU not in calib_config.sequence:
        raise ConfigurationError(
            f"tile correction requires the {INSITU} calibration step, but the sequence of the "
            f"'{provenance.branch}' branch is '{calib_config.sequence_string}'",
        )

    tools = DotDict(
        calibration=None,
        jes=None,
        jer=None,
        jer_smearing=None,
        jvt=None,
        cleaning=[],
        tile=None,
    )

    tools.calibration = build_tool(
        "calibration",
        tool_classes.calibration,
        config.jet_algo,
        calib_config.config_path,
        calib_config=calib_config,
        is_trigger=config.is_trigger,
    )

    if config.jes_uncert_config:
        tools.jes = build_tool(
            "JES uncertainty",
            tool_classes.jes,
            config.jet_algo,
            config.jes_uncert_config,
            mc_type=config.jes_uncert_mc_type,
            calib_sequence=calib_config.sequence,
            syst_val=config.syst_val,
            fat_jet_pre_sel=config.apply_fat_jet_pre_sel,
        )

    if config.jer_uncert_config:
        if provenance.is_simulation:
            tools.jer = build_tool(
                "JER uncertainty",
                tool_classes.jer,
                config.jet_algo,
                config.jer_uncert_config,
            )
            tools.jer_smearing = build_tool(
                "JER smearing",
                tool_classes.jer_smearing,
                config.jet_algo,
                resolution_tool=tools.jer,
                apply_nominal=config.jer_apply_nominal,
                seed_offset=config.jer_seed_offset,
            )
        else:
            logger.info("not creating JER tools for data")

    if config.redo_jvt:
        tools.jvt = build_tool("JVT update", tool_classes.jvt, config.jet_algo, config.jvt_config)

    if config.do_cleaning:
        for i, level in enumerate(config.clean_levels):
            tools.cleaning.append(build_tool(
                f"{level} jet cleaning",
                tool_classes.cleaning,
                config.jet_algo,
                config.cleaning_config,
                cut_level=level,
                label=clean_label(level, primary=i == 0),
                ugly=config.jet_clean_ugly,
            ))

    if config.do_jet_tile_corr:
        tools.tile = build_tool(
            "tile correction",
            tool_classes.tile,
            config.jet_algo,
            config.tile_corr_config,
        )

    logger.info(
        f"initialized tools for the '{provenance.branch}' branch: " +
        ", ".join(
            name for name, tool in tools.items()
            if tool is not None and tool != []
        ),
    )

    return tools
