# coding: utf-8

"""
Selection of the calibration configuration and sequence depending on the sample provenance.
"""

from __future__ import annotations

__all__ = ["INSITU", "CalibrationConfig", "parse_sequence", "select_calibration_config"]

from dataclasses import dataclass

import law

from jetcalib.types import Sequence
from jetcalib.errors import ConfigurationError
from jetcalib.provenance import Provenance


logger = law.logger.get_logger(__name__)

#: Name of the data-only in-situ calibration step.
INSITU = "Insitu"


@dataclass(frozen=True)
class CalibrationConfig:
    """
    Calibration configuration passed to the calibration provider, i.e., the location of the
    correction file and the ordered calibration steps.
    """

    config_path: str
    sequence: tuple[str, ...]

    def __post_init__(self) -> None:
        # store sequences as tuples regardless of the input type
        object.__setattr__(self, "sequence", parse_sequence(self.sequence))

    @property
    def sequence_string(self) -> str:
        return "_".join(self.sequence)

    @property
    def has_insitu(self) -> bool:
        return INSITU in self.sequence


def parse_sequence(sequence: Sequence[str] | str) -> tuple[str, ...]:
    """
    Converts a calibration *sequence* given as an underscore-separated string, e.g.
    ``"JetArea_Residual_EtaJES_GSC"``, or a sequence of step names into a tuple of step names.
    """
    if isinstance(sequence, str):
        sequence = sequence.split("_")
    return tuple(step.strip() for step in sequence if step and step.strip())


def select_calibration_config(
    provenance: Provenance,
    data_config: str,
    full_sim_config: str,
    fast_sim_config: str,
    sequence: Sequence[str] | str,
) -> CalibrationConfig:
    """
    Selects exactly one of *data_config*, *full_sim_config* and *fast_sim_config* depending on the
    *provenance* and appends the in-situ step to the calibration *sequence* when running on data or
    when it is forced.

    :raises ConfigurationError: If the config of the selected branch is empty, or the sequence is
        empty.
    """
    if provenance.is_data:
        config_path = data_config
    elif provenance.is_full_simulation:
        config_path = full_sim_config
    else:
        config_path = fast_sim_config

    if not config_path:
        raise ConfigurationError(
            f"no calibration config given for the '{provenance.branch}' branch",
        )

    steps = parse_sequence(sequence)
    if not steps:
        raise ConfigurationError("the calibration sequence must not be empty")

    # add the in-situ step at most once
    if provenance.needs_insitu and INSITU not in steps:
        steps += (INSITU,)

    calib_config = CalibrationConfig(config_path=config_path, sequence=steps)
    logger.info(
        f"selected calibration config '{config_path}' with sequence "
        f"'{calib_config.sequence_string}' for the '{provenance.branch}' branch",
    )

    return calib_config
