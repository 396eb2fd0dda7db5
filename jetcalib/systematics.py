# coding: utf-8

"""
Definition and enumeration of systematic variations and of the output collections they produce.
"""

from __future__ import annotations

__all__ = [
    "SystematicOrigin", "SystematicVariation", "NOMINAL", "OutputBinding", "filter_systematics",
    "enumerate_systematics", "create_output_bindings",
]

import enum
from dataclasses import dataclass

import law

from jetcalib.types import Any, Sequence
from jetcalib.errors import ConfigurationError
from jetcalib.util import pattern_matcher


logger = law.logger.get_logger(__name__)


class SystematicOrigin(enum.Enum):
    """
    The tool a systematic variation originates from.
    """

    NONE = "none"
    JES = "JES"
    JER = "JER"


@dataclass(frozen=True)
class SystematicVariation:
    """
    Description of a single systematic variation. An empty *name* denotes the nominal calibration.
    *parameter* is the signed number of standard deviations of continuous variations.
    """

    name: str = ""
    origin: SystematicOrigin = SystematicOrigin.NONE
    parameter: float | None = None

    @property
    def is_nominal(self) -> bool:
        return not self.name

    def __str__(self) -> str:
        return self.name or "nominal"


#: The nominal variation, always the first one to be processed.
NOMINAL = SystematicVariation()


@dataclass(frozen=True)
class OutputBinding:
    """
    Binding of a variation to the name of the collection it is published under.
    """

    variation: SystematicVariation
    collection_name: str


def filter_systematics(
    variations: Sequence[SystematicVariation],
    syst_name: str,
) -> list[SystematicVariation]:
    """
    Filters the non-nominal *variations* by *syst_name*. ``"All"`` keeps all variations, an empty
    string keeps none of them. Otherwise, *syst_name* is interpreted as a comma-separated list of
    names, patterns or regular expressions, and variations matching any of them are kept.
    """
    syst_name = (syst_name or "").strip()
    if syst_name == "All":
        return list(variations)
    if not syst_name:
        return []

    match = pattern_matcher([s.strip() for s in syst_name.split(",") if s.strip()])
    return [variation for variation in variations if match(variation.name)]


def _check_collisions(variations: Sequence[SystematicVariation]) -> None:
    seen = {}
    for variation in variations:
        if not variation.name:
            raise ConfigurationError(
                f"the {variation.origin.value} tool registered a variation with an empty name, "
                "which is reserved for the nominal calibration",
            )
        if variation.name in seen:
            raise ConfigurationError(
                f"systematic variation '{variation.name}' is registered by both the "
                f"{seen[variation.name].value} and the {variation.origin.value} tools",
            )
        seen[variation.name] = variation.origin


def enumerate_systematics(
    jes_tool: Any | None = None,
    jer_tool: Any | None = None,
    jer_full_sys: bool = False,
    syst_name: str = "All",
) -> list[SystematicVariation]:
    """
    Returns the ordered list of variations to process for each event. The nominal variation always
    comes first, followed by the variations recommended by the *jes_tool* and those of the
    *jer_tool*. Unless *jer_full_sys* is set, the JER variations are collapsed into the single
    simplified variation of the *jer_tool*.

    Name collisions among all candidates are checked before the non-nominal variations are filtered
    by *syst_name* (see :py:func:`filter_systematics`).

    :raises ConfigurationError: If two variations share the same name, or a tool registers a
        variation with an empty name.
    """
    candidates = []

    if jes_tool is not None:
        candidates.extend(jes_tool.recommended_systematics())

    if jer_tool is not None:
        if jer_full_sys:
            candidates.extend(jer_tool.recommended_systematics())
        else:
            candidates.append(jer_tool.simplified_systematic())

    _check_collisions(candidates)

    variations = [NOMINAL] + filter_systematics(candidates, syst_name)
    logger.info(
        f"enumerated {len(variations) - 1} systematic variation(s) out of {len(candidates)} "
        f"candidate(s) with filter '{syst_name}'",
    )
    for variation in variations[1:]:
        logger.debug(f"registered variation {variation.name} ({variation.origin.value})")

    return variations


def create_output_bindings(
    base: str,
    variations: Sequence[SystematicVariation],
) -> tuple[OutputBinding, ...]:
    """
    Binds each of the *variations* to its output collection name, which is *base* for the nominal
    variation and ``<base>_<name>`` otherwise.

    :raises ConfigurationError: If *base* is empty or two variations would be published under the
        same collection name.
    """
    if not base:
        raise ConfigurationError("the output collection name must not be empty")

    bindings = []
    names = set()
    for variation in variations:
        collection_name = f"{base}_{variation.name}" if variation.name else base
        if collection_name in names:
            raise ConfigurationError(
                f"output collection name '{collection_name}' of variation '{variation}' is not "
                "unique",
            )
        names.add(collection_name)
        bindings.append(OutputBinding(variation=variation, collection_name=collection_name))

    return tuple(bindings)
