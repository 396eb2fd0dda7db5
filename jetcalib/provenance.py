# coding: utf-8

"""
Resolution of the sample provenance (data, full or fast simulation) from input metadata.
"""

from __future__ import annotations

__all__ = ["Provenance", "resolve_provenance", "ProvenanceResolver"]

from dataclasses import dataclass

import law

from jetcalib.types import Any, Mapping
from jetcalib.errors import ConfigurationError


logger = law.logger.get_logger(__name__)

#: Lower-case simulation flavor names that denote full detector simulation.
full_sim_flavors = {"fullsim", "fullg4", "fs", "full"}

#: Lower-case simulation flavor names that denote fast detector simulation.
fast_sim_flavors = {"afii", "af2", "atlfastii", "af3", "atlfast3", "fastsim", "fast"}


@dataclass(frozen=True)
class Provenance:
    """
    Immutable set of flags describing where the processed events come from.
    """

    is_simulation: bool
    is_full_simulation: bool = False
    forced_fast_sim: bool = False
    forced_insitu: bool = False

    @property
    def is_data(self) -> bool:
        return not self.is_simulation

    @property
    def is_fast_simulation(self) -> bool:
        return self.is_simulation and not self.is_full_simulation

    @property
    def needs_insitu(self) -> bool:
        # the in-situ step is data-only, unless explicitly forced
        return self.is_data or self.forced_insitu

    @property
    def branch(self) -> str:
        """
        Short name of the provenance category, used for logging and error messages.
        """
        if self.is_data:
            return "data"
        return "full_sim" if self.is_full_simulation else "fast_sim"


def resolve_provenance(
    metadata: Mapping[str, Any],
    force_fast_sim: bool = False,
    force_insitu: bool = False,
) -> Provenance:
    """
    Builds the :py:class:`Provenance` of a sample from its *metadata*, a mapping that contains the
    boolean ``is_simulation`` and, for simulated samples, a ``simulation_flavor`` string such as
    ``"FullG4"`` or ``"AFII"``.

    When *force_fast_sim* is set, simulated samples are always treated as fast simulation, even if
    the metadata declares full simulation. *force_insitu* requests the in-situ calibration step for
    simulated samples as well.

    :raises ConfigurationError: If the sample is simulated but its flavor can neither be determined
        from the metadata nor from *force_fast_sim*.
    """
    if "is_simulation" not in metadata:
        raise ConfigurationError("sample metadata does not declare whether it is simulation")
    is_simulation = bool(metadata["is_simulation"])

    # data is never full or fast simulation
    if not is_simulation:
        if force_fast_sim:
            logger.warning("fast simulation is forced, but the sample is data, ignoring")
        return Provenance(is_simulation=False, forced_insitu=force_insitu)

    flavor = str(metadata.get("simulation_flavor") or "").strip().lower()

    if force_fast_sim:
        if flavor in full_sim_flavors:
            logger.warning(
                f"sample metadata declares full simulation ('{metadata['simulation_flavor']}'), "
                "but fast simulation is forced",
            )
        is_full_simulation = False
    elif flavor in full_sim_flavors:
        is_full_simulation = True
    elif flavor in fast_sim_flavors:
        is_full_simulation = False
    else:
        raise ConfigurationError(
            f"cannot determine simulation flavor of sample from metadata value '{flavor}', "
            f"expected one of {sorted(full_sim_flavors | fast_sim_flavors)}, or force fast "
            "simulation",
        )

    return Provenance(
        is_simulation=True,
        is_full_simulation=is_full_simulation,
        forced_fast_sim=force_fast_sim,
        forced_insitu=force_insitu,
    )


class ProvenanceResolver(object):
    """
    Resolves provenances per input source and caches the result so that it is only re-evaluated
    when the source changes. :py:meth:`resolve` does not change the cache, a resolved provenance is
    only stored with :py:meth:`accept` once everything that depends on it was set up.
    """

    def __init__(self, force_fast_sim: bool = False, force_insitu: bool = False):
        super().__init__()

        self.force_fast_sim = force_fast_sim
        self.force_insitu = force_insitu

        # the source identifier and provenance of the last resolution
        self.source = None
        self.provenance = None

    def resolve(self, source: Any, metadata: Mapping[str, Any]) -> tuple[Provenance, bool]:
        """
        Returns the provenance of the input *source* described by *metadata*, and whether it
        differs from the provenance of the previous source.
        """
        if self.provenance is not None and source == self.source:
            return self.provenance, False

        provenance = resolve_provenance(
            metadata,
            force_fast_sim=self.force_fast_sim,
            force_insitu=self.force_insitu,
        )
        changed = provenance != self.provenance
        if changed:
            logger.info(f"resolved provenance '{provenance.branch}' for input source '{source}'")

        return provenance, changed

    def accept(self, source: Any, provenance: Provenance) -> None:
        """
        Stores the *provenance* of the input *source* as the current one.
        """
        self.source = source
        self.provenance = provenance
