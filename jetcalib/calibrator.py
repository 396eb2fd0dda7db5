# coding: utf-8

"""
Driver of the per-event jet calibration including systematic variations.
"""

from __future__ import annotations

__all__ = ["RunState", "JetCalibrator"]

import warnings
from dataclasses import dataclass

import law

from jetcalib.types import Any, Mapping
from jetcalib.errors import ConfigurationError, MissingInputError, NumericWarning
from jetcalib.util import DotDict, maybe_import
from jetcalib.config import JetCalibratorConfig
from jetcalib.provenance import ProvenanceResolver
from jetcalib.systematics import (
    SystematicVariation, enumerate_systematics, create_output_bindings,
)
from jetcalib.store import EventStore
from jetcalib.toolset import initialize_tools
from jetcalib.calibration.sequence import select_calibration_config
from jetcalib.calibration.jets import default_stages

ak = maybe_import("awkward")


logger = law.logger.get_logger(__name__)


@dataclass
class RunState:
    """
    Counters of a single run of a :py:class:`JetCalibrator`.
    """

    n_events: int = 0
    n_objects: int = 0
    n_failed_events: int = 0
    n_numeric_warnings: int = 0


class JetCalibrator(object):
    """
    Calibrates the jets of each event and publishes one collection per systematic variation.

    Usage:

    .. code-block:: python

        config = JetCalibratorConfig.from_law_config()
        calibrator = JetCalibrator(config)
        calibrator.initialize(metadata={"is_simulation": True, "simulation_flavor": "FullG4"})

        for store in events:
            calibrator.execute(store)

        calibrator.finalize()

    :py:meth:`initialize` resolves the provenance of the first input source, selects the calibration
    config, builds the tools and enumerates the systematic variations. When the input source
    changes, :py:meth:`change_input` re-resolves the provenance and rebuilds the tools if needed.
    :py:meth:`execute` then runs the :py:attr:`stages` for each variation on an independent view of
    the input jets, in the order of enumeration.

    .. py:attribute:: tool_classes

        type: dict

        Tool classes per capability that replace the
        :py:data:`~jetcalib.toolset.default_tool_classes`.

    .. py:attribute:: stages

        type: tuple

        The :py:class:`~jetcalib.calibration.Stage` classes to run, in order.
    """

    tool_classes = DotDict()

    stages = default_stages

    def __init__(self, config: JetCalibratorConfig):
        super().__init__()

        self.config = config.validate()
        self.resolver = ProvenanceResolver(
            force_fast_sim=config.set_afii,
            force_insitu=config.force_insitu,
        )

        # setup state
        self.provenance = None
        self.calib_config = None
        self.tools = None
        self.pipeline = ()
        self.variations = None
        self.bindings = None

        # run state
        self.state = RunState()

    @property
    def initialized(self) -> bool:
        return self.bindings is not None

    @property
    def variation_names(self) -> tuple[str, ...]:
        """
        Names of all processed variations, the empty name of the nominal variation first.
        """
        if not self.initialized:
            return ()
        return tuple(variation.name for variation in self.variations)

    def _build(self, source: Any, metadata: Mapping[str, Any]) -> DotDict | None:
        """
        Resolves the provenance of *source* and builds the calibration config, tools, pipeline,
        variations and output bindings for it without changing the state of the calibrator. Returns
        *None* when the provenance did not change and the current setup can be kept.
        """
        provenance, changed = self.resolver.resolve(source, metadata)
        if not changed and self.tools is not None:
            self.resolver.accept(source, provenance)
            return None

        calib_config = select_calibration_config(
            provenance,
            data_config=self.config.calib_config_data,
            full_sim_config=self.config.calib_config_full_sim,
            fast_sim_config=self.config.calib_config_afii,
            sequence=self.config.calib_sequence,
        )
        tools = initialize_tools(calib_config, provenance, self.config, self.tool_classes)
        pipeline = tuple(stage_cls(self.config, tools) for stage_cls in self.stages)
        variations = enumerate_systematics(
            jes_tool=tools.jes,
            jer_tool=tools.jer,
            jer_full_sys=self.config.jer_full_sys,
            syst_name=self.config.syst_name,
        )
        bindings = create_output_bindings(self.config.out_container_name, variations)

        return DotDict(
            source=source,
            provenance=provenance,
            calib_config=calib_config,
            tools=tools,
            pipeline=pipeline,
            variations=variations,
            bindings=bindings,
        )

    def _accept(self, setup: DotDict) -> None:
        self.resolver.accept(setup.source, setup.provenance)
        self.provenance = setup.provenance
        self.calib_config = setup.calib_config
        self.tools = setup.tools
        self.pipeline = setup.pipeline
        self.variations = setup.variations
        self.bindings = setup.bindings
        logger.debug(f"pipeline stages: {', '.join(map(repr, self.pipeline))}")

    def initialize(self, metadata: Mapping[str, Any], source: Any = None) -> tuple[str, ...]:
        """
        Sets up the calibrator for the input *source* described by *metadata* and returns the
        names of all variations.

        :raises ConfigurationError: If the configuration is inconsistent.
        :raises ProviderInitializationError: If a tool fails to set itself up.
        """
        if self.initialized:
            raise RuntimeError(f"{self.__class__.__name__} is already initialized")

        self._accept(self._build(source, metadata))
        logger.info(
            f"jet calibrator initialized with {len(self.bindings)} output collection(s) for "
            f"'{self.config.in_container_name}'",
        )

        return self.variation_names

    def change_input(self, source: Any, metadata: Mapping[str, Any]) -> None:
        """
        Notifies the calibrator about a new input *source* described by *metadata*. Tools are only
        rebuilt when the provenance changes. On failure, the previous setup is kept unchanged and
        the provenance of *source* is resolved again on the next call.

        :raises ConfigurationError: If the configuration is inconsistent for the new provenance or
            the rebuilt tools provide a different set of variations, since the published
            collections must not change within a run.
        :raises ProviderInitializationError: If a tool fails to set itself up.
        """
        if not self.initialized:
            raise RuntimeError(f"{self.__class__.__name__} must be initialized first")

        setup = self._build(source, metadata)
        if setup is None:
            return

        names = tuple(variation.name for variation in setup.variations)
        if names != self.variation_names:
            raise ConfigurationError(
                f"input source '{source}' of the '{setup.provenance.branch}' branch changes the "
                f"systematic variations from {list(self.variation_names)} to {list(names)}",
            )

        self._accept(setup)

    def process_variation(
        self,
        jets: ak.Array,
        variation: SystematicVariation,
        event_info: DotDict,
    ) -> ak.Array:
        """
        Runs all enabled stages for a single *variation* and returns the resulting jets. The input
        *jets* are not changed.
        """
        # independent view, columns added by stages only exist in this view
        jets = ak.Array(jets)

        for stage in self.pipeline:
            jets = stage(jets, variation, event_info)

        return jets

    def execute(self, store: EventStore) -> bool:
        """
        Calibrates the jets in the event *store* for all variations and records the resulting
        collections as well as the names of all variations under ``output_algo``. Returns *True* on
        success.

        When an input is missing or a tool fails for one of the variations, the error is logged,
        nothing is recorded for the event and *False* is returned. Numeric warnings of tools are
        logged and counted.

        :raises ValueError: If one of the output names is already taken in *store*, in which case
            nothing is recorded.
        """
        if not self.initialized:
            raise RuntimeError(f"{self.__class__.__name__} must be initialized first")

        self.state.n_events += 1
        event_info = DotDict()
        variation = None
        success = False

        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always")

            try:
                jets = store.retrieve(self.config.in_container_name)
                if self.config.event_info_name in store:
                    event_info = DotDict.wrap(store.retrieve(self.config.event_info_name))

                outputs = []
                for binding in self.bindings:
                    variation = binding.variation
                    logger.debug(f"processing variation {variation}")
                    outputs.append((
                        binding.collection_name,
                        self.process_variation(jets, variation, event_info),
                    ))

            except MissingInputError as e:
                self.state.n_failed_events += 1
                logger.error(
                    f"failed to process event {event_info.get('event', '?')}"
                    f"{'' if variation is None else f' in variation {variation}'}: {e}",
                )

            except ConfigurationError:
                raise

            except Exception as e:
                self.state.n_failed_events += 1
                logger.error(
                    f"failed to process event {event_info.get('event', '?')} in variation "
                    f"{variation} of the '{self.provenance.branch}' branch: "
                    f"{e.__class__.__name__}: {e}",
                )

            else:
                # all names must be free before anything is published
                names = [name for name, _ in outputs] + [self.config.output_algo]
                taken = [name for name in names if name in store]
                if taken:
                    raise ValueError(
                        f"output collection(s) {', '.join(taken)} already recorded in event store",
                    )

                for name, output in outputs:
                    store.record(name, output)
                store.record(self.config.output_algo, self.variation_names)

                self.state.n_objects += len(jets)
                success = True

        self._handle_warnings(caught, event_info)

        return success

    def _handle_warnings(self, caught: list, event_info: DotDict) -> None:
        for w in caught:
            if issubclass(w.category, NumericWarning):
                self.state.n_numeric_warnings += 1
                logger.warning(f"event {event_info.get('event', '?')}: {w.message}")
            else:
                # forward all other warnings
                warnings.warn_explicit(w.message, w.category, w.filename, w.lineno)

    def finalize(self) -> RunState:
        """
        Logs the counters of the run and returns them.
        """
        state = self.state
        logger.info(
            f"processed {state.n_events} event(s) with {state.n_objects} jet(s), "
            f"{state.n_failed_events} failed event(s), "
            f"{state.n_numeric_warnings} numeric warning(s)",
        )

        return state
