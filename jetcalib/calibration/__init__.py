# coding: utf-8

"""
Per-event calibration stages.
"""

from __future__ import annotations

import inspect

import law

from jetcalib.types import Any, Callable
from jetcalib.util import Derivable, DerivableMeta


logger = law.logger.get_logger(__name__)


class Stage(Derivable):
    """
    Base class for all stages of the per-event calibration pipeline.

    A stage wraps a ``call_func`` that receives the working copy of the jets of one event, the
    :py:class:`~jetcalib.systematics.SystematicVariation` that is currently processed and the event
    information, and returns the updated jets. Stages are instantiated once per calibrator with its
    configuration and its :py:class:`~jetcalib.toolset.ToolSet`.

    .. py:attribute:: enabled_by

        type: str, None

        Name of a boolean configuration option that switches the stage on. When *None*, the stage
        always runs unless a custom ``skip_func`` decides otherwise.

    .. py:attribute:: init_func

        type: callable, None

        Optional function that is called after instantiation, e.g. to validate that all tools the
        stage needs are available.

    .. py:attribute:: skip_func

        type: callable, None

        Optional function returning a boolean that decides whether the stage is skipped.
    """

    call_func = None
    init_func = None
    skip_func = None

    enabled_by = None

    @classmethod
    def stage(
        cls,
        func: Callable | None = None,
        bases: tuple = (),
        enabled_by: str | None = None,
        **kwargs,
    ) -> DerivableMeta | Callable:
        """
        Decorator for creating a new :py:class:`Stage` subclass with additional, optional *bases*
        and attaching the decorated function to it as ``call_func``.

        When *enabled_by* is set, it refers to a boolean option of the calibrator configuration and
        the stage is skipped when the option is *False*. All additional *kwargs* are added as class
        members of the new subclass.

        :param func: Function to be wrapped and integrated into the new :py:class:`Stage` class.
        :param bases: Additional bases for the new :py:class:`Stage`.
        :param enabled_by: Name of the configuration option enabling the stage.
        :return: New :py:class:`Stage` subclass.
        """
        def decorator(func: Callable) -> DerivableMeta:
            # create the class dict
            cls_dict = {
                **kwargs,
                "call_func": func,
                "enabled_by": enabled_by,
            }

            # get the module name
            frame = inspect.stack()[1]
            module = inspect.getmodule(frame[0])

            # get the stage name
            cls_name = cls_dict.pop("cls_name", func.__name__)

            # hook to update the class dict during class derivation
            def update_cls_dict(cls_name, cls_dict, get_attr):
                enabled_by = get_attr("enabled_by")
                if enabled_by and cls_dict.get("skip_func"):
                    raise Exception(
                        f"stage {cls_name} received custom skip_func, but enabled_by is set",
                    )

                if enabled_by and "skip_func" not in cls_dict:
                    def skip_func(self) -> bool:
                        return not getattr(self.config, enabled_by)

                    cls_dict["skip_func"] = skip_func

                return cls_dict

            cls_dict["update_cls_dict"] = update_cls_dict

            # create the subclass
            subclass = cls.derive(cls_name, bases=bases, cls_dict=cls_dict, module=module)

            return subclass

        return decorator(func) if func else decorator

    @classmethod
    def init(cls, func: Callable[[], None]) -> None:
        """
        Decorator to wrap a function *func* that should be registered as :py:meth:`init_func`. The
        decorator does not return the wrapped function.
        """
        cls.init_func = func

    @classmethod
    def skip(cls, func: Callable[[], bool]) -> None:
        """
        Decorator to wrap a function *func* that should be registered as :py:meth:`skip_func`. The
        decorator does not return the wrapped function.
        """
        cls.skip_func = func

    def __init__(self, config: Any, tools: Any):
        super().__init__()

        self.config = config
        self.tools = tools

        if self.call_func is None:
            raise NotImplementedError(f"stage {self.cls_name} does not define a call_func")

        # the enabled state does not change after setup
        self.enabled = not (callable(self.skip_func) and self.skip_func())

        if self.enabled and callable(self.init_func):
            self.init_func()

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} '{self.cls_name}' enabled={self.enabled}>"

    def __call__(self, jets, variation, event_info):
        if not self.enabled:
            return jets
        return self.call_func(jets, variation, event_info)


# shorthand
stage = Stage.stage
