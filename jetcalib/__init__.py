# coding: utf-8

"""
Main entry point for top-level settings before anything else is imported.
"""

import os

# package infos
from jetcalib.__version__ import (  # noqa
    __doc__, __copyright__, __license__, __status__, __version__,
)

#: Name of the law config section that holds the calibrator options (based on ``JC_CONFIG_SECTION``).
config_section = os.getenv("JC_CONFIG_SECTION", "jet_calibrator")
