# coding: utf-8
# flake8: noqa

"""
Entry point for all tests.
"""

__all__ = []


# adjust the path to import the jetcalib package
import os
import sys
base = os.path.normpath(os.path.join(os.path.abspath(__file__), "../.."))
sys.path.append(base)
import jetcalib  # noqa

# import all tests
from .test_util import *
from .test_columnar_util import *
from .test_calibration_util import *
from .test_provenance import *
from .test_systematics import *
from .test_tools import *
from .test_stages import *
from .test_calibrator import *
