# coding: utf-8

"""
jetcalib

Per-event jet calibration and systematic variations backed by law, awkward and correctionlib.
"""

__copyright__ = "Copyright 2024"
__license__ = "BSD-3-Clause"
__status__ = "Development"
__version__ = "0.1.0"
