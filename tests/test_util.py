# coding: utf-8


__all__ = ["UtilTest"]

import os
import unittest

from jetcalib.util import (
    maybe_import, MockModule, DotDict, Derivable, is_regex, is_pattern, pattern_matcher,
    load_correction_set, real_path,
)


class UtilTest(unittest.TestCase):

    def test_maybe_import(self):
        # non-existing package
        mock_module = maybe_import("not_existing_package")
        self.assertIsInstance(mock_module, MockModule)
        self.assertFalse(mock_module)
        with self.assertRaises(Exception):
            mock_module()

        with self.assertRaises(ImportError):
            _ = maybe_import("not_existing_package", force=True)

        # existing package
        self.assertEqual(unittest, maybe_import("unittest"))

    def test_is_regex(self):
        self.assertTrue(is_regex(r"^JET_JER_NP\d+__1up$"))
        self.assertFalse(is_regex(r"^no$atEnd"))
        self.assertFalse(is_regex(r"no^atStart$"))

    def test_is_pattern(self):
        self.assertTrue(is_pattern("JET_*"))
        self.assertTrue(is_pattern("JET_EffectiveNP_?__1up"))
        self.assertFalse(is_pattern("JET_EffectiveNP_1__1up"))

    def test_pattern_matcher(self):
        matcher = pattern_matcher("JET_EffectiveNP_*")
        self.assertTrue(matcher("JET_EffectiveNP_1__1up"))
        self.assertTrue(matcher("JET_EffectiveNP_2__1down"))
        self.assertFalse(matcher("JET_JER_SINGLE_NP__1up"))

        matcher = pattern_matcher(r"^JET_JER_NP\d+__1up$")
        self.assertTrue(matcher("JET_JER_NP3__1up"))
        self.assertFalse(matcher("JET_JER_NP__1up"))
        self.assertFalse(matcher("JET_JER_NP3__1down"))

        matcher = pattern_matcher(("*InSitu*", "*Insitu*"), mode=any)
        self.assertTrue(matcher("EtaIntercalibration_InSitu"))
        self.assertTrue(matcher("Insitu_Stat"))
        self.assertFalse(matcher("EffectiveNP_1"))

        matcher = pattern_matcher(("JET_*", "*__1up"), mode=all)
        self.assertFalse(matcher("JET_EffectiveNP_1__1down"))
        self.assertTrue(matcher("JET_EffectiveNP_1__1up"))

        # plain strings are compared
        matcher = pattern_matcher("EtaJES")
        self.assertTrue(matcher("EtaJES"))
        self.assertFalse(matcher("EtaJES_GSC"))

    def test_load_correction_set(self):
        # SHOULD: return already loaded objects unchanged
        correction_set = {"AntiKt4EMPFlow_EtaJES": object()}
        self.assertIs(load_correction_set(correction_set), correction_set)

        # SHOULD: fail for missing files
        with self.assertRaises(IOError):
            load_correction_set("/not/existing/jet_calib.json")

    def test_real_path(self):
        os.environ["JC_TEST_DATA"] = "/tmp/jetcalib"
        os.environ["JC_TEST_FILE"] = "$JC_TEST_DATA/calib.json"

        # SHOULD: expand nested variables
        self.assertEqual(real_path("$JC_TEST_FILE"), os.path.realpath("/tmp/jetcalib/calib.json"))
        self.assertEqual(
            real_path("$JC_TEST_DATA", "jes.json"),
            os.path.realpath("/tmp/jetcalib/jes.json"),
        )

        # SHOULD: keep unset variables
        self.assertTrue(real_path("$JC_TEST_NOT_SET/x.json").endswith("$JC_TEST_NOT_SET/x.json"))

    def test_DotDict(self):
        tools = DotDict(calibration="calib", jes=None)
        self.assertEqual(tools.calibration, "calib")
        self.assertIsNone(tools.jes)
        self.assertEqual(tools.get("jvt", "none"), "none")
        with self.assertRaises(AttributeError):
            tools.jvt

        # attribute assignment
        tools.jvt = "jvt"
        self.assertEqual(tools["jvt"], "jvt")
        self.assertEqual(list(tools), ["calibration", "jes", "jvt"])

        event_info = DotDict.wrap({"event": 1234, "beam": {"energy": 6800.0}, "runs": [1, 2]})
        self.assertEqual(event_info.beam.energy, 6800.0)
        self.assertEqual(event_info.runs, [1, 2])

    def test_Derivable(self):
        class Tool(Derivable):
            jet_algo = "AntiKt4EMPFlow"
            cut = 1.0

        derived = Tool.derive("LooseTool", cls_dict={"cut": 0.5, "label": "clean_jet"})
        deep_derived = derived.derive("TightTool", cls_dict={"cut": 0.8})

        self.assertEqual(derived.cls_name, "LooseTool")
        self.assertEqual(derived().cls_name, "LooseTool")
        self.assertEqual(derived.__module__, __name__)
        self.assertEqual(derived.jet_algo, "AntiKt4EMPFlow")
        self.assertEqual(derived.cut, 0.5)
        self.assertEqual(deep_derived.label, "clean_jet")
        with self.assertRaises(AttributeError):
            Tool.label

        self.assertTrue(Tool.derived_by(deep_derived))
        self.assertTrue(Tool.derived_by(Tool))
        self.assertFalse(derived.derived_by(Tool))
        self.assertFalse(Tool.derived_by(object))

    def test_Derivable_update_cls_dict(self):
        calls = []

        class Tool(Derivable):
            prefix = "clean_pass"
            label = None

            def update_cls_dict(cls_name, cls_dict, get_attr):
                calls.append(cls_name)
                # default labels from the class name
                if "label" not in cls_dict:
                    cls_dict["label"] = get_attr("prefix") + cls_name

        # SHOULD: run the hook for all subclasses, also derived ones
        derived = Tool.derive("LooseBad")
        deep_derived = derived.derive("TightBad", cls_dict={"label": "clean_jet"})
        self.assertEqual(calls, ["Tool", "LooseBad", "TightBad"])
        self.assertEqual(derived.label, "clean_passLooseBad")
        self.assertEqual(deep_derived.label, "clean_jet")
        self.assertIsNone(Tool.label)
