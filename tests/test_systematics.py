# coding: utf-8


__all__ = ["SystematicsTest"]

import unittest

from jetcalib.errors import ConfigurationError
from jetcalib.systematics import (
    SystematicOrigin, SystematicVariation, NOMINAL, filter_systematics, enumerate_systematics,
    create_output_bindings,
)


class StubUncertaintyTool(object):

    def __init__(self, names, origin, simplified=None):
        super().__init__()

        self.variations = [
            SystematicVariation(name=name, origin=origin, parameter=1.0)
            for name in names
        ]
        self.simplified = simplified

    def recommended_systematics(self):
        return list(self.variations)

    def simplified_systematic(self):
        return SystematicVariation(name=self.simplified, origin=SystematicOrigin.JER, parameter=1.0)


class SystematicsTest(unittest.TestCase):

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)

        self.jes_tool = StubUncertaintyTool(
            ["JET_EffectiveNP_1", "JET_EffectiveNP_2"],
            SystematicOrigin.JES,
        )
        self.jer_tool = StubUncertaintyTool(
            ["JET_JER_NP1__1up", "JET_JER_NP2__1up", "JET_JER_NP3__1up"],
            SystematicOrigin.JER,
            simplified="JET_JER_SINGLE_NP__1up",
        )

    def test_nominal(self):
        self.assertTrue(NOMINAL.is_nominal)
        self.assertEqual(NOMINAL.origin, SystematicOrigin.NONE)
        self.assertEqual(str(NOMINAL), "nominal")

        # SHOULD: always contain the nominal variation first and exactly once
        self.assertEqual(enumerate_systematics(), [NOMINAL])
        variations = enumerate_systematics(jes_tool=self.jes_tool, jer_tool=self.jer_tool)
        self.assertEqual(variations[0], NOMINAL)
        self.assertEqual(sum(v.is_nominal for v in variations), 1)

    def test_order(self):
        variations = enumerate_systematics(
            jes_tool=self.jes_tool,
            jer_tool=self.jer_tool,
            jer_full_sys=True,
        )
        self.assertEqual([v.name for v in variations], [
            "",
            "JET_EffectiveNP_1",
            "JET_EffectiveNP_2",
            "JET_JER_NP1__1up",
            "JET_JER_NP2__1up",
            "JET_JER_NP3__1up",
        ])
        self.assertEqual(variations[1].origin, SystematicOrigin.JES)
        self.assertEqual(variations[-1].origin, SystematicOrigin.JER)

    def test_simplified_jer(self):
        # SHOULD: produce exactly one JER variation regardless of the registered ones
        variations = enumerate_systematics(jer_tool=self.jer_tool, jer_full_sys=False)
        jer_variations = [v for v in variations if v.origin == SystematicOrigin.JER]
        self.assertEqual(len(jer_variations), 1)
        self.assertEqual(jer_variations[0].name, "JET_JER_SINGLE_NP__1up")

    def test_collisions(self):
        jer_tool = StubUncertaintyTool(["JET_EffectiveNP_1"], SystematicOrigin.JER)
        with self.assertRaises(ConfigurationError):
            enumerate_systematics(jes_tool=self.jes_tool, jer_tool=jer_tool, jer_full_sys=True)

        # SHOULD: detect collisions before filtering
        with self.assertRaises(ConfigurationError):
            enumerate_systematics(
                jes_tool=self.jes_tool,
                jer_tool=jer_tool,
                jer_full_sys=True,
                syst_name="",
            )

        # SHOULD: reject the empty name of the nominal variation
        jes_tool = StubUncertaintyTool(["JET_EffectiveNP_1", ""], SystematicOrigin.JES)
        with self.assertRaises(ConfigurationError):
            enumerate_systematics(jes_tool=jes_tool)

    def test_filter(self):
        candidates = self.jes_tool.recommended_systematics() + self.jer_tool.recommended_systematics()

        self.assertEqual(filter_systematics(candidates, "All"), candidates)
        self.assertEqual(filter_systematics(candidates, ""), [])
        self.assertEqual(
            [v.name for v in filter_systematics(candidates, "JET_EffectiveNP_*")],
            ["JET_EffectiveNP_1", "JET_EffectiveNP_2"],
        )
        self.assertEqual(
            [v.name for v in filter_systematics(candidates, r"^JET_JER_NP[13]__1up$")],
            ["JET_JER_NP1__1up", "JET_JER_NP3__1up"],
        )
        self.assertEqual(
            [v.name for v in filter_systematics(candidates, "JET_EffectiveNP_2, JET_JER_NP2__1up")],
            ["JET_EffectiveNP_2", "JET_JER_NP2__1up"],
        )

        variations = enumerate_systematics(jes_tool=self.jes_tool, syst_name="")
        self.assertEqual(variations, [NOMINAL])

    def test_output_bindings(self):
        variations = enumerate_systematics(jes_tool=self.jes_tool)
        bindings = create_output_bindings("Jets_Calib", variations)

        self.assertEqual([b.collection_name for b in bindings], [
            "Jets_Calib",
            "Jets_Calib_JET_EffectiveNP_1",
            "Jets_Calib_JET_EffectiveNP_2",
        ])
        self.assertEqual([b.variation for b in bindings], variations)

        # SHOULD: reject duplicate collection names
        with self.assertRaises(ConfigurationError):
            create_output_bindings("Jets_Calib", [NOMINAL, variations[1], variations[1]])

        with self.assertRaises(ConfigurationError):
            create_output_bindings("", variations)
