# coding: utf-8


__all__ = ["CalibrationUtilTest"]

import unittest
import warnings

from jetcalib.util import maybe_import
from jetcalib.errors import MissingInputError, NumericWarning
from jetcalib.calibration import util as calib_util

from .fakes import FakeCorrectionSet

np = maybe_import("numpy")
ak = maybe_import("awkward")


class CalibrationUtilTest(unittest.TestCase):

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)

        self.jer_example = ak.Array([0.101, 0.118, 0.114, 0.129, 0.131, 0.143, 0.201, 0.264])
        self.correction_set = (
            FakeCorrectionSet()
            .add("AntiKt4EMPFlow_EtaJES", ("JetPt", "JetEta"), lambda pt, eta: pt * 0.01 + eta)
            .add("AntiKt4EMPFlow_JetArea", ("JetPt", "Rho"), lambda pt, rho: 1 - rho / pt)
        )

    def test_ak_random(self):
        # SHOULD: return the same numbers for the same seed
        outputs = [
            calib_util.ak_random(
                ak.zeros_like(self.jer_example),
                self.jer_example,
                rand_func=np.random.Generator(np.random.SFC64(312004)).normal,
            )
            for _ in range(2)
        ]

        self.assertIsInstance(outputs[0], ak.Array)
        self.assertEqual(len(outputs[0]), len(self.jer_example))
        self.assertListEqual(outputs[0].to_list(), outputs[1].to_list())

        # SHOULD: keep the layout of nested inputs
        nested = ak.Array([[0.1, 0.2], [], [0.3]])
        output = calib_util.ak_random(
            ak.zeros_like(nested),
            nested,
            rand_func=np.random.Generator(np.random.SFC64(1)).normal,
        )
        self.assertEqual(ak.num(output, axis=1).to_list(), [2, 0, 1])

    def test_get_evaluators(self):
        evaluators = calib_util.get_evaluators(
            self.correction_set,
            ["AntiKt4EMPFlow_JetArea", "AntiKt4EMPFlow_EtaJES"],
        )
        self.assertEqual([e.name for e in evaluators], [
            "AntiKt4EMPFlow_JetArea", "AntiKt4EMPFlow_EtaJES",
        ])

        # SHOULD: fail for missing corrections
        with self.assertRaises(RuntimeError):
            calib_util.get_evaluators(self.correction_set, ["AntiKt4EMPFlow_GSC"])

    def test_ak_evaluate(self):
        evaluator = self.correction_set["AntiKt4EMPFlow_JetArea"]

        # SHOULD: pass non-awkward inputs as they are
        result = calib_util.ak_evaluate(evaluator, ak.Array([20.0, 40.0]), 10.0)
        self.assertIsInstance(result, ak.Array)
        self.assertEqual(result.to_list(), [0.5, 0.75])

        # SHOULD: keep the layout of nested inputs
        result = calib_util.ak_evaluate(evaluator, ak.Array([[20.0], [], [40.0, 50.0]]), 10.0)
        self.assertEqual(result.to_list(), [[0.5], [], [0.75, 0.8]])

        with self.assertRaises(ValueError):
            calib_util.ak_evaluate(evaluator)

    def test_evaluate_inputs(self):
        evaluator = self.correction_set["AntiKt4EMPFlow_EtaJES"]
        variable_map = {
            "JetPt": ak.Array([100.0, 50.0]),
            "JetEta": ak.Array([0.5, -0.5]),
            "Rho": 12.0,
        }
        result = calib_util.evaluate_inputs(evaluator, variable_map)
        self.assertEqual(result.to_list(), [1.5, 0.0])

        # SHOULD: raise MissingInputError when an input is not available
        with self.assertRaises(MissingInputError):
            calib_util.evaluate_inputs(evaluator, {"JetPt": ak.Array([100.0])})

    def test_check_finite(self):
        values = ak.Array([1.1, np.nan, 0.9, np.inf])

        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always")
            result = calib_util.check_finite(values, "test factors")

        self.assertEqual(result.to_list(), [1.1, 1.0, 0.9, 1.0])
        self.assertEqual(len(caught), 1)
        self.assertTrue(issubclass(caught[0].category, NumericWarning))
        self.assertIn("2 non-finite", str(caught[0].message))

        # SHOULD: return finite values unchanged without warning
        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always")
            result = calib_util.check_finite(ak.Array([1.0, 2.0]), "test factors", fill=0.0)

        self.assertEqual(result.to_list(), [1.0, 2.0])
        self.assertEqual(len(caught), 0)
