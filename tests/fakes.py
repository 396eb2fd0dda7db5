# coding: utf-8

"""
Stand-ins for correctionlib correction sets and helpers to build jets and calibrators in tests.
"""

__all__ = []

from jetcalib.util import maybe_import, DotDict
from jetcalib.config import JetCalibratorConfig
from jetcalib.calibrator import JetCalibrator
from jetcalib.toolset import default_tool_classes

np = maybe_import("numpy")
ak = maybe_import("awkward")


JET_ALGO = "AntiKt4EMPFlow"


class FakeCorrection(object):
    """
    Object with the same evaluation interface as a *correctionlib.highlevel.Correction*. *func*
    receives the flat inputs in the order of *inputs*.
    """

    def __init__(self, name, inputs, func):
        super().__init__()

        self.name = name
        self.inputs = [DotDict(name=inp) for inp in inputs]
        self.func = func

    def evaluate(self, *args):
        return np.asarray(self.func(*args), dtype=np.float64)


class FakeCorrectionSet(dict):
    """
    Dictionary of :py:class:`FakeCorrection`'s with the lookup interface of a
    *correctionlib.highlevel.CorrectionSet*.
    """

    compound = {}

    def add(self, name, inputs, func):
        self[name] = FakeCorrection(name, inputs, func)
        return self

    def add_constant(self, name, value, inputs=("JetPt",)):
        return self.add(name, inputs, lambda first, *args: np.full(len(first), value))


def make_correction_sets(jet_algo=JET_ALGO):
    """
    Returns fake correction sets keyed by the file names used in :py:func:`make_config`.
    """
    calib_data = (
        FakeCorrectionSet()
        .add_constant(f"{jet_algo}_JetArea", 0.9, inputs=("JetPt", "JetA", "Rho"))
        .add_constant(f"{jet_algo}_Residual", 1.0)
        .add_constant(f"{jet_algo}_EtaJES", 1.1, inputs=("JetPt", "JetEta"))
        .add_constant(f"{jet_algo}_Insitu", 1.02, inputs=("JetPt", "JetEta"))
        .add_constant(f"{jet_algo}_Trigger_EtaJES", 1.2, inputs=("JetPt", "JetEta"))
        .add_constant(f"{jet_algo}_Trigger_Insitu", 1.0, inputs=("JetPt", "JetEta"))
    )
    calib_full_sim = (
        FakeCorrectionSet()
        .add_constant(f"{jet_algo}_JetArea", 0.9, inputs=("JetPt", "JetA", "Rho"))
        .add_constant(f"{jet_algo}_Residual", 1.0)
        .add_constant(f"{jet_algo}_EtaJES", 1.1, inputs=("JetPt", "JetEta"))
        .add_constant(f"{jet_algo}_Insitu", 1.02, inputs=("JetPt", "JetEta"))
    )
    calib_afii = (
        FakeCorrectionSet()
        .add_constant(f"{jet_algo}_JetArea", 0.95, inputs=("JetPt", "JetA", "Rho"))
        .add_constant(f"{jet_algo}_Residual", 1.0)
        .add_constant(f"{jet_algo}_EtaJES", 1.05, inputs=("JetPt", "JetEta"))
    )
    jes = (
        FakeCorrectionSet()
        .add_constant(f"{jet_algo}_MC16_EffectiveNP_1", 0.05, inputs=("JetPt", "JetEta"))
        .add_constant(f"{jet_algo}_MC16_EffectiveNP_2", 0.02, inputs=("JetPt", "JetEta"))
        .add_constant(f"{jet_algo}_MC16_EtaIntercalibration_InSitu", 0.01)
        .add_constant(f"{jet_algo}_MC20_EffectiveNP_1", 0.5)
    )
    jer = (
        FakeCorrectionSet()
        .add_constant(f"{jet_algo}_PtResolution", 0.1, inputs=("JetEta", "JetPt", "Rho"))
        .add_constant(f"{jet_algo}_ScaleFactor", 1.1, inputs=("JetEta", "systematic"))
        .add_constant(f"{jet_algo}_JER_NP1", 0.03)
        .add_constant(f"{jet_algo}_JER_NP2", 0.04)
    )
    jvt = FakeCorrectionSet().add(
        f"{jet_algo}_JVT",
        ("JVFCorr", "RpT"),
        lambda jvf, rpt: np.clip(0.5 * jvf + rpt, 0.0, 1.0),
    )
    cleaning = (
        FakeCorrectionSet()
        .add(f"{jet_algo}_LooseBad", ("emf",), lambda emf: (emf < 0.95).astype(float))
        .add(f"{jet_algo}_TightBad", ("emf",), lambda emf: (emf < 0.8).astype(float))
    )
    tile = FakeCorrectionSet().add(
        f"{jet_algo}_TileCorrection",
        ("JetEta", "JetPhi", "JetPt"),
        lambda eta, phi, pt: np.where(np.abs(eta) < 1.0, 1.05, 1.0),
    )

    return {
        "calib_data.json": calib_data,
        "calib_full_sim.json": calib_full_sim,
        "calib_afii.json": calib_afii,
        "jes.json": jes,
        "jer.json": jer,
        "jvt.json": jvt,
        "cleaning.json": cleaning,
        "tile.json": tile,
    }


def derive_fake_tools(correction_sets):
    """
    Derives all default tool classes such that they load correction sets from *correction_sets*,
    a dictionary mapping file names to correction sets.
    """
    get_correction_set = lambda self, target: correction_sets[target]

    return DotDict(
        (name, tool_cls.derive(f"Fake{tool_cls.__name__}", cls_dict={
            "get_correction_set": get_correction_set,
        }))
        for name, tool_cls in default_tool_classes.items()
    )


def make_config(**kwargs):
    options = {
        "in_container_name": "Jets",
        "out_container_name": "Jets_Calib",
        "jet_algo": JET_ALGO,
        "calib_config_data": "calib_data.json",
        "calib_config_full_sim": "calib_full_sim.json",
        "calib_config_afii": "calib_afii.json",
        "calib_sequence": "JetArea_Residual_EtaJES",
        "do_cleaning": False,
        "cleaning_config": "cleaning.json",
        "jvt_config": "jvt.json",
        "tile_corr_config": "tile.json",
        "sort": False,
    }
    options.update(kwargs)
    return JetCalibratorConfig(**options)


def make_calibrator(config, correction_sets=None):
    calibrator = JetCalibrator(config)
    calibrator.tool_classes = derive_fake_tools(correction_sets or make_correction_sets())
    return calibrator


def make_jets(pt, eta=None, **columns):
    """
    Creates the jets of a single event as an awkward record array.
    """
    n = len(pt)
    fields = {
        "pt": np.asarray(pt, dtype=np.float32),
        "eta": np.asarray(eta if eta is not None else np.linspace(-1.5, 1.5, n), dtype=np.float32),
        "phi": np.zeros(n, dtype=np.float32),
        "mass": np.asarray(pt, dtype=np.float32) * 0.1,
        "area": np.full(n, 0.4, dtype=np.float32),
    }
    for name, values in columns.items():
        fields[name] = values if isinstance(values, ak.Array) else np.asarray(values)
    return ak.zip(fields)


full_sim_metadata = {"is_simulation": True, "simulation_flavor": "FullG4"}
fast_sim_metadata = {"is_simulation": True, "simulation_flavor": "AFII"}
data_metadata = {"is_simulation": False}
