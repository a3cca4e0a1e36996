from syn.input import InputGen, RandomInputGen, SillyInputGen, make_input_gen
from syn.synth import FuzzDriverSynImpl
from syn.project import CargoProjectBuilder, RsProject, WorkspaceError, prepare_workspace
from syn.checker import AsanChecker, CheckResult, Checker, MiriChecker, make_checkers

__all__ = [
    "InputGen",
    "RandomInputGen",
    "SillyInputGen",
    "make_input_gen",
    "FuzzDriverSynImpl",
    "CargoProjectBuilder",
    "RsProject",
    "WorkspaceError",
    "prepare_workspace",
    "AsanChecker",
    "CheckResult",
    "Checker",
    "MiriChecker",
    "make_checkers",
]
