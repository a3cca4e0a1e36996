"""
Main entry point: generation loop, synthesis and checking.
"""

import argparse
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv

from alias.facts import AliasFactError, AliasMap, load_alias_map
from apidep.graph import ApiDepGraph
from catalog.loader import CatalogError, load_catalog
from catalog.model import Catalog
from cli.debug import check_program_syntax, dump_region_graph, dump_run_artifacts
from cli.helpers import find_alias_file, resolve_crate_path, validate_environment
from core.config import CHECKERS, MODES, ConfigError, LtGenConfig, load_config
from core.rng import RandomSource, SeededRandom
from core.utils import debug, error, info, warn
from reporter import REPORT_FILE_NAME, Tally, print_case_status, report_tally, write_case_report
from syn.checker import Checker, make_checkers
from syn.input import InputGen, make_input_gen
from syn.project import CargoProjectBuilder, WorkspaceError, prepare_workspace
from syn.synth import FuzzDriverSynImpl
from testgen.generator import LtGen

load_dotenv()


def run_testgen(
    config: LtGenConfig,
    catalog: Catalog,
    alias_map: AliasMap,
    rng: Optional[RandomSource] = None,
    checkers: Optional[List[Checker]] = None,
    input_gen: Optional[InputGen] = None,
) -> Tally:
    """
    Generate cases until `max_run` is reached (or forever when it is 0),
    checking each one. Workspace failures propagate as WorkspaceError.
    """
    rng = rng or SeededRandom(config.seed)
    if checkers is None:
        checkers = make_checkers(config.checkers, config.timeout)
    input_gen = input_gen or make_input_gen(config.input_gen, catalog, rng)

    workspace = prepare_workspace(config.workspace, clean=config.is_debug or config.override)

    # ========================================================================
    # API dependency graph
    # ========================================================================
    graph = ApiDepGraph(catalog, config.api_graph).build()
    info(graph.statistics_str())
    dump_run_artifacts(workspace, graph, alias_map)

    generator = LtGen(catalog, graph, alias_map, config, rng)
    synthesizer = FuzzDriverSynImpl(catalog, input_gen)
    builder = CargoProjectBuilder(catalog.crate_name, catalog.crate_path, workspace)
    report_path = workspace / REPORT_FILE_NAME
    tally = Tally()

    # ========================================================================
    # Generation loop
    # ========================================================================
    case_id = 0
    try:
        while config.max_run == 0 or case_id < config.max_run:
            cx = generator.gen()
            code = synthesizer.syn_program(cx)
            if config.is_debug:
                check_program_syntax(cx, code)

            project = builder.build_project(f"case{case_id}")
            project.write_main(code)
            dump_region_graph(cx, project.path)
            case_id += 1

            results = [checker.run(project) for checker in checkers]
            for result in results:
                print_case_status(result)
            tally.record_all(results)
            write_case_report(report_path, results)

            if not config.is_debug:
                project.clear_artifact()
    except KeyboardInterrupt:
        warn(f"Interrupted after {case_id} case(s)")

    report_tally(tally)
    info(generator.statistic_str())
    return tally


def _cli_overrides(args: argparse.Namespace) -> Dict[str, Any]:
    overrides: Dict[str, Any] = {
        "max_complexity": args.max_complexity,
        "max_run": args.max_run,
        "workspace": args.workspace,
        "mode": args.mode,
        "seed": args.seed,
        "checkers": args.checker,
    }
    if args.override:
        overrides["override"] = True
    if args.dry_run:
        overrides["checkers"] = []
    return overrides


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Lifetime-guided test generator for Rust libraries")
    parser.add_argument("catalog", help="API catalog JSON produced for the library under test")
    parser.add_argument("-a", "--alias", metavar="PATH", help="Alias facts JSON (default: alias.json next to catalog)")
    parser.add_argument("-c", "--config", metavar="PATH", help="Config file (default: nearest .ltgenconfig)")
    parser.add_argument("--max-complexity", type=int, help="Statements per generated case")
    parser.add_argument("--max-run", type=int, help="Number of cases to generate (0 = unbounded)")
    parser.add_argument("-w", "--workspace", metavar="DIR", help="Output directory for generated packages")
    parser.add_argument("--mode", choices=MODES, help="debug keeps artifacts and generates a single case")
    parser.add_argument("--override", action="store_true", help="Remove an existing workspace first")
    parser.add_argument("--seed", type=int, help="Random seed")
    parser.add_argument(
        "--checker",
        action="append",
        choices=CHECKERS,
        help="Dynamic checker to run (can be specified multiple times)",
    )
    parser.add_argument("--dry-run", action="store_true", help="Generate and write cases without running checkers")
    args = parser.parse_args(argv)

    try:
        config = load_config(Path(args.config) if args.config else None, _cli_overrides(args))
        catalog_path = Path(args.catalog)
        catalog = load_catalog(catalog_path)
        catalog.crate_path = str(resolve_crate_path(catalog.crate_path, catalog_path))

        alias_path = find_alias_file(catalog_path, args.alias)
        if alias_path is None:
            warn("No alias facts given, every API is treated as returning unrelated values")
            alias_map = AliasMap()
        else:
            alias_map = load_alias_map(alias_path, catalog)

        validate_environment(config.checkers)
        debug(f"Configuration: {config}")
        run_testgen(config, catalog, alias_map)
    except (ConfigError, CatalogError, AliasFactError, WorkspaceError) as e:
        error(str(e))
        return 1
    return 0


def cli() -> None:
    sys.exit(main())


if __name__ == "__main__":
    cli()
