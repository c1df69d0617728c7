"""Command-line entry point for the closure scanner."""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
from typing import Iterable, Iterator, List, Optional

from .annotations import DEFAULT_TAG
from .config import MODES, ReportOptions, load_options
from .exceptions import ClosureScanError, GraphError
from .result import AnalysisResult, format_summary_table
from .rules import AnalysisContext, Rule, available_rules
from .utils import iter_code_files
from .utils.graphdoc import load_graph
from .utils.pysource import load_source_graph

DEFAULT_SOURCE_DIRS = (".",)

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="closurescan",
        description="Report variables that tagged functions capture implicitly",
    )
    parser.add_argument(
        "--source",
        "-s",
        dest="source_dirs",
        action="append",
        default=[],
        help="Python file or directory to scan (repeatable).",
    )
    parser.add_argument(
        "--graph",
        dest="graph_paths",
        action="append",
        default=[],
        help="Serialized scope graph (YAML/JSON) from an external binder (repeatable); invalid graphs are skipped with a warning.",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="YAML file with the declaration/function/reference settings.",
    )
    parser.add_argument(
        "--tag",
        default=DEFAULT_TAG,
        help=f"Comment keyword that opts a function into checking (default: {DEFAULT_TAG}).",
    )
    for stream in ("declaration", "function", "reference"):
        parser.add_argument(
            f"--{stream}",
            choices=MODES,
            default=None,
            help=f"Emit {stream} reports (overrides the config file).",
        )
    parser.add_argument(
        "--format",
        choices=["json"],
        default="json",
        help="Report format for file output (defaults to json).",
    )
    parser.add_argument(
        "--out",
        "--output",
        dest="output_path",
        type=str,
        default=None,
        help="Path to write the structured report (e.g., artifacts/closures.json).",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Log tagged functions and captures as they are analyzed.",
    )
    return parser


def load_rules(options: Optional[ReportOptions] = None, tag: str = DEFAULT_TAG) -> List[Rule]:
    return [rule_class(options, tag=tag) for rule_class in available_rules().values()]


def iter_units(source_paths: Iterable[str], graph_paths: Iterable[str] = ()) -> Iterator[AnalysisContext]:
    """Yield one analysis context per program unit."""

    for path in iter_code_files(source_paths):
        graph = load_source_graph(path)
        if graph is None:
            continue
        yield AnalysisContext(graph=graph, path=str(path))
    for graph_path in graph_paths:
        try:
            graph = load_graph(Path(graph_path))
        except GraphError as exc:
            logger.warning("Skipping %s: %s", graph_path, exc)
            continue
        yield AnalysisContext(graph=graph, path=str(graph_path))


def run_scan(
    source_paths: Iterable[str],
    graph_paths: Iterable[str] = (),
    options: Optional[ReportOptions] = None,
    tag: str = DEFAULT_TAG,
) -> AnalysisResult:
    rules = load_rules(options, tag)
    result = AnalysisResult()
    units = 0
    for context in iter_units(source_paths, graph_paths):
        units += 1
        for rule in rules:
            rule.scan(context, result)
    logger.debug("Scanned %d unit(s), %d report(s)", units, result.summary.total)
    return result


def write_output(result: AnalysisResult, output_path: str | None, report_format: str) -> None:
    summary = format_summary_table(result)
    print(summary)

    if report_format == "json":
        payload = json.dumps(result.to_dict(), indent=2)
        if output_path:
            output_file = Path(output_path)
            output_file.parent.mkdir(parents=True, exist_ok=True)
            output_file.write_text(payload, encoding="utf-8")
            print(f"\nReport written to {output_path}")
        else:
            print("\nJSON Report")
            print(payload)


def main(argv: List[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    sources = args.source_dirs or ([] if args.graph_paths else list(DEFAULT_SOURCE_DIRS))
    try:
        options = load_options(Path(args.config) if args.config else None).override(
            declaration=args.declaration,
            function=args.function,
            reference=args.reference,
        )
        result = run_scan(sources, args.graph_paths, options=options, tag=args.tag)
    except ClosureScanError as exc:
        parser.exit(2, f"{parser.prog}: error: {exc}\n")
    write_output(result, args.output_path, args.format)
    return result.exit_code()


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
