import argparse
import logging
from pathlib import Path
from typing import Optional, Sequence

from rich.console import Console
from rich.logging import RichHandler

from .config import load_settings
from .dom_filter import save_filtered_html, serialize
from .errors import CypressGenError
from .orchestrator import Orchestrator
from .page_loader import PlaywrightPageLoader
from .skeleton import generate_step_definitions

logger = logging.getLogger("cypressgen")

console = Console()


def setup_logging(verbose: bool = False):
    handler = RichHandler(console=console, show_path=False, markup=False)
    handler.setFormatter(logging.Formatter("%(message)s"))
    logger.handlers[:] = [handler]
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)
    logger.propagate = False


def build_parser() -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")

    parser = argparse.ArgumentParser(
        prog="cypressgen",
        description="Generate Cypress selectors and step definitions from a Gherkin feature file",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    generate = subparsers.add_parser("generate", parents=[common], help="Run the full pipeline for a feature file")
    generate.add_argument("feature", type=Path, help="Path to the .feature file")
    generate.add_argument("--config", type=Path, default=None, help="Path to a cypressgen.yaml file")
    generate.add_argument("--url", default=None, help="Page to snapshot (overrides the feature's # url: line)")

    skeleton = subparsers.add_parser("skeleton", parents=[common], help="Print placeholder step definitions for a feature file")
    skeleton.add_argument("feature", type=Path, help="Path to the .feature file")
    skeleton.add_argument("--output", "-o", type=Path, default=None, help="Write to this file instead of stdout")

    filter_dom = subparsers.add_parser("filter-dom", parents=[common], help="Save the filtered DOM of a page as HTML")
    filter_dom.add_argument("url", help="Page to load")
    filter_dom.add_argument("--output", "-o", type=Path, default=None, help="Write to this file instead of stdout")
    filter_dom.add_argument("--config", type=Path, default=None, help="Path to a cypressgen.yaml file")
    return parser


def _generate(args) -> int:
    settings = load_settings(start_path=args.feature, config_path=args.config)
    result = Orchestrator(settings).run(args.feature, url=args.url)
    console.print(f"[green]Selectors:[/green] {result.selectors_path}")
    console.print(f"[green]Steps:[/green] {result.steps_path}")
    if result.verification is not None and not result.verification.passed:
        for error in result.verification.errors:
            console.print(f"[yellow]- {error}[/yellow]")
    return 0


def _skeleton(args) -> int:
    code = generate_step_definitions(args.feature)
    if args.output:
        args.output.parent.mkdir(parents=True, exist_ok=True)
        args.output.write_text(code, encoding="utf-8")
        logger.info("Step skeleton saved to %s", args.output)
    else:
        console.print(code, markup=False, highlight=False, end="")
    return 0


def _filter_dom(args) -> int:
    settings = load_settings(config_path=args.config)
    loader = PlaywrightPageLoader(headless=settings.headless, timeout_ms=settings.navigation_timeout_ms)
    node = loader.load_filtered_dom(args.url)
    if node is None:
        logger.error("❌ The page body has no content to keep")
        return 1
    if args.output:
        save_filtered_html(node, args.output)
    else:
        console.print(serialize(node), markup=False, highlight=False, end="")
    return 0


COMMANDS = {
    "generate": _generate,
    "skeleton": _skeleton,
    "filter-dom": _filter_dom,
}


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.verbose)
    try:
        return COMMANDS[args.command](args)
    except CypressGenError as e:
        logger.error("❌ %s", e)
        return 1
