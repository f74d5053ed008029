"""CLI interface for Sightline."""

from __future__ import annotations

import argparse
import json
import sys

from sightline.config import FALLBACK_MODEL, Config, ConfigStore
from sightline.errors import Cancelled, ProcessingError
from sightline.events import StderrSink
from sightline.orchestrator import Orchestrator
from sightline.parsing import parse_problem_info


def _parse_assignment(text: str) -> tuple[str, object]:
    if "=" not in text:
        raise argparse.ArgumentTypeError(f"expected KEY=VALUE, got {text!r}")
    key, raw = text.split("=", 1)
    try:
        value: object = json.loads(raw)
    except json.JSONDecodeError:
        value = raw
    return key.strip(), value


def _build_config(args: argparse.Namespace) -> Config:
    config = ConfigStore(args.config).load()
    # CLI flags override the stored config for this run only
    if args.provider is not None and args.provider != config.llm_provider:
        config.llm_provider = args.provider
        fallback = FALLBACK_MODEL[args.provider]
        config.extraction_model = config.solution_model = fallback
        config.reasoning_model = config.debugging_model = fallback
    if args.language is not None:
        config.language = args.language
    if args.model is not None:
        config.extraction_model = config.solution_model = args.model
        config.reasoning_model = config.debugging_model = args.model
    return config


def _print_result_details(thoughts: list[str], extra: list[str]) -> None:
    for line in extra:
        print(line, file=sys.stderr)
    for thought in thoughts:
        print(f"  - {thought}", file=sys.stderr)


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        prog="sightline",
        description="Sightline: solve on-screen problems from screenshots",
    )
    parser.add_argument("--config", type=str, default=None, help="Path to config JSON file")
    subparsers = parser.add_subparsers(dest="command")

    def add_run_options(p: argparse.ArgumentParser) -> None:
        p.add_argument("images", nargs="+", help="Screenshot paths")
        p.add_argument("--language", type=str, default=None)
        p.add_argument("--model", type=str, default=None, help="Use one model for every phase")
        p.add_argument("--provider", choices=["gemini", "openai", "ollama"], default=None)

    solve_parser = subparsers.add_parser("solve", help="Extract and solve a problem from screenshots")
    add_run_options(solve_parser)
    solve_parser.add_argument("-o", "--output", type=str, default=None, help="Write solution to file")
    solve_parser.add_argument(
        "--problem-out", type=str, default=None, help="Save the extracted problem JSON for later debugging"
    )

    debug_parser = subparsers.add_parser("debug", help="Debug follow-up screenshots for a saved problem")
    add_run_options(debug_parser)
    debug_parser.add_argument("--problem-json", required=True, help="Problem JSON saved by solve --problem-out")

    config_parser = subparsers.add_parser("config", help="Show or change stored settings")
    config_sub = config_parser.add_subparsers(dest="config_command")
    config_sub.add_parser("show", help="Print the stored config (secrets masked)")
    set_parser = config_sub.add_parser("set", help="Set KEY=VALUE pairs")
    set_parser.add_argument("pairs", nargs="+", type=_parse_assignment)

    serve_parser = subparsers.add_parser("serve", help="Run the local HTTP bridge")
    serve_parser.add_argument("--host", default="127.0.0.1")
    serve_parser.add_argument("--port", type=int, default=8765)

    args = parser.parse_args(argv)

    if args.command == "config":
        store = ConfigStore(args.config)
        if args.config_command == "set":
            try:
                config = store.update(**dict(args.pairs))
            except (TypeError, ValueError) as e:
                print(f"Error: {e}", file=sys.stderr)
                sys.exit(1)
        else:
            config = store.load()
        print(json.dumps(config.public_dict(), indent=2))
        return

    if args.command == "serve":
        from sightline.web.app import create_app

        app = create_app(ConfigStore(args.config))
        app.run(host=args.host, port=args.port, threaded=True)
        return

    if args.command not in ("solve", "debug"):
        parser.print_help()
        sys.exit(1)

    orchestrator = Orchestrator(_build_config(args), events=StderrSink())

    try:
        if args.command == "debug":
            with open(args.problem_json) as f:
                problem = parse_problem_info(f.read())
            debug_result = orchestrator.debug_sync(args.images, problem)
            print(debug_result.debug_analysis)
            _print_result_details(debug_result.thoughts, ["Key points:"])
            return

        solution = orchestrator.process_sync(args.images)
    except (ProcessingError, Cancelled, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    print(solution.code)
    _print_result_details(
        solution.thoughts,
        [
            f"Time complexity: {solution.time_complexity}",
            f"Space complexity: {solution.space_complexity}",
            "Insights:",
        ],
    )
    if args.problem_out and orchestrator.problem is not None:
        with open(args.problem_out, "w") as f:
            json.dump(orchestrator.problem.to_dict(), f, indent=2)
    if args.output:
        with open(args.output, "w") as f:
            f.write(solution.code + "\n")
        print(f"\nSolution written to {args.output}", file=sys.stderr)


if __name__ == "__main__":
    main()
