"""CLI entrypoints for intgen commands."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any, List

from .config import load_config
from .engine import IntegrationEngine
from .errors import IntgenError
from .logging import configure_logging
from .models import GenerationRequest, SessionStatus
from .sessions import EVENT_COMPLETED
from .wire import to_wire, validation_wire


def _add_verbose_option(
    parser: argparse.ArgumentParser, *, suppress_default: bool = False
) -> None:
    kwargs: dict[str, object] = {
        "action": "store_true",
        "help": "Increase log verbosity for troubleshooting.",
    }
    if suppress_default:
        kwargs["default"] = argparse.SUPPRESS
    else:
        kwargs["default"] = False
    parser.add_argument(
        "-v",
        "--verbose",
        **kwargs,
    )


def _add_env_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--env",
        action="append",
        default=[],
        metavar="NAME",
        help="Environment variable name available to the project (repeatable).",
    )
    parser.add_argument(
        "--env-file",
        type=Path,
        help="Read variable names from a dotenv file. Values are ignored.",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="intgen",
        description="Detect project frameworks and generate third-party API integrations.",
    )
    _add_verbose_option(parser)
    parser.add_argument(
        "--config",
        type=Path,
        default=Path("."),
        help="Path to .intgen.yml or the directory containing it.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    detect_parser = subparsers.add_parser(
        "detect",
        help="Detect the frameworks used by a project.",
    )
    _add_verbose_option(detect_parser, suppress_default=True)
    detect_parser.add_argument(
        "path",
        nargs="?",
        default=".",
        help="Path to the project root (defaults to current directory).",
    )

    suggest_parser = subparsers.add_parser(
        "suggest",
        help="Suggest integration templates for the available environment variables.",
    )
    _add_verbose_option(suggest_parser, suppress_default=True)
    _add_env_options(suggest_parser)
    suggest_parser.add_argument(
        "--project",
        help="Project path used to attach a detected framework to suggestions.",
    )

    validate_parser = subparsers.add_parser(
        "validate",
        help="Validate a provider, framework and feature combination.",
    )
    _add_verbose_option(validate_parser, suppress_default=True)
    validate_parser.add_argument("provider", help="Provider identifier, e.g. stripe.")
    validate_parser.add_argument("framework", help="Framework identifier, e.g. nextjs.")
    validate_parser.add_argument("--template", help="Template identifier to validate.")
    validate_parser.add_argument(
        "--feature",
        action="append",
        default=[],
        help="Requested feature (repeatable).",
    )

    generate_parser = subparsers.add_parser(
        "generate",
        help="Generate integration files for a provider.",
    )
    _add_verbose_option(generate_parser, suppress_default=True)
    _add_env_options(generate_parser)
    generate_parser.add_argument("provider", help="Provider identifier, e.g. stripe.")
    generate_parser.add_argument(
        "--framework",
        default="",
        help="Target framework. Detected from --project when omitted.",
    )
    generate_parser.add_argument("--template", help="Template identifier to use.")
    generate_parser.add_argument(
        "--feature",
        action="append",
        default=[],
        help="Requested feature (repeatable).",
    )
    generate_parser.add_argument("--project", help="Path to the target project.")
    generate_parser.add_argument(
        "--output",
        help="Directory to write files into (defaults to the project path).",
    )
    generate_parser.add_argument(
        "--preview",
        action="store_true",
        help="Render files without writing them.",
    )
    generate_parser.add_argument(
        "--llm",
        action="store_true",
        help="Apply AI enhancement through the configured local model runner.",
    )

    serve_parser = subparsers.add_parser(
        "serve",
        help="Run the HTTP service.",
    )
    _add_verbose_option(serve_parser, suppress_default=True)
    serve_parser.add_argument("--host", default="127.0.0.1")
    serve_parser.add_argument("--port", type=int, default=8000)

    return parser


def read_env_names(path: Path) -> List[str]:
    """Return the variable names declared in a dotenv file; values never leave this function."""
    names: List[str] = []
    for raw_line in path.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        if line.startswith("export "):
            line = line[len("export "):].lstrip()
        name = line.split("=", 1)[0].strip()
        if name and name not in names:
            names.append(name)
    return names


def _env_names(args: argparse.Namespace) -> List[str]:
    names = [name for name in args.env if name]
    env_file = getattr(args, "env_file", None)
    if env_file is not None:
        names.extend(read_env_names(env_file))
    return names


def _print_json(payload: Any) -> None:
    print(json.dumps(payload, indent=2))


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint for intgen commands."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    configure_logging(verbose=bool(args.verbose))

    try:
        config = load_config(args.config)
    except IntgenError as exc:
        parser.exit(1, f"{exc}\n")

    if args.command == "serve":
        from .service import run_service

        run_service(args.host, args.port, config=config)
        return

    engine = IntegrationEngine(config)

    try:
        if args.command == "detect":
            _print_json(to_wire(engine.analyze_project(args.path)))
        elif args.command == "suggest":
            suggestions = engine.get_template_suggestions(_env_names(args), args.project)
            _print_json(to_wire(suggestions))
        elif args.command == "validate":
            result = engine.validate_combination(
                args.provider,
                args.framework,
                template_id=args.template,
                features=tuple(args.feature),
            )
            _print_json(validation_wire(result))
            if not result.is_valid:
                parser.exit(1)
        elif args.command == "generate":
            _run_generate(parser, engine, args)
        else:  # pragma: no cover - argparse enforces choices
            parser.exit(1, "Unknown command\n")
    except OSError as exc:
        parser.exit(1, f"{exc}\n")
    except IntgenError as exc:
        parser.exit(1, f"intgen {args.command} failed: {exc}\nRun with --verbose for more details.\n")


def _run_generate(
    parser: argparse.ArgumentParser,
    engine: IntegrationEngine,
    args: argparse.Namespace,
) -> None:
    request = GenerationRequest(
        provider_id=args.provider,
        framework=args.framework,
        template_id=args.template,
        features=tuple(args.feature),
        env_var_names=tuple(_env_names(args)),
        project_path=args.project,
        output_path=args.output,
        use_llm_enhancement=bool(args.llm),
    )
    if args.preview:
        session_id = engine.start_preview(request)
    else:
        session_id = engine.start_generation(request)

    for event in engine.subscribe(session_id):
        progress = event.progress
        if event.kind == EVENT_COMPLETED:
            break
        print(
            f"[{progress.current_step_number}/{progress.total_steps}] "
            f"{progress.current_step} ({progress.progress}%)",
            file=sys.stderr,
        )

    session = engine.get_session_status(session_id)
    if session.status is not SessionStatus.COMPLETED:
        message = session.progress.error_message or session.status.value
        parser.exit(1, f"intgen generate failed: {message}\n")
    _print_json(to_wire(engine.get_session_result(session_id)))


if __name__ == "__main__":
    main(sys.argv[1:])
