from __future__ import annotations

from buildgate.cli import EXIT_INVALID_INPUT, EXIT_OK, add_config_argument, base_parser
from buildgate.core.ci.workflow import render_workflow, write_workflow
from buildgate.core.config.loader import load_app_config
from buildgate.core.runtime.errors import InvalidInput, compact_error_summary


def main() -> int:
    parser = base_parser("buildgate-ci", "Generate the pull-request build performance workflow")
    add_config_argument(parser)
    sub = parser.add_subparsers(dest="action")
    for name, help_text in (("init", "Write the workflow file"), ("print", "Print the workflow to stdout")):
        p = sub.add_parser(name, help=help_text)
        p.add_argument("--project", required=True)
        p.add_argument("--benchmark", default="build")
    sub.choices["init"].add_argument("--path", default=None)
    sub.choices["init"].add_argument("--force", action="store_true")
    args = parser.parse_args()

    if not args.action:
        parser.print_help()
        return EXIT_INVALID_INPUT

    try:
        cfg = load_app_config(instance_path=args.config)
    except ValueError as exc:
        print(f"config-invalid error={exc}")
        return EXIT_INVALID_INPUT

    try:
        if args.action == "print":
            print(render_workflow(cfg, project=args.project, benchmark=args.benchmark, config_path=args.config), end="")
            return EXIT_OK
        path = write_workflow(
            cfg, project=args.project, benchmark=args.benchmark, path=args.path, force=args.force, config_path=args.config
        )
    except FileExistsError as exc:
        print(f"workflow-exists {exc}")
        return EXIT_INVALID_INPUT
    except InvalidInput as exc:
        print(f"workflow-invalid {compact_error_summary(exc)}")
        return EXIT_INVALID_INPUT
    print(f"workflow-written {path}")
    return EXIT_OK


if __name__ == "__main__":
    raise SystemExit(main())
