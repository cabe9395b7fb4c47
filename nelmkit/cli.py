"""Command-line parsing for chart rendering, planning and release commands."""

from __future__ import annotations

import argparse
import csv
from collections.abc import Sequence
from datetime import timedelta
from typing import Any, NoReturn

from .common import DEFAULT_NETWORK_PARALLELISM, DEFAULT_RELEASE_HISTORY_LIMIT, OptionsError
from .plan_options import PlanOptions
from .render import RenderOptions
from .tracking_specs import parse_duration
from .uninstall_options import UninstallOptions

PROG = "nelm"
DESCRIPTION = (
    "Nelm is designed to be a direct replacement for Helm 3, offering "
    "additional capabilities and improvements."
)
NOT_READY_WARNING = (
    "Nelm CLI is not ready and is not recommended for general use. Command names, "
    "option names, option defaults are going to change, a lot."
)

_INTERNAL_DESTS = frozenset({"command", "factory", "args"})


class _Parser(argparse.ArgumentParser):
    """Argument parser that raises instead of exiting on bad input."""

    def error(self, message: str) -> NoReturn:
        raise OptionsError(message)


def parse_key_values(value: str) -> dict[str, str]:
    """Parse "key=value[,key=value...]" into a dict.

    A value with a single "=" is taken whole (surrounding double quotes
    trimmed); several pairs are split as a CSV record.
    """
    count = value.count("=")
    if count == 0:
        raise OptionsError(f"{value} must be formatted as key=value")
    if count == 1:
        pairs = [value.strip('"')]
    else:
        try:
            pairs = next(csv.reader([value]), [])
        except csv.Error as exc:
            raise OptionsError(f"{value}: {exc}") from exc

    result: dict[str, str] = {}
    for pair in pairs:
        key, sep, val = pair.partition("=")
        if not sep:
            raise OptionsError(f"{pair} must be formatted as key=value")
        result[key] = val
    return result


def _parse_list(value: str) -> list[str]:
    if value == "":
        return []
    try:
        return next(csv.reader([value]), [])
    except csv.Error as exc:
        raise argparse.ArgumentTypeError(f"{value}: {exc}") from exc


def _duration(value: str) -> timedelta:
    try:
        return parse_duration(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(str(exc)) from exc


class _ExtendList(argparse.Action):
    def __call__(self, parser, namespace, values, option_string=None):
        items = list(getattr(namespace, self.dest, None) or [])
        items.extend(_parse_list(values))
        setattr(namespace, self.dest, items)


class _MergeMap(argparse.Action):
    def __call__(self, parser, namespace, values, option_string=None):
        mapping = dict(getattr(namespace, self.dest, None) or {})
        try:
            mapping.update(parse_key_values(values))
        except OptionsError as exc:
            raise argparse.ArgumentError(self, str(exc)) from exc
        setattr(namespace, self.dest, mapping)


def _flag(parser, *names, dest, help):
    parser.add_argument(*names, dest=dest, action="store_true", default=False, help=help)


def _text(parser, *names, dest, default="", help):
    parser.add_argument(*names, dest=dest, default=default, metavar="STRING", help=help)


def _number(parser, *names, dest, default, help):
    parser.add_argument(*names, dest=dest, type=int, default=default, metavar="INT", help=help)


def _span(parser, *names, dest, default, help):
    parser.add_argument(
        *names, dest=dest, type=_duration, default=default, metavar="DURATION", help=help
    )


def _strings(parser, *names, dest, help):
    parser.add_argument(*names, dest=dest, action=_ExtendList, default=[], metavar="STRINGS", help=help)


def _pairs(parser, *names, dest, help):
    parser.add_argument(*names, dest=dest, action=_MergeMap, default={}, metavar="KEY=VALUE", help=help)


def _add_chart_source_flags(parser, skip_tls_help: str, skip_update_help: str) -> None:
    _flag(parser, "--plain-http", dest="chart_repository_insecure",
          help="use insecure HTTP connections for the chart download")
    _flag(parser, "--insecure-skip-tls-verify", dest="chart_repository_skip_tls_verify",
          help=skip_tls_help)
    _flag(parser, "--skip-dependency-update", dest="chart_repository_skip_update",
          help=skip_update_help)
    _flag(parser, "--disable-default-secret-values", dest="default_secret_values_disable",
          help="Disable default secret values")
    _flag(parser, "--disable-default-values", dest="default_values_disable",
          help="Disable default values")


def _add_kube_flags(parser, context_help: str) -> None:
    _text(parser, "--kubeconfig-base64", dest="kube_config_base64", help="Base64 encoded kube config")
    _strings(parser, "--kubeconfig", dest="kube_config_paths",
             help="Paths to kube config files (can be set multiple times)")
    _text(parser, "--kube-context", dest="kube_context", help=context_help)


def _add_values_flags(parser, values_short: bool) -> None:
    _strings(parser, "--set-file", dest="values_file_sets", help="Values file sets")
    if values_short:
        _strings(parser, "--values", "-f", dest="values_files_paths",
                 help="Paths to values files (can be set multiple times)")
    else:
        _strings(parser, "--values", dest="values_files_paths", help="Values files paths")
    _strings(parser, "--set", dest="values_sets", help="Values sets")
    _strings(parser, "--set-string", dest="values_string_sets", help="Values string sets")


def _add_release_args(parser) -> None:
    parser.add_argument("args", nargs="+", metavar="release-name [chart-dir]")


def _add_chart_render(groups) -> None:
    parser = groups.add_parser(
        "render", aliases=["template"], help="Render Helm charts to Kubernetes manifests",
        description="Render Helm charts to Kubernetes manifests",
    )
    parser.set_defaults(command="chart render", factory=RenderOptions)
    _add_release_args(parser)
    _add_chart_source_flags(parser, "Skip TLS certificate verification when pulling images",
                            "Skip updating the chart repository index")
    _pairs(parser, "--annotations", "-a", dest="extra_annotations",
           help="Extra annotations to add to the rendered manifests")
    _pairs(parser, "--labels", "-l", dest="extra_labels",
           help="Extra labels to add to the rendered manifests")
    _pairs(parser, "--runtime-annotations", dest="extra_runtime_annotations",
           help="Extra runtime annotations to add to the rendered manifests")
    _add_kube_flags(parser, "Kubernetes context to use")
    _flag(parser, "--local", dest="local", help="Render locally without accessing the Kubernetes cluster")
    _text(parser, "--kube-version", dest="local_kube_version", help="Local Kubernetes version")
    _flag(parser, "--debug", dest="log_debug", help="Enable debug logging")
    _number(parser, "--network-parallelism", dest="network_parallelism",
            default=DEFAULT_NETWORK_PARALLELISM, help="Network parallelism")
    _text(parser, "--registry-credentials-path", dest="registry_credentials_path",
          help="Registry credentials path")
    _text(parser, "--namespace", dest="release_namespace", help="Release namespace")
    _text(parser, "--output-path", dest="output_file_path", help="Output file path")
    _flag(parser, "--output", dest="output_file_save", help="Output file save")
    _flag(parser, "--ignore-secret-key", dest="secret_key_ignore", help="Secret key ignore")
    _strings(parser, "--secret-values", dest="secret_values_paths", help="Secret values paths")
    _flag(parser, "--show-crds", dest="show_crds", help="Show CRDs")
    _strings(parser, "--show-only-files", dest="show_only_files", help="Show only files")
    _text(parser, "--temp-dir", dest="temp_dir_path", help="Temp dir path")
    _add_values_flags(parser, values_short=False)


def _add_plan_deploy(groups) -> None:
    parser = groups.add_parser(
        "deploy", help="Deploy a Helm chart plan",
        description="Deploy a Helm chart plan with the specified release name.",
    )
    parser.set_defaults(command="plan deploy", factory=PlanOptions)
    _add_release_args(parser)
    _add_chart_source_flags(parser, "Skip TLS verification for chart repository",
                            "Skip update of the chart repository")
    _flag(parser, "--exit-on-changes", dest="error_if_changes_planned",
          help="Exit with error if changes are planned")
    _pairs(parser, "--annotations", "-a", dest="extra_annotations",
           help="Extra annotations to add to the rendered manifests")
    _add_kube_flags(parser, "Kube context to use")
    _flag(parser, "--debug", dest="log_debug", help="Enable debug logging")
    _number(parser, "--network-parallelism", dest="network_parallelism",
            default=DEFAULT_NETWORK_PARALLELISM, help="Network parallelism")
    _text(parser, "--registry-credentials-path", dest="registry_credentials_path",
          help="Path to the registry credentials")
    _text(parser, "--namespace", dest="release_namespace", default="default",
          help="Namespace for the release")
    _flag(parser, "--ignore-secret-key", dest="secret_key_ignore", help="Ignore secret keys")
    _strings(parser, "--secret-values", dest="secret_values_paths", help="Paths to secret values files")
    _text(parser, "--temp-dir", dest="temp_dir_path", help="Path to the temporary directory")
    _add_values_flags(parser, values_short=True)


def _add_release_deploy(groups) -> None:
    parser = groups.add_parser(
        "deploy", aliases=["upgrade", "install"], help="Deploy a Helm chart",
        description="Deploy a Helm chart with the specified release name.",
    )
    parser.set_defaults(command="release deploy", factory=dict)
    _add_release_args(parser)
    _flag(parser, "--atomic", dest="auto_rollback", help="Enable automatic rollback on failure")
    _add_chart_source_flags(parser, "Skip TLS verification for chart repository",
                            "Skip update of the chart repository")
    _text(parser, "--graph-path", dest="deploy_graph_path", help="Path to save the deploy graph")
    _flag(parser, "--graph", dest="deploy_graph_save", help="Save the deploy graph")
    _text(parser, "--report-path", dest="deploy_report_path", help="Path to save the deploy report")
    _flag(parser, "--report", dest="deploy_report_save", help="Save the deploy report")
    _pairs(parser, "--annotations", "-a", dest="extra_annotations",
           help="Extra annotations to add to the rendered manifests")
    _pairs(parser, "--labels", "-l", dest="extra_labels",
           help="Extra labels to add to the rendered manifests")
    _pairs(parser, "--runtime-annotations", dest="extra_runtime_annotations",
           help="Extra runtime annotations to add to the rendered manifests")
    _add_kube_flags(parser, "Kube context to use")
    _number(parser, "--network-parallelism", dest="network_parallelism",
            default=DEFAULT_NETWORK_PARALLELISM, help="Network parallelism")
    _flag(parser, "--kubedog", dest="progress_table_print", help="Print progress table")
    _span(parser, "--kubedog-interval", dest="progress_table_print_interval",
          default=timedelta(seconds=10), help="Progress table print interval")
    _text(parser, "--registry-credentials-path", dest="registry_credentials_path",
          help="Path to the registry credentials")
    _number(parser, "--history-max", dest="release_history_limit",
            default=DEFAULT_RELEASE_HISTORY_LIMIT,
            help="The maximum number of revisions saved per release. Use 0 for no limit")
    _text(parser, "--namespace", dest="release_namespace", default="default",
          help="Namespace for the release")
    _text(parser, "--rollback-graph-path", dest="rollback_graph_path",
          help="Path to save the rollback graph")
    _flag(parser, "--rollback-graph", dest="rollback_graph_save", help="Save the rollback graph")
    _flag(parser, "--ignore-secret-key", dest="secret_key_ignore", help="Ignore secret keys")
    _strings(parser, "--secret-values", dest="secret_values_paths", help="Paths to secret values files")
    _text(parser, "--temp-dir", dest="temp_dir_path", help="Path to the temporary directory")
    _span(parser, "--creation-timeout", dest="track_creation_timeout",
          default=timedelta(minutes=10), help="Track creation timeout")
    _span(parser, "--deletion-timeout", dest="track_deletion_timeout",
          default=timedelta(minutes=10), help="Track deletion timeout")
    _span(parser, "--readiness-timeout", dest="track_readiness_timeout",
          default=timedelta(minutes=10), help="Track readiness timeout")
    _add_values_flags(parser, values_short=True)
    _flag(parser, "--render-subchart-notes", dest="sub_notes",
          help="Render subchart notes along with the parent")


def _add_release_uninstall(groups) -> None:
    parser = groups.add_parser(
        "uninstall", help="Uninstall a Helm release",
        description="Uninstall a Helm release with the specified release name.",
    )
    parser.set_defaults(command="release uninstall", factory=UninstallOptions)
    parser.add_argument("args", nargs="*", metavar="release-name")
    _text(parser, "--namespace", "-n", dest="release_namespace", default="default",
          help="Namespace of the release")
    _flag(parser, "--delete-hooks", dest="delete_hooks", help="Delete hooks")
    _flag(parser, "--delete-namespace", dest="delete_release_namespace",
          help="Delete namespace of the release")
    _add_kube_flags(parser, "Kubernetes context to use")
    _flag(parser, "--debug", dest="log_debug", help="enable verbose output")
    _span(parser, "--kubedog-interval", dest="progress_table_print_interval",
          default=timedelta(seconds=5), help="Progress print interval")
    _number(parser, "--keep-history-limit", dest="release_history_limit",
            default=DEFAULT_RELEASE_HISTORY_LIMIT,
            help="Release history limit (0 to remove all history)")
    _text(parser, "--temp-dir", dest="temp_dir_path", help="Path to the temporary directory")


def build_parser() -> argparse.ArgumentParser:
    """Build the parser for all commands; parse errors raise OptionsError."""
    root = _Parser(
        prog=PROG,
        description=DESCRIPTION,
        epilog="Nelm is a Helm 3 replacement with enhanced features",
    )
    commands = root.add_subparsers(dest="group", metavar="COMMAND", required=True)

    chart = commands.add_parser("chart", help="Manage Helm charts", description="Manage Helm charts")
    _add_chart_render(chart.add_subparsers(dest="action", metavar="COMMAND", required=True))

    plan = commands.add_parser("plan", help="Plan a Helm chart",
                               description="Plan a Helm chart with the specified release name.")
    _add_plan_deploy(plan.add_subparsers(dest="action", metavar="COMMAND", required=True))

    release = commands.add_parser("release", help="Manage Helm releases",
                                  description="Manage Helm releases with the specified release name.")
    release_commands = release.add_subparsers(dest="action", metavar="COMMAND", required=True)
    _add_release_deploy(release_commands)
    _add_release_uninstall(release_commands)

    return root


def _copy_value(value: Any) -> Any:
    if isinstance(value, list):
        return list(value)
    if isinstance(value, dict):
        return dict(value)
    return value


def parse_command(argv: Sequence[str] | None = None) -> tuple[str, Any]:
    """Parse a command line into its canonical command name and options.

    "chart render" gives RenderOptions, "plan deploy" PlanOptions,
    "release uninstall" UninstallOptions and "release deploy" a dict of
    deploy option values. Raises OptionsError on invalid arguments.
    """
    namespace = build_parser().parse_args(list(argv) if argv is not None else None)
    values = {
        key: _copy_value(value)
        for key, value in vars(namespace).items()
        if key not in _INTERNAL_DESTS and key not in ("group", "action")
    }
    args = list(namespace.args)

    if namespace.command == "release uninstall":
        if len(args) != 1:
            raise OptionsError(f"accepts 1 arg(s), received {len(args)}")
        values["release_name"] = args[0]
    else:
        values["release_name"] = args[0]
        values["chart_dir_path"] = args[1] if len(args) > 1 else ""

    return namespace.command, namespace.factory(**values)