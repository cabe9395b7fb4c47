# nelmkit

Building blocks for planning and rolling out chart-based releases to
Kubernetes: option objects with their defaults, deploy-type selection,
manifest rendering, tracking specs built from resource annotations and a
parser for the `chart`, `plan` and `release` command tree.

## What is inside

| Module | Purpose |
| --- | --- |
| `nelmkit.common` | `DeployType`, `DeletePolicy`, `ResourceState`, `LogColorMode`, `ReleaseStorageDriver`, `OptionsError`, `determine_deploy_type`, `default_kube_config_paths` |
| `nelmkit.uninstall_options` | `UninstallOptions` and `apply_uninstall_options_defaults` |
| `nelmkit.plan_options` | `PlanOptions`, `apply_plan_options_defaults`, `next_revision`, `check_changes_planned`, `ChangesPlannedError` |
| `nelmkit.render` | `RenderOptions`, `apply_render_options_defaults`, `render_resource`, `resolve_show_files`, `should_render` |
| `nelmkit.tracking_specs` | `MultitrackSpec`, `GenericSpec`, `TrackTerminationMode`, `FailMode`, `AnnotationError`, `prepare_multitrack_spec`, `make_generic_spec`, `parse_duration`, `parse_bool`, `apply_allowed_failures_count_multiplier` |
| `nelmkit.tracking_resources` | `MultitrackSpecs`, `extract_spec_replicas` and `make_multitrack_specs` for a list of manifests |
| `nelmkit.cli` | `build_parser`, `parse_command`, `parse_key_values` |

## Choosing a deploy type

```python
from nelmkit.common import determine_deploy_type

# No earlier release: the first revision.
first = determine_deploy_type(False, False)        # DeployType.INITIAL

# An earlier release exists and one of them was deployed successfully.
upgrade = determine_deploy_type(True, True)        # DeployType.UPGRADE
print(upgrade.is_upgrade())                        # True
```

## Applying option defaults

The `apply_*_options_defaults` functions return a filled-in copy of the
options. The chart directory (plan and render) falls back to the current
directory, a temporary directory is created when none is given, the kube
config falls back to `~/.kube/config` when neither paths nor base64 data
are set, network parallelism to 30 (plan and render), history limit to 10
and the progress interval to 5 seconds (uninstall), and the release
storage driver to `secrets`. A missing release name raises
`OptionsError`, as does the `memory` storage driver for plan and
uninstall. For render with `output_file_save` set, the output path
defaults to `render.yaml` in the temporary directory.

```python
from pathlib import Path

from nelmkit.plan_options import PlanOptions, apply_plan_options_defaults, check_changes_planned

opts = apply_plan_options_defaults(
    PlanOptions(release_name="myapp", release_namespace="default", error_if_changes_planned=True),
    current_dir=str(Path.cwd()),
    home_dir=str(Path.home()),
)
check_changes_planned(opts, changes_planned=False, release_up_to_date=True)  # no error
```

## Rendering manifests

`render_resource` writes a resource as a YAML document headed by
`---` and a `# Source:` comment. `resolve_show_files` turns user-given
paths into chart-relative template paths, and `should_render` checks a
resource's file against that list (an empty list lets everything through).

```python
import io

from nelmkit.render import render_resource

out = io.StringIO()
render_resource(
    {"apiVersion": "v1", "kind": "ConfigMap", "metadata": {"name": "cfg"}},
    "mychart/templates/cfg.yaml",
    out,
)
```

## Tracking specs from annotations

Annotations such as `werf.io/fail-mode`, `werf.io/track-termination-mode`,
`werf.io/failures-allowed-per-replica`, `werf.io/log-regex`,
`werf.io/log-regex-for-<container>`, `werf.io/skip-logs-for-containers`
and `werf.io/ignore-readiness-probe-fails-for-<container>` are turned into
tracking specs; an invalid value raises `AnnotationError`.

```python
from nelmkit.tracking_specs import prepare_multitrack_spec

spec = prepare_multitrack_spec(
    "web", "deploy", "default",
    {"werf.io/failures-allowed-per-replica": "2"},
    3, 1,
)
print(spec.allow_failures_count)  # 6
```

`make_multitrack_specs` sorts a list of manifests into deployments,
daemon sets, stateful sets, jobs, canaries and generic resources; a
resource with an invalid annotation is skipped with a logged warning.

## Parsing the command line

`parse_command` returns the canonical command name and its options:
`RenderOptions` for `chart render`, `PlanOptions` for `plan deploy`,
`UninstallOptions` for `release uninstall` and a dict of values for
`release deploy`. Bad arguments raise `OptionsError`.

```python
from nelmkit.cli import parse_command, parse_key_values

command, options = parse_command(["release", "deploy", "myapp", "./chart", "--namespace", "prod"])
labels = parse_key_values("team=platform,tier=backend")
```

## What it does not do

nelmkit does not talk to a Kubernetes cluster, load or template charts,
store release history, split resources into weighted deploy stages or run
deployments. It installs no console command: the parser describes the
command line and hands back option objects for a caller to act on.