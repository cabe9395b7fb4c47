"""Grouping rendered resources into rollout tracking specifications."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any

from .tracking_specs import (
    AnnotationError,
    GenericSpec,
    MultitrackSpec,
    make_generic_spec,
    prepare_multitrack_spec,
)

logger = logging.getLogger(__name__)

# Typically there are about 3 nodes in a cluster, so a DaemonSet is assumed
# to run about 3 replicas.
_DAEMON_SET_MULTIPLIER = 3

_DEPLOYMENT_API_VERSIONS = frozenset(
    {"apps/v1", "apps/v1beta1", "apps/v1beta2", "extensions/v1beta1"}
)
_DAEMON_SET_API_VERSIONS = frozenset(
    {"apps/v1", "apps/v1beta2", "extensions/v1beta1"}
)
_STATEFUL_SET_API_VERSIONS = frozenset({"apps/v1", "apps/v1beta1", "apps/v1beta2"})
_JOB_API_VERSIONS = frozenset({"batch/v1"})
_CANARY_API_VERSIONS = frozenset({"flagger.app/v1beta1"})


@dataclass
class MultitrackSpecs:
    deployments: list[MultitrackSpec] = field(default_factory=list)
    daemon_sets: list[MultitrackSpec] = field(default_factory=list)
    stateful_sets: list[MultitrackSpec] = field(default_factory=list)
    jobs: list[MultitrackSpec] = field(default_factory=list)
    canaries: list[MultitrackSpec] = field(default_factory=list)
    generics: list[GenericSpec] = field(default_factory=list)


@dataclass(frozen=True)
class _ResourceID:
    name: str
    group: str
    version: str
    kind: str
    namespace: str = ""

    def __str__(self) -> str:
        kind = f"{self.kind}.{self.group}" if self.group else self.kind
        if self.namespace:
            return f"{kind}/{self.name} (namespace: {self.namespace})"
        return f"{kind}/{self.name}"


def extract_spec_replicas(spec_replicas: int | None) -> int:
    """Replica count from a spec, defaulting to 1 when unset."""
    if spec_replicas is not None:
        return int(spec_replicas)
    return 1


def _split_api_version(api_version: str) -> tuple[str, str]:
    if "/" in api_version:
        group, version = api_version.split("/", 1)
        return group, version
    return "", api_version


def _metadata(resource: Mapping[str, Any]) -> Mapping[str, Any]:
    return resource.get("metadata") or {}


def _spec_replicas(resource: Mapping[str, Any]) -> int | None:
    spec = resource.get("spec") or {}
    return spec.get("replicas")


def _make_multitrack_spec(
    resource: Mapping[str, Any],
    multiplier: int,
    default_per_replica: int,
    kind: str,
) -> MultitrackSpec | None:
    metadata = _metadata(resource)
    try:
        return prepare_multitrack_spec(
            metadata.get("name", ""),
            kind,
            metadata.get("namespace", ""),
            metadata.get("annotations") or {},
            multiplier,
            default_per_replica,
        )
    except AnnotationError as exc:
        logger.warning("WARNING %s", exc)
        return None


def _make_generic(
    resource: Mapping[str, Any],
    timeout: timedelta,
    status_progress_period: timedelta,
) -> GenericSpec | None:
    metadata = _metadata(resource)
    group, version = _split_api_version(resource.get("apiVersion", "") or "")
    resource_id = _ResourceID(
        name=metadata.get("name", ""),
        group=group,
        version=version,
        kind=resource.get("kind", "") or "",
        namespace=metadata.get("namespace", "") or "",
    )
    try:
        return make_generic_spec(
            resource_id,
            status_progress_period,
            timeout,
            metadata.get("annotations") or {},
        )
    except AnnotationError as exc:
        logger.warning("WARNING %s", exc)
        return None


def make_multitrack_specs(
    resources: Iterable[Mapping[str, Any]],
    timeout: timedelta,
    status_progress_period: timedelta,
) -> MultitrackSpecs:
    """Sort resources into tracking specs by their kind.

    Resources whose annotations are invalid are skipped with a warning.
    Raises TypeError for a resource that is not a mapping.
    """
    specs = MultitrackSpecs()

    for resource in resources:
        if not isinstance(resource, Mapping):
            raise TypeError(
                f"error converting object to unstructured: not a mapping: {resource!r}"
            )

        api_version = resource.get("apiVersion", "")
        kind = resource.get("kind", "")

        if kind == "Deployment" and api_version in _DEPLOYMENT_API_VERSIONS:
            spec = _make_multitrack_spec(
                resource, extract_spec_replicas(_spec_replicas(resource)), 1, "deploy"
            )
            if spec is not None:
                specs.deployments.append(spec)
        elif kind == "DaemonSet" and api_version in _DAEMON_SET_API_VERSIONS:
            spec = _make_multitrack_spec(resource, _DAEMON_SET_MULTIPLIER, 1, "ds")
            if spec is not None:
                specs.daemon_sets.append(spec)
        elif kind == "StatefulSet" and api_version in _STATEFUL_SET_API_VERSIONS:
            spec = _make_multitrack_spec(
                resource, extract_spec_replicas(_spec_replicas(resource)), 1, "sts"
            )
            if spec is not None:
                specs.stateful_sets.append(spec)
        elif kind == "Job" and api_version in _JOB_API_VERSIONS:
            spec = _make_multitrack_spec(resource, 1, 0, "job")
            if spec is not None:
                specs.jobs.append(spec)
        elif kind == "Canary" and api_version in _CANARY_API_VERSIONS:
            spec = _make_multitrack_spec(resource, 1, 0, "canary")
            if spec is not None:
                specs.canaries.append(spec)
        else:
            generic = _make_generic(resource, timeout, status_progress_period)
            if generic is not None:
                specs.generics.append(generic)

    return specs