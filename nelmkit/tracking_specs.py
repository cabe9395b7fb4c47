"""Tracking specifications built from resource annotations."""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import timedelta
from enum import Enum
from fractions import Fraction
from typing import Any, Pattern

TRACK_TERMINATION_MODE_ANNOTATION = "werf.io/track-termination-mode"
FAIL_MODE_ANNOTATION = "werf.io/fail-mode"
FAILURES_ALLOWED_PER_REPLICA_ANNOTATION = "werf.io/failures-allowed-per-replica"
LOG_REGEX_ANNOTATION = "werf.io/log-regex"
LOG_REGEX_FOR_ANNOTATION_PREFIX = "werf.io/log-regex-for-"
IGNORE_READINESS_PROBE_FAILS_FOR_PREFIX = "werf.io/ignore-readiness-probe-fails-for-"
NO_ACTIVITY_TIMEOUT_ANNOTATION = "werf.io/no-activity-timeout"
SKIP_LOGS_ANNOTATION = "werf.io/skip-logs"
SKIP_LOGS_FOR_CONTAINERS_ANNOTATION = "werf.io/skip-logs-for-containers"
SHOW_LOGS_ONLY_FOR_CONTAINERS_ANNOTATION = "werf.io/show-logs-only-for-containers"
SHOW_LOGS_UNTIL_ANNOTATION = "werf.io/show-logs-until"
SHOW_EVENTS_ANNOTATION = "werf.io/show-service-messages"
REPLICAS_ON_CREATION_ANNOTATION = "werf.io/replicas-on-creation"
EXTERNAL_DEPENDENCY_RESOURCE_ANNOTATION = "external-dependency.werf.io/resource"
EXTERNAL_DEPENDENCY_NAMESPACE_ANNOTATION = "external-dependency.werf.io/namespace"

_NS_PER_UNIT = {
    "ns": 1,
    "us": 1_000,
    "µs": 1_000,
    "μs": 1_000,
    "ms": 1_000_000,
    "s": 1_000_000_000,
    "m": 60 * 1_000_000_000,
    "h": 3600 * 1_000_000_000,
}
_MAX_DURATION_NS = 2**63 - 1
_DURATION_PART = re.compile(r"([0-9]*)(?:(\.)([0-9]*))?([^0-9.]*)")

_TRUE_VALUES = frozenset({"1", "t", "T", "TRUE", "true", "True"})
_FALSE_VALUES = frozenset({"0", "f", "F", "FALSE", "false", "False"})


class AnnotationError(ValueError):
    """Raised when a tracking annotation holds an unusable value."""


class TrackTerminationMode(str, Enum):
    WAIT_UNTIL_RESOURCE_READY = "WaitUntilResourceReady"
    NON_BLOCKING = "NonBlocking"


class FailMode(str, Enum):
    IGNORE_AND_CONTINUE_DEPLOY_PROCESS = "IgnoreAndContinueDeployProcess"
    FAIL_WHOLE_DEPLOY_PROCESS_IMMEDIATELY = "FailWholeDeployProcessImmediately"
    HOPE_UNTIL_END_OF_DEPLOY_PROCESS = "HopeUntilEndOfDeployProcess"


@dataclass
class MultitrackSpec:
    resource_name: str
    namespace: str
    allow_failures_count: int
    log_regex_by_container_name: dict[str, Pattern[str]] = field(default_factory=dict)
    ignore_readiness_probe_fails_by_container_name: dict[str, timedelta] = field(
        default_factory=dict
    )
    skip_logs: bool = False
    show_service_messages: bool = False
    track_termination_mode: TrackTerminationMode | None = None
    fail_mode: FailMode | None = None
    log_regex: Pattern[str] | None = None
    skip_logs_for_containers: list[str] = field(default_factory=list)
    show_logs_only_for_containers: list[str] = field(default_factory=list)


@dataclass
class GenericSpec:
    resource_id: Any
    timeout: timedelta
    status_progress_period: timedelta
    show_service_messages: bool = False
    track_termination_mode: TrackTerminationMode | None = None
    fail_mode: FailMode | None = None
    no_activity_timeout: timedelta | None = None


def _parse_duration_ns(value: str) -> int:
    original = value
    quoted = f'"{original}"'
    negative = False
    if value and value[0] in "+-":
        negative = value[0] == "-"
        value = value[1:]
    if value == "0":
        return 0
    if not value:
        raise ValueError(f"time: invalid duration {quoted}")

    total = Fraction(0)
    pos = 0
    while pos < len(value):
        match = _DURATION_PART.match(value, pos)
        int_part, dot, frac_part, unit = match.groups()
        if not int_part and not frac_part:
            raise ValueError(f"time: invalid duration {quoted}")
        if not unit:
            raise ValueError(f"time: missing unit in duration {quoted}")
        if unit not in _NS_PER_UNIT:
            raise ValueError(f'time: unknown unit "{unit}" in duration {quoted}')
        amount = Fraction(int(int_part or "0"))
        if dot and frac_part:
            amount += Fraction(int(frac_part), 10 ** len(frac_part))
        total += amount * _NS_PER_UNIT[unit]
        if total > _MAX_DURATION_NS:
            raise ValueError(f"time: invalid duration {quoted}")
        pos = match.end()

    nanoseconds = int(total)
    return -nanoseconds if negative else nanoseconds


def _ns_to_timedelta(nanoseconds: int) -> timedelta:
    return timedelta(microseconds=round(Fraction(nanoseconds, 1000)))


def parse_duration(value: str) -> timedelta:
    """Parse a duration such as "1h30m", "250ms" or "-5s"."""
    return _ns_to_timedelta(_parse_duration_ns(value))


def parse_bool(value: str) -> bool:
    """Parse a boolean the way command-line tools spell it ("t", "false", "1"...)."""
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ValueError(f'parsing "{value}": invalid syntax')


def apply_allowed_failures_count_multiplier(value: int, multiplier: int) -> int:
    """Scale an allowed failures count by a positive multiplier."""
    if multiplier > 0:
        return value * multiplier
    return value


def _parse_atoi(value: str) -> int:
    if not re.fullmatch(r"[+-]?[0-9]+", value):
        raise ValueError(f'parsing "{value}": invalid syntax')
    return int(value)


def _choice_list(enum_cls: type[Enum]) -> str:
    return "[" + " ".join(member.value for member in enum_cls) + "]"


def _parse_enum(enum_cls, value: str, invalid: str):
    try:
        return enum_cls(value)
    except ValueError:
        raise AnnotationError(f"{invalid}: choose one of {_choice_list(enum_cls)}") from None


def _parse_container_names(value: str, invalid: str) -> list[str]:
    names = []
    for part in value.split(","):
        name = part.strip()
        if not name:
            raise AnnotationError(
                f"{invalid}: containers names separated by comma expected"
            )
        names.append(name)
    return names


def _compile(value: str, invalid: str) -> Pattern[str]:
    try:
        return re.compile(value)
    except re.error as exc:
        raise AnnotationError(f"{invalid}: {exc}") from exc


def prepare_multitrack_spec(
    metadata_name: str,
    resource_name_or_kind: str,
    namespace: str,
    annotations: Mapping[str, str] | None,
    multiplier: int,
    default_per_replica: int,
) -> MultitrackSpec:
    """Build a rollout tracking spec from a resource's annotations.

    Raises AnnotationError on the first annotation with an invalid value.
    """
    spec = MultitrackSpec(
        resource_name=metadata_name,
        namespace=namespace,
        allow_failures_count=apply_allowed_failures_count_multiplier(
            default_per_replica, multiplier
        ),
    )

    for name, value in (annotations or {}).items():
        invalid = (
            f"{resource_name_or_kind}/{metadata_name} annotation {name} "
            f"with invalid value {value}"
        )

        if name == SHOW_LOGS_UNTIL_ANNOTATION:
            raise AnnotationError(
                f"{resource_name_or_kind}/{metadata_name} annotation {name} "
                "not supported yet"
            )
        elif name == SKIP_LOGS_ANNOTATION:
            try:
                spec.skip_logs = parse_bool(value)
            except ValueError as exc:
                raise AnnotationError(f"{invalid}: bool expected: {exc}") from exc
        elif name == SHOW_EVENTS_ANNOTATION:
            try:
                spec.show_service_messages = parse_bool(value)
            except ValueError as exc:
                raise AnnotationError(f"{invalid}: bool expected: {exc}") from exc
        elif name == TRACK_TERMINATION_MODE_ANNOTATION:
            spec.track_termination_mode = _parse_enum(
                TrackTerminationMode, value, invalid
            )
        elif name == FAIL_MODE_ANNOTATION:
            spec.fail_mode = _parse_enum(FailMode, value, invalid)
        elif name == FAILURES_ALLOWED_PER_REPLICA_ANNOTATION:
            try:
                count = _parse_atoi(value)
            except ValueError:
                count = -1
            if count < 0:
                raise AnnotationError(
                    f"{invalid}: positive or zero integer expected"
                )
            spec.allow_failures_count = apply_allowed_failures_count_multiplier(
                count, multiplier
            )
        elif name == LOG_REGEX_ANNOTATION:
            spec.log_regex = _compile(value, invalid)
        elif name == SKIP_LOGS_FOR_CONTAINERS_ANNOTATION:
            spec.skip_logs_for_containers = _parse_container_names(value, invalid)
        elif name == SHOW_LOGS_ONLY_FOR_CONTAINERS_ANNOTATION:
            spec.show_logs_only_for_containers = _parse_container_names(value, invalid)
        else:
            if name.startswith(LOG_REGEX_FOR_ANNOTATION_PREFIX):
                container = name[len(LOG_REGEX_FOR_ANNOTATION_PREFIX):]
                if container:
                    spec.log_regex_by_container_name[container] = _compile(
                        value, invalid
                    )
            if name.startswith(IGNORE_READINESS_PROBE_FAILS_FOR_PREFIX):
                container = name[len(IGNORE_READINESS_PROBE_FAILS_FOR_PREFIX):]
                if container:
                    try:
                        nanoseconds = _parse_duration_ns(value)
                    except ValueError as exc:
                        raise AnnotationError(f"{invalid}: {exc}") from exc
                    if nanoseconds < 0:
                        raise AnnotationError(f"{invalid}: can't be less than 0")
                    spec.ignore_readiness_probe_fails_by_container_name[
                        container
                    ] = _ns_to_timedelta(nanoseconds)

    return spec


def make_generic_spec(
    resource_id: Any,
    status_progress_period: timedelta,
    timeout: timedelta,
    annotations: Mapping[str, str] | None,
) -> GenericSpec:
    """Build a generic resource tracking spec from annotations.

    Raises AnnotationError on the first annotation with an invalid value.
    """
    spec = GenericSpec(
        resource_id=resource_id,
        timeout=timeout,
        status_progress_period=status_progress_period,
    )

    for name, value in (annotations or {}).items():
        invalid = f"{resource_id} annotation {name} with invalid value {value}"

        if name == SHOW_EVENTS_ANNOTATION:
            try:
                spec.show_service_messages = parse_bool(value)
            except ValueError as exc:
                raise AnnotationError(f"{invalid}: bool expected: {exc}") from exc
        elif name == TRACK_TERMINATION_MODE_ANNOTATION:
            spec.track_termination_mode = _parse_enum(
                TrackTerminationMode, value, invalid
            )
        elif name == FAIL_MODE_ANNOTATION:
            spec.fail_mode = _parse_enum(FailMode, value, invalid)
        elif name == NO_ACTIVITY_TIMEOUT_ANNOTATION:
            try:
                nanoseconds = _parse_duration_ns(value)
            except ValueError as exc:
                raise AnnotationError(f"{invalid}: {exc}") from exc
            if nanoseconds < _NS_PER_UNIT["s"]:
                raise AnnotationError(f"{invalid}: can't be less than 1 second")
            spec.no_activity_timeout = _ns_to_timedelta(nanoseconds)

    return spec