"""Loading cluster configuration files into the internal configuration."""

from __future__ import annotations

import sys
from collections.abc import Mapping
from typing import Any

import yaml

from . import config, v1alpha3
from .errors import errorf, wrap

__all__ = ["load", "v1alpha3_to_internal"]

_V1ALPHA3_API_VERSION = "kind.sigs.k8s.io/v1alpha3"


def load(path: str) -> config.Cluster:
    """Read the config at path and return it as an internal config.

    An empty path gives the default config and "-" reads from stdin.
    """
    if path == "":
        out = config.Cluster()
        config.set_defaults_cluster(out)
        return out

    raw = _read_all(path)
    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as exc:
        raise wrap(exc, "could not determine kind / apiVersion for config") from exc
    kind, api_version = _type_meta(data)

    if api_version == _V1ALPHA3_API_VERSION:
        if kind != "Cluster":
            raise errorf("unknown kind %s for apiVersion: %s", kind, api_version)
        try:
            cfg = v1alpha3.Cluster.from_dict(data)
        except Exception as exc:
            raise wrap(exc, "unable to decode config") from exc
        v1alpha3.set_defaults_cluster(cfg)
        return config.convert_v1alpha3(cfg)

    raise errorf("unknown apiVersion: %s", api_version)


def v1alpha3_to_internal(cluster: v1alpha3.Cluster) -> config.Cluster:
    """Default cluster in place and return it as an internal config."""
    v1alpha3.set_defaults_cluster(cluster)
    return config.convert_v1alpha3(cluster)


def _scalar(value: Any, key: str) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (str, int, float)):
        return str(value)
    raise TypeError(f"cannot decode {type(value).__name__} into string field {key}")


def _type_meta(data: Any) -> tuple[str, str]:
    """Return the kind and apiVersion of a decoded document."""
    if data is None:
        return "", ""
    try:
        if not isinstance(data, Mapping):
            raise TypeError(f"cannot decode {type(data).__name__} into a mapping")
        return _scalar(data.get("kind"), "kind"), _scalar(data.get("apiVersion"), "apiVersion")
    except TypeError as exc:
        raise wrap(exc, "could not determine kind / apiVersion for config") from exc


def _read_all(path: str) -> str | bytes:
    if path == "-":
        try:
            return sys.stdin.read()
        except OSError as exc:
            raise wrap(exc, "error reading from stdin") from exc
    try:
        with open(path, "rb") as handle:
            return handle.read()
    except OSError as exc:
        raise wrap(exc, "error reading file") from exc