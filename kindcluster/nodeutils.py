"""Cluster nodes: the node interface and helpers for selecting and using nodes."""

from __future__ import annotations

import abc
import io
import json
import posixpath
from typing import BinaryIO, Iterable

from . import constants
from .errors import errorf, wrap, wrapf
from .exec import Cmder, combined_output_lines

__all__ = [
    "Node",
    "select_nodes_by_role",
    "external_load_balancer_node",
    "api_server_endpoint_node",
    "control_plane_nodes",
    "bootstrap_control_plane_node",
    "secondary_control_plane_nodes",
    "kube_version",
    "write_file",
    "copy_node_to_node",
    "load_image_archive",
    "image_id",
]


class Node(Cmder):
    """A kind cluster node; str() gives its name and command() runs on it."""

    @abc.abstractmethod
    def __str__(self) -> str:
        """Return the node name."""

    @abc.abstractmethod
    def role(self) -> str:
        """Return the node's role, one of the role values in constants."""

    @abc.abstractmethod
    def ip(self) -> tuple[str, str]:
        """Return the node's IPv4 and IPv6 addresses."""


def _quote(value: str) -> str:
    return json.dumps(value)


def _dir(path: str) -> str:
    return posixpath.dirname(path) or "."


def select_nodes_by_role(all_nodes: Iterable[Node], role: str) -> list[Node]:
    """Return the nodes whose role equals role."""
    return [node for node in all_nodes if node.role() == role]


def external_load_balancer_node(all_nodes: Iterable[Node]) -> Node | None:
    """Return the external load balancer node, or None if there is none."""
    balancers = select_nodes_by_role(all_nodes, constants.EXTERNAL_LOAD_BALANCER_NODE_ROLE_VALUE)
    if not balancers:
        return None
    if len(balancers) > 1:
        raise errorf(
            "unexpected number of %s nodes %d",
            constants.EXTERNAL_LOAD_BALANCER_NODE_ROLE_VALUE,
            len(balancers),
        )
    return balancers[0]


def api_server_endpoint_node(all_nodes: Iterable[Node]) -> Node:
    """Return the load balancer node, or else the single control plane node."""
    all_nodes = list(all_nodes)
    try:
        balancer = external_load_balancer_node(all_nodes)
    except Exception as exc:
        raise wrap(exc, "failed to find api-server endpoint node") from exc
    if balancer is not None:
        return balancer
    try:
        planes = control_plane_nodes(all_nodes)
    except Exception as exc:
        raise wrap(exc, "failed to find api-server endpoint node") from exc
    if len(planes) != 1:
        raise errorf(
            "expected one control plane node or a load balancer, not %d and none", len(planes)
        )
    return planes[0]


def control_plane_nodes(all_nodes: Iterable[Node]) -> list[Node]:
    """Return the control plane nodes sorted by name; the first is the bootstrap node."""
    planes = select_nodes_by_role(all_nodes, constants.CONTROL_PLANE_NODE_ROLE_VALUE)
    return sorted(planes, key=str)


def _require_control_plane(all_nodes: Iterable[Node]) -> list[Node]:
    planes = control_plane_nodes(all_nodes)
    if not planes:
        raise errorf("expected at least one %s node", constants.CONTROL_PLANE_NODE_ROLE_VALUE)
    return planes


def bootstrap_control_plane_node(all_nodes: Iterable[Node]) -> Node:
    """Return the bootstrap control plane node."""
    return _require_control_plane(all_nodes)[0]


def secondary_control_plane_nodes(all_nodes: Iterable[Node]) -> list[Node]:
    """Return the control plane nodes other than the bootstrap one."""
    return _require_control_plane(all_nodes)[1:]


def kube_version(node: Node) -> str:
    """Return the Kubernetes version installed on the node."""
    try:
        lines = combined_output_lines(node.command("cat", "/kind/version"))
    except Exception as exc:
        raise wrap(exc, "failed to get file") from exc
    if len(lines) != 1:
        raise errorf("file should only be one line, got %d lines", len(lines))
    return lines[0]


def write_file(node: Node, dest: str, content: str) -> None:
    """Write content to dest on the node, creating its directory."""
    try:
        node.command("mkdir", "-p", _dir(dest)).run()
    except Exception as exc:
        raise wrapf(exc, "failed to create directory %s", dest) from exc
    node.command("cp", "/dev/stdin", dest).set_stdin(io.BytesIO(content.encode("utf-8"))).run()


def copy_node_to_node(a: Node, b: Node, file: str) -> None:
    """Copy file from node a to the same path on node b."""
    directory = _dir(file)
    try:
        b.command("mkdir", "-p", directory).run()
    except Exception as exc:
        raise wrapf(exc, "failed to create directory %s", _quote(directory)) from exc
    buffer = io.BytesIO()
    try:
        a.command("cat", file).set_stdout(buffer).run()
    except Exception as exc:
        raise wrapf(exc, "failed to read %s from node", _quote(file)) from exc
    buffer.seek(0)
    try:
        b.command("cp", "/dev/stdin", file).set_stdin(buffer).run()
    except Exception as exc:
        raise wrapf(exc, "failed to write %s to node", _quote(file)) from exc


def load_image_archive(node: Node, image: BinaryIO) -> None:
    """Import the image archive read from image into the node's containerd."""
    cmd = node.command("ctr", "--namespace=k8s.io", "images", "import", "-").set_stdin(image)
    try:
        cmd.run()
    except Exception as exc:
        raise wrap(exc, "failed to load image") from exc


def image_id(node: Node, image: str) -> str:
    """Return the ID of image as known to the node's container runtime."""
    out = io.BytesIO()
    node.command("crictl", "inspecti", image).set_stdout(out).run()
    data = json.loads(out.getvalue().decode("utf-8"))
    if data is None:
        return ""
    if not isinstance(data, dict):
        raise ValueError("unexpected crictl output: not a JSON object")
    status = data.get("status") or {}
    if not isinstance(status, dict):
        raise ValueError("unexpected crictl output: status is not a JSON object")
    image_ident = status.get("id", "")
    if not isinstance(image_ident, str):
        raise ValueError("unexpected crictl output: id is not a string")
    return image_ident