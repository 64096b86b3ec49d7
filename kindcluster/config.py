"""The internal cluster configuration: types, defaults, validation and conversion."""

from __future__ import annotations

import ipaddress
import json
from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Any

from . import v1alpha3
from .constants import DEFAULT_IMAGE
from .errors import errorf, new, new_aggregate, wrapf

__all__ = [
    "NodeRole",
    "ClusterIPFamily",
    "MountPropagation",
    "PortMappingProtocol",
    "MOUNT_PROPAGATION_VALUE_TO_NAME",
    "MOUNT_PROPAGATION_NAME_TO_VALUE",
    "PORT_MAPPING_PROTOCOL_VALUE_TO_NAME",
    "PORT_MAPPING_PROTOCOL_NAME_TO_VALUE",
    "Mount",
    "PortMapping",
    "Node",
    "Networking",
    "PatchJSON6902",
    "Cluster",
    "set_defaults_cluster",
    "set_defaults_node",
    "convert_v1alpha3",
]


class NodeRole(str, Enum):
    """The role of a node in the cluster."""

    CONTROL_PLANE = "control-plane"
    WORKER = "worker"


class ClusterIPFamily(str, Enum):
    """The IP family of the cluster network."""

    IPV4 = "ipv4"
    IPV6 = "ipv6"


class MountPropagation(IntEnum):
    """Mount propagation modes."""

    NONE = 0
    HOST_TO_CONTAINER = 1
    BIDIRECTIONAL = 2


class PortMappingProtocol(IntEnum):
    """Port mapping protocols."""

    TCP = 0
    UDP = 1
    SCTP = 2


MOUNT_PROPAGATION_VALUE_TO_NAME = {
    MountPropagation.NONE: "None",
    MountPropagation.HOST_TO_CONTAINER: "HostToContainer",
    MountPropagation.BIDIRECTIONAL: "Bidirectional",
}
MOUNT_PROPAGATION_NAME_TO_VALUE = {
    name: value for value, name in MOUNT_PROPAGATION_VALUE_TO_NAME.items()
}
PORT_MAPPING_PROTOCOL_VALUE_TO_NAME = {
    PortMappingProtocol.TCP: "TCP",
    PortMappingProtocol.UDP: "UDP",
    PortMappingProtocol.SCTP: "SCTP",
}
PORT_MAPPING_PROTOCOL_NAME_TO_VALUE = {
    name: value for value, name in PORT_MAPPING_PROTOCOL_VALUE_TO_NAME.items()
}

_VALID_ROLES = (NodeRole.CONTROL_PLANE.value, NodeRole.WORKER.value)


def _plain(value: Any) -> str:
    """Return the plain string of a role or family, enum or not."""
    return str(getattr(value, "value", value))


def _validate_port(port: int) -> None:
    if port < 0 or port > 65535:
        raise errorf("invalid port number: %d", port)


def _parse_cidr(text: str) -> ipaddress.IPv4Network | ipaddress.IPv6Network:
    """Parse an address/prefix CIDR; host bits may be set."""
    address, slash, prefix = text.partition("/")
    if not slash or not address or not prefix.isascii() or not prefix.isdigit():
        raise ValueError(f"invalid CIDR address: {text}")
    try:
        return ipaddress.ip_network(text, strict=False)
    except ValueError as exc:
        raise ValueError(f"invalid CIDR address: {text}") from exc


@dataclass
class Mount:
    """A host path mounted into a node container."""

    container_path: str = ""
    host_path: str = ""
    readonly: bool = False
    selinux_relabel: bool = False
    propagation: MountPropagation = MountPropagation.NONE


@dataclass
class PortMapping:
    """A host port mapped into a node container port."""

    container_port: int = 0
    host_port: int = 0
    listen_address: str = ""
    protocol: PortMappingProtocol = PortMappingProtocol.TCP


@dataclass
class Node:
    """Settings for one node container of the cluster."""

    role: str = ""
    image: str = ""
    extra_mounts: list[Mount] = field(default_factory=list)
    extra_port_mappings: list[PortMapping] = field(default_factory=list)

    def validate(self) -> None:
        """Raise an error holding every problem with this node, if any."""
        errs: list[BaseException] = []
        role = _plain(self.role)
        if role not in _VALID_ROLES:
            errs.append(errorf("%s is not a valid node role", json.dumps(role)))
        if not self.image:
            errs.append(new("image is a required field"))
        for mapping in self.extra_port_mappings:
            for port, label in (
                (mapping.host_port, "hostPort"),
                (mapping.container_port, "containerPort"),
            ):
                try:
                    _validate_port(port)
                except Exception as exc:
                    errs.append(wrapf(exc, "invalid %s", label))
        if errs:
            raise new_aggregate(errs)


@dataclass
class Networking:
    """Cluster wide network settings."""

    ip_family: str = ""
    api_server_port: int = 0
    api_server_address: str = ""
    pod_subnet: str = ""
    service_subnet: str = ""
    disable_default_cni: bool = False


@dataclass
class PatchJSON6902:
    """An inline JSON 6902 patch and the resource it targets."""

    group: str = ""
    version: str = ""
    kind: str = ""
    name: str = ""
    namespace: str = ""
    patch: str = ""


@dataclass
class Cluster:
    """A kind cluster configuration."""

    nodes: list[Node] = field(default_factory=list)
    networking: Networking = field(default_factory=Networking)
    kubeadm_config_patches: list[str] = field(default_factory=list)
    kubeadm_config_patches_json6902: list[PatchJSON6902] = field(default_factory=list)

    def validate(self) -> None:
        """Raise an error holding every problem with this config, if any."""
        errs: list[BaseException] = []
        net = self.networking
        if net.api_server_port != 0:
            try:
                _validate_port(net.api_server_port)
            except Exception as exc:
                errs.append(wrapf(exc, "invalid apiServerPort"))
        for subnet, label in ((net.pod_subnet, "podSubnet"), (net.service_subnet, "serviceSubnet")):
            try:
                _parse_cidr(subnet)
            except ValueError as exc:
                errs.append(wrapf(exc, "invalid %s", label))
        for index, node in enumerate(self.nodes):
            try:
                node.validate()
            except Exception as exc:
                errs.append(errorf("invalid configuration for node %d: %s", index, exc))
        control_planes = sum(
            1 for node in self.nodes if _plain(node.role) == NodeRole.CONTROL_PLANE.value
        )
        if control_planes < 1:
            errs.append(errorf("must have at least one %s node", NodeRole.CONTROL_PLANE.value))
        if errs:
            raise new_aggregate(errs)


def set_defaults_cluster(obj: Cluster) -> None:
    """Fill in unset fields of obj with their defaults, in place."""
    if not obj.nodes:
        obj.nodes = [Node(role=NodeRole.CONTROL_PLANE.value, image=DEFAULT_IMAGE)]
    for node in obj.nodes:
        set_defaults_node(node)
    net = obj.networking
    if not net.ip_family:
        net.ip_family = ClusterIPFamily.IPV4.value
    ipv6 = _plain(net.ip_family) == ClusterIPFamily.IPV6.value
    if not net.api_server_address:
        net.api_server_address = "::1" if ipv6 else "127.0.0.1"
    if not net.pod_subnet:
        net.pod_subnet = "fd00:10:244::/64" if ipv6 else "10.244.0.0/16"
    if not net.service_subnet:
        net.service_subnet = "fd00:10:96::/112" if ipv6 else "10.96.0.0/12"


def set_defaults_node(obj: Node) -> None:
    """Fill in unset fields of obj with their defaults, in place."""
    if not obj.image:
        obj.image = DEFAULT_IMAGE
    if not obj.role:
        obj.role = NodeRole.CONTROL_PLANE.value


def _convert_mount(mount: v1alpha3.Mount) -> Mount:
    return Mount(
        container_path=mount.container_path,
        host_path=mount.host_path,
        readonly=mount.readonly,
        selinux_relabel=mount.selinux_relabel,
        propagation=MountPropagation(int(mount.propagation)),
    )


def _convert_port_mapping(mapping: v1alpha3.PortMapping) -> PortMapping:
    return PortMapping(
        container_port=mapping.container_port,
        host_port=mapping.host_port,
        listen_address=mapping.listen_address,
        protocol=PortMappingProtocol(int(mapping.protocol)),
    )


def _convert_node(node: v1alpha3.Node) -> Node:
    return Node(
        role=_plain(node.role),
        image=node.image,
        extra_mounts=[_convert_mount(mount) for mount in node.extra_mounts],
        extra_port_mappings=[_convert_port_mapping(m) for m in node.extra_port_mappings],
    )


def _convert_networking(net: v1alpha3.Networking) -> Networking:
    return Networking(
        ip_family=_plain(net.ip_family),
        api_server_port=net.api_server_port,
        api_server_address=net.api_server_address,
        pod_subnet=net.pod_subnet,
        service_subnet=net.service_subnet,
        disable_default_cni=net.disable_default_cni,
    )


def _convert_patch(patch: v1alpha3.PatchJSON6902) -> PatchJSON6902:
    return PatchJSON6902(
        group=patch.group,
        version=patch.version,
        kind=patch.kind,
        name=patch.name,
        namespace=patch.namespace,
        patch=patch.patch,
    )


def convert_v1alpha3(cluster: v1alpha3.Cluster) -> Cluster:
    """Return a new internal config equal to the v1alpha3 cluster, sharing nothing with it."""
    return Cluster(
        nodes=[_convert_node(node) for node in cluster.nodes],
        networking=_convert_networking(cluster.networking),
        kubeadm_config_patches=list(cluster.kubeadm_config_patches),
        kubeadm_config_patches_json6902=[
            _convert_patch(patch) for patch in cluster.kubeadm_config_patches_json6902
        ],
    )