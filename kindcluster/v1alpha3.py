"""The v1alpha3 cluster configuration: types, YAML-shaped decoding and defaults."""

from __future__ import annotations

import enum
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from .constants import DEFAULT_IMAGE
from .errors import errorf

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
]

_INT32_MIN = -(2**31)
_INT32_MAX = 2**31 - 1


class NodeRole(str, enum.Enum):
    """Known roles of a node in the cluster."""

    CONTROL_PLANE = "control-plane"
    WORKER = "worker"


class ClusterIPFamily(str, enum.Enum):
    """Known cluster network IP families."""

    IPV4 = "ipv4"
    IPV6 = "ipv6"


class MountPropagation(enum.IntEnum):
    """Mount propagation modes."""

    NONE = 0
    HOST_TO_CONTAINER = 1
    BIDIRECTIONAL = 2


class PortMappingProtocol(enum.IntEnum):
    """Port mapping protocols."""

    TCP = 0
    UDP = 1
    SCTP = 2


MOUNT_PROPAGATION_VALUE_TO_NAME: dict[MountPropagation, str] = {
    MountPropagation.NONE: "None",
    MountPropagation.HOST_TO_CONTAINER: "HostToContainer",
    MountPropagation.BIDIRECTIONAL: "Bidirectional",
}

MOUNT_PROPAGATION_NAME_TO_VALUE: dict[str, MountPropagation] = {
    name: value for value, name in MOUNT_PROPAGATION_VALUE_TO_NAME.items()
}

PORT_MAPPING_PROTOCOL_VALUE_TO_NAME: dict[PortMappingProtocol, str] = {
    PortMappingProtocol.TCP: "TCP",
    PortMappingProtocol.UDP: "UDP",
    PortMappingProtocol.SCTP: "SCTP",
}

PORT_MAPPING_PROTOCOL_NAME_TO_VALUE: dict[str, PortMappingProtocol] = {
    name: value for value, name in PORT_MAPPING_PROTOCOL_VALUE_TO_NAME.items()
}


def _fields(data: Any, allowed: tuple[str, ...], what: str) -> dict[str, Any]:
    """Check data is a mapping with only known keys; drop null values."""
    if data is None:
        return {}
    if not isinstance(data, Mapping):
        raise errorf("cannot decode %s into %s", type(data).__name__, what)
    for key in data:
        if key not in allowed:
            raise errorf("field %s not found in type %s", key, what)
    return {key: value for key, value in data.items() if value is not None}


def _str(value: Any, key: str) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (str, int, float)):
        return str(value)
    raise errorf("cannot decode %s into string field %s", type(value).__name__, key)


def _int32(value: Any, key: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise errorf("cannot decode %s into int32 field %s", type(value).__name__, key)
    if not _INT32_MIN <= value <= _INT32_MAX:
        raise errorf("value %d of field %s overflows int32", value, key)
    return value


def _bool(value: Any, key: str) -> bool:
    if not isinstance(value, bool):
        raise errorf("cannot decode %s into bool field %s", type(value).__name__, key)
    return value


def _list(value: Any, key: str) -> list:
    if not isinstance(value, list):
        raise errorf("cannot decode %s into list field %s", type(value).__name__, key)
    return value


@dataclass
class Mount:
    """A host path mounted into a node container."""

    container_path: str = ""
    host_path: str = ""
    readonly: bool = False
    selinux_relabel: bool = False
    propagation: MountPropagation = MountPropagation.NONE

    @classmethod
    def from_dict(cls, data: Any) -> "Mount":
        """Decode a mount; propagation is given by name."""
        values = _fields(
            data,
            ("containerPath", "hostPath", "readOnly", "selinuxRelabel", "propagation"),
            "Mount",
        )
        mount = cls(
            container_path=_str(values.get("containerPath", ""), "containerPath"),
            host_path=_str(values.get("hostPath", ""), "hostPath"),
            readonly=_bool(values.get("readOnly", False), "readOnly"),
            selinux_relabel=_bool(values.get("selinuxRelabel", False), "selinuxRelabel"),
        )
        name = _str(values.get("propagation", ""), "propagation")
        if name:
            if name not in MOUNT_PROPAGATION_NAME_TO_VALUE:
                raise errorf("unknown propagation value: %s", name)
            mount.propagation = MOUNT_PROPAGATION_NAME_TO_VALUE[name]
        return mount


@dataclass
class PortMapping:
    """A host port mapped into a node container port."""

    container_port: int = 0
    host_port: int = 0
    listen_address: str = ""
    protocol: PortMappingProtocol = PortMappingProtocol.TCP

    @classmethod
    def from_dict(cls, data: Any) -> "PortMapping":
        """Decode a port mapping; protocol is given by name, in any case."""
        values = _fields(
            data,
            ("containerPort", "hostPort", "listenAddress", "protocol"),
            "PortMapping",
        )
        mapping = cls(
            container_port=_int32(values.get("containerPort", 0), "containerPort"),
            host_port=_int32(values.get("hostPort", 0), "hostPort"),
            listen_address=_str(values.get("listenAddress", ""), "listenAddress"),
        )
        name = _str(values.get("protocol", ""), "protocol")
        if name:
            protocol = PORT_MAPPING_PROTOCOL_NAME_TO_VALUE.get(name.upper())
            if protocol is None:
                raise errorf("unknown protocol value: %s", name)
            mapping.protocol = protocol
        return mapping


@dataclass
class Node:
    """Settings for one node container of the cluster."""

    role: str = ""
    image: str = ""
    extra_mounts: list[Mount] = field(default_factory=list)
    extra_port_mappings: list[PortMapping] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Any) -> "Node":
        """Decode a node."""
        values = _fields(
            data, ("role", "image", "extraMounts", "extraPortMappings"), "Node"
        )
        return cls(
            role=_str(values.get("role", ""), "role"),
            image=_str(values.get("image", ""), "image"),
            extra_mounts=[
                Mount.from_dict(item)
                for item in _list(values.get("extraMounts", []), "extraMounts")
            ],
            extra_port_mappings=[
                PortMapping.from_dict(item)
                for item in _list(values.get("extraPortMappings", []), "extraPortMappings")
            ],
        )


@dataclass
class Networking:
    """Cluster wide network settings."""

    ip_family: str = ""
    api_server_port: int = 0
    api_server_address: str = ""
    pod_subnet: str = ""
    service_subnet: str = ""
    disable_default_cni: bool = False

    @classmethod
    def from_dict(cls, data: Any) -> "Networking":
        """Decode network settings."""
        values = _fields(
            data,
            (
                "ipFamily",
                "apiServerPort",
                "apiServerAddress",
                "podSubnet",
                "serviceSubnet",
                "disableDefaultCNI",
            ),
            "Networking",
        )
        return cls(
            ip_family=_str(values.get("ipFamily", ""), "ipFamily"),
            api_server_port=_int32(values.get("apiServerPort", 0), "apiServerPort"),
            api_server_address=_str(values.get("apiServerAddress", ""), "apiServerAddress"),
            pod_subnet=_str(values.get("podSubnet", ""), "podSubnet"),
            service_subnet=_str(values.get("serviceSubnet", ""), "serviceSubnet"),
            disable_default_cni=_bool(values.get("disableDefaultCNI", False), "disableDefaultCNI"),
        )


@dataclass
class PatchJSON6902:
    """An inline JSON 6902 patch and the resource it targets."""

    group: str = ""
    version: str = ""
    kind: str = ""
    name: str = ""
    namespace: str = ""
    patch: str = ""

    @classmethod
    def from_dict(cls, data: Any) -> "PatchJSON6902":
        """Decode a JSON 6902 patch."""
        keys = ("group", "version", "kind", "name", "namespace", "patch")
        values = _fields(data, keys, "PatchJSON6902")
        return cls(**{key: _str(values.get(key, ""), key) for key in keys})


@dataclass
class Cluster:
    """A kind cluster configuration."""

    kind: str = ""
    api_version: str = ""
    nodes: list[Node] = field(default_factory=list)
    networking: Networking = field(default_factory=Networking)
    kubeadm_config_patches: list[str] = field(default_factory=list)
    kubeadm_config_patches_json6902: list[PatchJSON6902] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Any) -> "Cluster":
        """Decode a cluster, rejecting unknown fields."""
        values = _fields(
            data,
            (
                "kind",
                "apiVersion",
                "nodes",
                "networking",
                "kubeadmConfigPatches",
                "kubeadmConfigPatchesJson6902",
            ),
            "Cluster",
        )
        return cls(
            kind=_str(values.get("kind", ""), "kind"),
            api_version=_str(values.get("apiVersion", ""), "apiVersion"),
            nodes=[Node.from_dict(item) for item in _list(values.get("nodes", []), "nodes")],
            networking=Networking.from_dict(values.get("networking")),
            kubeadm_config_patches=[
                _str(item, "kubeadmConfigPatches")
                for item in _list(values.get("kubeadmConfigPatches", []), "kubeadmConfigPatches")
            ],
            kubeadm_config_patches_json6902=[
                PatchJSON6902.from_dict(item)
                for item in _list(
                    values.get("kubeadmConfigPatchesJson6902", []),
                    "kubeadmConfigPatchesJson6902",
                )
            ],
        )


def set_defaults_cluster(obj: Cluster) -> None:
    """Fill in unset fields of obj with their defaults, in place."""
    if not obj.nodes:
        obj.nodes = [Node(role=NodeRole.CONTROL_PLANE.value, image=DEFAULT_IMAGE)]
    for node in obj.nodes:
        set_defaults_node(node)
    net = obj.networking
    if not net.ip_family:
        net.ip_family = ClusterIPFamily.IPV4.value
    ipv6 = net.ip_family == ClusterIPFamily.IPV6.value
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