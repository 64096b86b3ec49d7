import pytest

from kindcluster.constants import DEFAULT_IMAGE
from kindcluster.errors import KindError
from kindcluster.v1alpha3 import (
    Cluster,
    Mount,
    MountPropagation,
    Networking,
    Node,
    PatchJSON6902,
    PortMapping,
    PortMappingProtocol,
    set_defaults_cluster,
    set_defaults_node,
)


def test_mount_from_dict_reads_fields_and_propagation():
    mount = Mount.from_dict(
        {
            "containerPath": "/foo",
            "hostPath": "/bar",
            "readOnly": True,
            "selinuxRelabel": False,
            "propagation": "HostToContainer",
        }
    )
    assert mount == Mount(
        container_path="/foo",
        host_path="/bar",
        readonly=True,
        selinux_relabel=False,
        propagation=MountPropagation.HOST_TO_CONTAINER,
    )


def test_mount_propagation_defaults_to_none():
    assert Mount.from_dict({"containerPath": "/a"}).propagation == MountPropagation.NONE


def test_mount_propagation_name_is_case_sensitive():
    with pytest.raises(KindError, match="unknown propagation value: bidirectional"):
        Mount.from_dict({"propagation": "bidirectional"})


def test_port_mapping_protocol_is_case_insensitive():
    mapping = PortMapping.from_dict(
        {"containerPort": 80, "hostPort": 8000, "listenAddress": "127.0.0.1", "protocol": "udp"}
    )
    assert mapping == PortMapping(
        container_port=80,
        host_port=8000,
        listen_address="127.0.0.1",
        protocol=PortMappingProtocol.UDP,
    )


def test_port_mapping_unknown_protocol():
    with pytest.raises(KindError, match="unknown protocol value: foo"):
        PortMapping.from_dict({"protocol": "foo"})


def test_port_mapping_rejects_non_integer_port():
    with pytest.raises(KindError):
        PortMapping.from_dict({"containerPort": "eighty"})


def test_port_mapping_rejects_int32_overflow():
    with pytest.raises(KindError):
        PortMapping.from_dict({"hostPort": 2**31})


def test_unknown_field_is_rejected():
    with pytest.raises(KindError, match="bogus"):
        Cluster.from_dict({"kind": "Cluster", "bogus": 1})


def test_unknown_nested_field_is_rejected():
    with pytest.raises(KindError):
        Cluster.from_dict({"nodes": [{"role": "worker", "extra": True}]})


def test_cluster_from_dict_full():
    cluster = Cluster.from_dict(
        {
            "kind": "Cluster",
            "apiVersion": "kind.sigs.k8s.io/v1alpha3",
            "nodes": [
                {"role": "control-plane"},
                {"role": "worker", "image": "img:1", "extraPortMappings": [{"hostPort": 1}]},
            ],
            "networking": {"ipFamily": "ipv6", "apiServerPort": 6443, "disableDefaultCNI": True},
            "kubeadmConfigPatches": ["a: b"],
            "kubeadmConfigPatchesJson6902": [
                {"group": "g", "version": "v1", "kind": "K", "patch": "[]"}
            ],
        }
    )
    assert cluster.kind == "Cluster"
    assert cluster.api_version == "kind.sigs.k8s.io/v1alpha3"
    assert [n.role for n in cluster.nodes] == ["control-plane", "worker"]
    assert cluster.nodes[1].image == "img:1"
    assert cluster.nodes[1].extra_port_mappings == [PortMapping(host_port=1)]
    assert cluster.networking == Networking(
        ip_family="ipv6", api_server_port=6443, disable_default_cni=True
    )
    assert cluster.kubeadm_config_patches == ["a: b"]
    assert cluster.kubeadm_config_patches_json6902 == [
        PatchJSON6902(group="g", version="v1", kind="K", patch="[]")
    ]


def test_cluster_from_dict_none_is_empty():
    assert Cluster.from_dict(None) == Cluster()


def test_cluster_from_dict_rejects_non_mapping():
    with pytest.raises(KindError):
        Cluster.from_dict(["not", "a", "mapping"])


def test_node_from_dict_rejects_non_bool():
    with pytest.raises(KindError):
        Node.from_dict({"extraMounts": [{"readOnly": "yes"}]})


def test_set_defaults_cluster_ipv4():
    cluster = Cluster()
    set_defaults_cluster(cluster)
    assert cluster.nodes == [Node(role="control-plane", image=DEFAULT_IMAGE)]
    assert cluster.networking.ip_family == "ipv4"
    assert cluster.networking.api_server_address == "127.0.0.1"
    assert cluster.networking.pod_subnet == "10.244.0.0/16"
    assert cluster.networking.service_subnet == "10.96.0.0/12"


def test_set_defaults_cluster_ipv6():
    cluster = Cluster(networking=Networking(ip_family="ipv6"))
    set_defaults_cluster(cluster)
    assert cluster.networking.api_server_address == "::1"
    assert cluster.networking.pod_subnet == "fd00:10:244::/64"
    assert cluster.networking.service_subnet == "fd00:10:96::/112"


def test_set_defaults_keeps_set_values():
    cluster = Cluster(
        nodes=[Node(role="worker", image="custom")],
        networking=Networking(pod_subnet="192.168.0.0/16"),
    )
    set_defaults_cluster(cluster)
    assert cluster.nodes == [Node(role="worker", image="custom")]
    assert cluster.networking.pod_subnet == "192.168.0.0/16"


def test_set_defaults_node_fills_blank_fields():
    node = Node()
    set_defaults_node(node)
    assert node.image == DEFAULT_IMAGE
    assert node.role == "control-plane"


def test_set_defaults_is_idempotent():
    cluster = Cluster.from_dict({"nodes": [{"role": "worker"}, {}]})
    set_defaults_cluster(cluster)
    once = Cluster.from_dict({"nodes": [{"role": "worker"}, {}]})
    set_defaults_cluster(once)
    set_defaults_cluster(once)
    assert once == cluster