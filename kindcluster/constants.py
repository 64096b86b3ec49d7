"""Well known names, labels, roles and defaults for kind clusters."""

from __future__ import annotations

from typing import Final

__all__ = [
    "DEFAULT_CLUSTER_NAME",
    "CLUSTER_LABEL_KEY",
    "NODE_ROLE_KEY",
    "CONTROL_PLANE_NODE_ROLE_VALUE",
    "WORKER_NODE_ROLE_VALUE",
    "EXTERNAL_LOAD_BALANCER_NODE_ROLE_VALUE",
    "EXTERNAL_ETCD_NODE_ROLE_VALUE",
    "DEFAULT_IMAGE",
]

DEFAULT_CLUSTER_NAME: Final = "kind"
"""The default cluster context name."""

CLUSTER_LABEL_KEY: Final = "io.k8s.sigs.kind.cluster"
"""Label applied to each node container to identify its cluster."""

NODE_ROLE_KEY: Final = "io.k8s.sigs.kind.role"
"""Label applied to each node container to record its role."""

CONTROL_PLANE_NODE_ROLE_VALUE: Final = "control-plane"
"""A node hosting a Kubernetes control plane; in single node clusters it also runs workloads."""

WORKER_NODE_ROLE_VALUE: Final = "worker"
"""A node hosting a Kubernetes worker."""

EXTERNAL_LOAD_BALANCER_NODE_ROLE_VALUE: Final = "external-load-balancer"
"""A node hosting the API server load balancer in HA setups; not a Kubernetes node."""

EXTERNAL_ETCD_NODE_ROLE_VALUE: Final = "external-etcd"
"""A node hosting an external etcd; not yet implemented and not a Kubernetes node."""

DEFAULT_IMAGE: Final = (
    "kindest/node:v1.16.2"
    "@sha256:5fe6c8886189577e5f8955306b57240b056c6e8e6d74c905f0e99de6a9ec0094"
)
"""The default node image."""