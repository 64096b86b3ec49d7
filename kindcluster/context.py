"""The cluster context shared by cluster operations: a name and a provider."""

from __future__ import annotations

import abc

from . import constants
from .nodeutils import Node

__all__ = ["Provider", "Context"]


class Provider(abc.ABC):
    """A cluster backend able to find clusters and their nodes."""

    @abc.abstractmethod
    def list_clusters(self) -> list[str]:
        """Return the names of clusters for which nodes exist."""

    @abc.abstractmethod
    def list_nodes(self, cluster: str) -> list[Node]:
        """Return the nodes of the named cluster."""

    @abc.abstractmethod
    def get_api_server_endpoint(self, cluster: str) -> str:
        """Return the host endpoint of the named cluster's API server."""


class Context:
    """A named cluster reached through a provider."""

    def __init__(self, provider: Provider, name: str = constants.DEFAULT_CLUSTER_NAME):
        self._provider = provider
        self._name = name

    @property
    def name(self) -> str:
        """The cluster's name."""
        return self._name

    @property
    def provider(self) -> Provider:
        """The cluster's backend."""
        return self._provider

    def get_api_server_endpoint(self) -> str:
        """Return the host endpoint of this cluster's API server."""
        return self._provider.get_api_server_endpoint(self._name)

    def list_nodes(self) -> list[Node]:
        """Return every node of this cluster."""
        return self._provider.list_nodes(self._name)

    def list_internal_nodes(self) -> list[Node]:
        """Return the nodes that are Kubernetes nodes, not external helpers."""
        internal_roles = (
            constants.WORKER_NODE_ROLE_VALUE,
            constants.CONTROL_PLANE_NODE_ROLE_VALUE,
        )
        return [node for node in self.list_nodes() if node.role() in internal_roles]