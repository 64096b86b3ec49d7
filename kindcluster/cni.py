"""CNI configuration: computing its inputs and writing it atomically."""

from __future__ import annotations

import contextlib
import ipaddress
import os
from dataclasses import dataclass, field
from string import Template

__all__ = [
    "CNI_CONFIG_PATH",
    "CNIConfigInputs",
    "CNIConfigWriter",
    "compute_cni_config_inputs",
    "render_cni_config",
]

CNI_CONFIG_PATH = "/etc/cni/net.d/10-kindnet.conflist"
"""Where the computed CNI config is written."""

_CNI_CONFIG_TEMPLATE = Template("""
{
	"cniVersion": "0.3.1",
	"name": "kindnet",
	"plugins": [
	{
		"type": "ptp",
		"ipMasq": false,
		"ipam": {
			"type": "host-local",
			"dataDir": "/run/cni-ipam-state",
			"routes": [
				{
					"dst": "$default_route"
				}
			],
			"ranges": [
			[
				{
					"subnet": "$pod_cidr"
				}
			]
		]
		}
	},
	{
		"type": "portmap",
		"capabilities": {
			"portMappings": true
		}
	}
	]
}
""")


@dataclass(frozen=True)
class CNIConfigInputs:
    """The values filled into the CNI config."""

    pod_cidr: str = ""
    default_route: str = ""


def _is_ipv6_cidr(text: str) -> bool:
    if "/" not in text:
        return False
    try:
        network = ipaddress.ip_network(text, strict=False)
    except ValueError:
        return False
    return network.version == 6 and network.network_address.ipv4_mapped is None


def compute_cni_config_inputs(pod_cidr: str) -> CNIConfigInputs:
    """Return the config inputs for a node with the given pod CIDR."""
    default_route = "::/0" if _is_ipv6_cidr(pod_cidr) else "0.0.0.0/0"
    return CNIConfigInputs(pod_cidr=pod_cidr, default_route=default_route)


def render_cni_config(inputs: CNIConfigInputs) -> str:
    """Return the CNI config text for inputs."""
    return _CNI_CONFIG_TEMPLATE.substitute(
        pod_cidr=inputs.pod_cidr, default_route=inputs.default_route
    )


@dataclass
class CNIConfigWriter:
    """Writes the CNI config, skipping writes whose inputs have not changed.

    Not safe for use from several threads at once.
    """

    path: str = CNI_CONFIG_PATH
    last_inputs: CNIConfigInputs = field(default_factory=CNIConfigInputs)

    def write(self, inputs: CNIConfigInputs) -> None:
        """Write the config for inputs, atomically replacing the previous one."""
        if inputs == self.last_inputs:
            return
        # an extension CNI does not recognise, renamed into place afterwards
        temp_path = self.path + ".temp"
        with open(temp_path, "w", encoding="utf-8") as handle:
            try:
                handle.write(render_cni_config(inputs))
            except BaseException:
                handle.close()
                with contextlib.suppress(OSError):
                    os.remove(temp_path)
                raise
            handle.flush()
            with contextlib.suppress(OSError):
                os.fsync(handle.fileno())
        os.replace(temp_path, self.path)
        self.last_inputs = inputs