# kindcluster

Building blocks for local Kubernetes clusters whose "nodes" are containers:
loading, defaulting and validating cluster configuration files, selecting
nodes by role, running commands on the host or inside nodes, copying files in
a container-friendly way, and writing the CNI configuration used by the
in-cluster networking daemon.

## Installation

```
pip install .
```

For running the test suite:

```
pip install .[test]
pytest
```

## Command line

```
kindcluster --help
kindcluster --version
kindcluster version
kindcluster -q version
kindcluster -v 3 version
```

`kindcluster version` prints the version together with the Python version
and platform; with `-q/--quiet` it prints only the semantic version.
`-v/--verbosity` sets the log verbosity (errors then include a failed
command's output and a stack trace), `-q/--quiet` silences stderr output, and
the deprecated `--loglevel debug|trace` is still accepted with a warning.

## Loading a cluster configuration

```python
from kindcluster.encoding import load

cluster = load("cluster.yaml")   # "" gives the default config, "-" reads stdin
cluster.validate()               # raises on any problem
for node in cluster.nodes:
    print(node.role, node.image)
```

A configuration file looks like:

```yaml
kind: Cluster
apiVersion: kind.sigs.k8s.io/v1alpha3
nodes:
- role: control-plane
- role: worker
  extraPortMappings:
  - containerPort: 80
    hostPort: 8000
    protocol: TCP
networking:
  ipFamily: ipv4
  podSubnet: 10.244.0.0/16
```

Unknown fields, an unknown `apiVersion` or `kind`, and malformed YAML are
all reported as errors. Unset fields are filled with defaults: a single
control-plane node using `kindcluster.constants.DEFAULT_IMAGE`, and IPv4 or
IPv6 addresses and subnets to match `ipFamily`.

The file format is modelled by `kindcluster.v1alpha3` (with `from_dict`
decoders); `kindcluster.config` holds the internal types, `set_defaults_cluster`,
`convert_v1alpha3` and the `validate` methods. Validation problems are
collected together; use `kindcluster.errors.errors_of` to get them one by one:

```python
from kindcluster.errors import errors_of

try:
    cluster.validate()
except Exception as exc:
    for problem in errors_of(exc) or [exc]:
        print(problem)
```

## Errors

`kindcluster.errors` provides `new`, `errorf`, `wrap`, `wrapf` and
`with_stack` (each recording the current stack), `stack_trace` to find the
deepest recorded stack in a cause chain, `new_aggregate` and `errors_of` for
grouped errors, and `until_error_concurrent` / `aggregate_concurrent` to run
functions in threads and raise the first error or all of them.

## Running commands

```python
from kindcluster.exec import command, output_lines

lines = output_lines(command("docker", "ps", "-q"))
```

A failing command raises `kindcluster.exec.RunError`, which carries the
command line (`command`), its combined output (`output`) and the underlying
error (`inner`). `combined_output_lines`, `inherit_output`,
`run_with_stdout_reader` and `run_with_stdin_writer` cover the other common
ways of running a command.

## Node helpers

`kindcluster.nodeutils` works with any object implementing the `Node`
interface (`str()` for the name, `role()`, `ip()` and `command()`):
`select_nodes_by_role`, `control_plane_nodes`, `bootstrap_control_plane_node`,
`secondary_control_plane_nodes`, `external_load_balancer_node`,
`api_server_endpoint_node`, `kube_version`, `write_file`,
`copy_node_to_node`, `load_image_archive` and `image_id`.

`kindcluster.context.Context` pairs a cluster name with a
`kindcluster.context.Provider` and lists the cluster's nodes, or only its
Kubernetes nodes with `list_internal_nodes`.

## Files

`kindcluster.fs.temp_dir` creates a temporary directory that can be
bind-mounted into containers (on macOS it returns the `/private/var/...`
path), and `kindcluster.fs.copy` / `copy_file` copy trees and files keeping
modes and dereferencing symlinks.

## CNI configuration

```python
from kindcluster.cni import CNIConfigWriter, compute_cni_config_inputs

writer = CNIConfigWriter("/etc/cni/net.d/10-kindnet.conflist")
writer.write(compute_cni_config_inputs("10.244.1.0/24"))
```

The default route is `::/0` for an IPv6 pod CIDR and `0.0.0.0/0` otherwise.
The file is written atomically and rewritten only when the inputs change;
`render_cni_config` returns the text without writing it.

## What this package does not do

- It has no container backend: `Provider` is an abstract interface, and no
  implementation that talks to Docker is included.
- The command line offers only the `version` command; there are no commands
  to create, delete, list or export clusters, or to load images into them.
- It does not run the networking daemon itself: routes and masquerade rules
  are not managed, only the CNI configuration file is written.