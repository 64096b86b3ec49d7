import json

import pytest

from kindcluster.cni import (
    CNIConfigInputs,
    CNIConfigWriter,
    compute_cni_config_inputs,
    render_cni_config,
)


def test_compute_ipv4():
    inputs = compute_cni_config_inputs("10.244.1.0/24")
    assert inputs.pod_cidr == "10.244.1.0/24"
    assert inputs.default_route == "0.0.0.0/0"


def test_compute_ipv6():
    inputs = compute_cni_config_inputs("fd00:10:244::/64")
    assert inputs.default_route == "::/0"


@pytest.mark.parametrize("cidr", ["", "bogus", "fd00:10:244::"])
def test_compute_not_a_v6_cidr(cidr):
    assert compute_cni_config_inputs(cidr).default_route == "0.0.0.0/0"


def test_render_is_json_with_inputs():
    inputs = compute_cni_config_inputs("10.244.1.0/24")
    data = json.loads(render_cni_config(inputs))
    assert data["name"] == "kindnet"
    plugin = data["plugins"][0]
    assert plugin["ipam"]["ranges"][0][0]["subnet"] == inputs.pod_cidr
    assert plugin["ipam"]["routes"][0]["dst"] == inputs.default_route
    assert data["plugins"][1]["type"] == "portmap"


def test_writer_writes_file(tmp_path):
    path = tmp_path / "10-kindnet.conflist"
    writer = CNIConfigWriter(path=str(path))
    inputs = compute_cni_config_inputs("10.244.1.0/24")
    writer.write(inputs)
    assert path.read_text() == render_cni_config(inputs)
    assert writer.last_inputs == inputs
    assert not (tmp_path / "10-kindnet.conflist.temp").exists()


def test_writer_skips_unchanged_inputs(tmp_path):
    path = tmp_path / "10-kindnet.conflist"
    writer = CNIConfigWriter(path=str(path))
    inputs = compute_cni_config_inputs("10.244.1.0/24")
    writer.write(inputs)
    path.unlink()
    writer.write(inputs)
    assert not path.exists()


def test_writer_rewrites_on_change(tmp_path):
    path = tmp_path / "10-kindnet.conflist"
    writer = CNIConfigWriter(path=str(path))
    writer.write(compute_cni_config_inputs("10.244.1.0/24"))
    changed = compute_cni_config_inputs("fd00:10:244::/64")
    writer.write(changed)
    assert json.loads(path.read_text())["plugins"][0]["ipam"]["routes"][0]["dst"] == "::/0"


def test_writer_failure_keeps_last_inputs(tmp_path):
    writer = CNIConfigWriter(path=str(tmp_path / "missing" / "10-kindnet.conflist"))
    with pytest.raises(FileNotFoundError):
        writer.write(compute_cni_config_inputs("10.244.1.0/24"))
    assert writer.last_inputs == CNIConfigInputs()