#
# test_collector.py
#
# Copyright (C) 2024 Jérôme Poulin <jeromepoulin@gmail.com>
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU General Public License for more details.
#
# You should have received a copy of the GNU General Public License
# along with this program.  If not, see <http://www.gnu.org/licenses/>.
from types import SimpleNamespace

from conftest import FS_UUID
from prometheus_client import generate_latest

from bcachefs_exporter.collector import METRICS, BcacheFSCollector
from bcachefs_exporter.server import create_registry

DEV0 = {"filesystem": FS_UUID, "device": "dev-0"}


def test_registry_values(sysfs_root):
	registry = create_registry(BcacheFSCollector(str(sysfs_root)))

	assert registry.get_sample_value(
		"bcachefs_device_usage_bytes", dict(DEV0, category="user_data")) == 13207024435
	assert registry.get_sample_value("bcachefs_device_capacity_total_bytes", DEV0) == 2000000000000
	assert registry.get_sample_value("bcachefs_device_capacity_available_bytes", DEV0) == 450000000000
	assert registry.get_sample_value(
		"bcachefs_device_info", dict(DEV0, label="ssd.a", block_device="sdb")) == 1
	assert registry.get_sample_value(
		"bcachefs_btree_bytes", {"filesystem": FS_UUID, "btree": "extents"}) == 536870912


def test_counters_get_total_suffix(sysfs_root, monkeypatch):
	counters = {"sdb": SimpleNamespace(read_bytes=4096, write_bytes=8192)}
	monkeypatch.setattr("bcachefs_exporter.translate.psutil.disk_io_counters", lambda perdisk=False: counters)
	registry = create_registry(BcacheFSCollector(str(sysfs_root)))

	assert registry.get_sample_value("bcachefs_device_read_bytes_total", DEV0) == 4096
	assert registry.get_sample_value("bcachefs_device_written_bytes_total", DEV0) == 8192
	assert b"# TYPE bcachefs_device_read_bytes counter" in generate_latest(registry)


def test_families_follow_metric_order(sysfs_root):
	families = [family.name for family in BcacheFSCollector(str(sysfs_root)).collect()]
	assert families == [name for name in METRICS if name in families]
	assert "bcachefs_device_usage_bytes" in families


def test_collect_is_stateless(sysfs_root):
	collector = BcacheFSCollector(str(sysfs_root))
	registry = create_registry(collector)
	assert registry.get_sample_value("bcachefs_device_capacity_total_bytes", DEV0) == 2000000000000

	(sysfs_root / FS_UUID / "dev-0" / "capacity").unlink()

	assert registry.get_sample_value("bcachefs_device_capacity_total_bytes", DEV0) is None


def test_empty_root_exposes_nothing(tmp_path):
	registry = create_registry(BcacheFSCollector(str(tmp_path)))
	assert generate_latest(registry) == b""
