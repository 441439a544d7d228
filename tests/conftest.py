#
# conftest.py builds fake /sys/fs/bcachefs trees for the tests.
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
import os
from pathlib import Path

import pytest

FIXTURES = Path(__file__).parent / "fixtures"
FS_UUID = "5b9a5c43-6b54-4b2e-8d6e-0a4a8c2e7f10"


def read_fixture(name):
	return (FIXTURES / name).read_text()


def make_device(fs_dir, name, files, block=None):
	device_dir = fs_dir / name
	device_dir.mkdir(parents=True)
	for filename, content in files.items():
		(device_dir / filename).write_text(content)
	if block is not None:
		os.symlink("../../../../devices/virtual/block/%s" % block, device_dir / "block")
	return device_dir


@pytest.fixture(autouse=True)
def no_disk_io_counters(monkeypatch):
	monkeypatch.setattr("bcachefs_exporter.translate.psutil.disk_io_counters", lambda perdisk=False: {})


@pytest.fixture
def sysfs_root(tmp_path):
	"""
	One filesystem with two devices:
	dev-0 has the usage and capacity fixtures, dev-1 a small hand written table.
	"""
	root = tmp_path / "bcachefs"
	fs_dir = root / FS_UUID
	make_device(fs_dir, "dev-0", {
		"usage": read_fixture("usage"),
		"capacity": read_fixture("capacity"),
		"label": "ssd.a\n",
	}, block="sdb")
	make_device(fs_dir, "dev-1", {
		"usage": "user_data: 1 GiB\n",
		"capacity": "total: 1 TiB\navail: 512 GiB\n",
		"label": "hdd.b\n",
	}, block="sdc")
	(fs_dir / "internal").mkdir()
	(fs_dir / "internal" / "accounting").write_text(read_fixture("accounting"))
	(fs_dir / "options").mkdir()
	(fs_dir / "nbuckets").write_text("42\n")
	(root / "stray").write_text("not a filesystem\n")
	return root
