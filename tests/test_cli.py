#
# test_cli.py
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
import argparse

import pytest
from conftest import FS_UUID

from bcachefs_exporter.cli import main, parse_arguments, parse_listen_address
from bcachefs_exporter.sysfs import SYSFS_BCACHEFS_ROOT


@pytest.mark.parametrize("value, expected", [
	("[::1]:22903", ("::1", 22903)),
	("[::]:9100", ("::", 9100)),
	("0.0.0.0:9100", ("0.0.0.0", 9100)),
	("localhost:8000", ("localhost", 8000)),
])
def test_parse_listen_address(value, expected):
	assert parse_listen_address(value) == expected


@pytest.mark.parametrize("value", ["22903", ":22903", "[::1]:http", "[::1]:0", "[::1]:65536"])
def test_invalid_listen_address(value):
	with pytest.raises(argparse.ArgumentTypeError):
		parse_listen_address(value)


def test_defaults():
	args = parse_arguments([])
	assert args.listen == ("::1", 22903)
	assert args.sysfs_root == SYSFS_BCACHEFS_ROOT
	assert args.usage_file == "usage"
	assert args.capacity_file == "capacity"
	assert args.workers == 1
	assert not args.once


@pytest.mark.parametrize("argv", [["--listen", "nowhere"], ["--workers", "0"]])
def test_bad_arguments_exit(argv):
	with pytest.raises(SystemExit):
		parse_arguments(argv)


def test_once_prints_metrics(sysfs_root, capsys):
	main(["--sysfs-root", str(sysfs_root), "--once", "-vv"])

	out = capsys.readouterr().out
	assert "# TYPE bcachefs_device_usage_bytes gauge" in out
	assert 'filesystem="%s"' % FS_UUID in out
