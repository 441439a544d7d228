#
# sysfs.py walks /sys/fs/bcachefs to find filesystems and their member devices.
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
import logging
import os
from typing import Iterator, NamedTuple, Optional

log = logging.getLogger("bcachefs-exporter")

SYSFS_BCACHEFS_ROOT = "/sys/fs/bcachefs"
DEVICE_DIR_PREFIX = "dev-"
ACCOUNTING_FILE = os.path.join("internal", "accounting")


class SysfsUnreachableError(RuntimeError):
	"""The sysfs root exists but can not be listed."""


def _list_directories(path: str):
	with os.scandir(path) as entries:
		names = []
		for entry in entries:
			try:
				if entry.is_dir():
					names.append(entry.name)
			except OSError:
				continue
	return sorted(names)


def read_pseudo_file(path: str) -> Optional[str]:
	"""Read a sysfs attribute, None when it vanished or can not be read."""
	try:
		with open(path, 'r') as f:
			return f.read()
	except (OSError, UnicodeDecodeError) as e:
		log.debug("could not read %s: %s", path, e)
		return None


class Device(NamedTuple):
	filesystem: str
	name: str
	path: str

	def file_path(self, filename: str) -> str:
		return os.path.join(self.path, filename)

	def label(self) -> str:
		label = read_pseudo_file(self.file_path("label"))
		return label.strip() if label is not None else ""

	def block_device(self) -> str:
		try:
			return os.path.basename(os.readlink(self.file_path("block")))
		except OSError as e:
			log.debug("no block device for %s: %s", self.path, e)
			return ""


class Filesystem(NamedTuple):
	uuid: str
	path: str

	def devices(self) -> Iterator[Device]:
		try:
			names = _list_directories(self.path)
		except OSError as e:
			log.debug("filesystem %s vanished while listing devices: %s", self.uuid, e)
			return

		for name in names:
			if name.startswith(DEVICE_DIR_PREFIX):
				yield Device(self.uuid, name, os.path.join(self.path, name))

	def accounting_path(self) -> str:
		return os.path.join(self.path, ACCOUNTING_FILE)


def discover(root: str = SYSFS_BCACHEFS_ROOT) -> Iterator[Filesystem]:
	"""
	Yield every bcachefs filesystem registered under root.

	A missing root means bcachefs is not loaded or nothing is mounted, which
	yields nothing. A root that exists but can not be listed raises
	SysfsUnreachableError.
	"""
	try:
		names = _list_directories(root)
	except FileNotFoundError:
		log.debug("%s does not exist, no bcachefs filesystem mounted", root)
		return
	except OSError as e:
		raise SysfsUnreachableError("can not list %s: %s" % (root, e)) from e

	for name in names:
		yield Filesystem(name, os.path.join(root, name))
