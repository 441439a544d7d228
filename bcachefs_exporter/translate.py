#
# translate.py turns bcachefs sysfs files into metric samples.
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
from collections import OrderedDict
from concurrent.futures import ThreadPoolExecutor
from functools import partial
from typing import Dict, List, NamedTuple, Optional, Tuple

import psutil

from .sysfs import SYSFS_BCACHEFS_ROOT, Device, Filesystem, discover, read_pseudo_file
from .tables import parse_accounting, parse_alloc_debug_capacity, parse_capacity, parse_usage_table
from .units import parse_size

log = logging.getLogger("bcachefs-exporter")

USAGE_FILE = "usage"
CAPACITY_FILE = "capacity"
BUCKET_SIZE_FILE = "bucket_size"

USAGE_BYTES = "bcachefs_device_usage_bytes"
CAPACITY_TOTAL_BYTES = "bcachefs_device_capacity_total_bytes"
CAPACITY_AVAILABLE_BYTES = "bcachefs_device_capacity_available_bytes"
DEVICE_INFO = "bcachefs_device_info"
READ_BYTES = "bcachefs_device_read_bytes_total"
WRITTEN_BYTES = "bcachefs_device_written_bytes_total"
BTREE_BYTES = "bcachefs_btree_bytes"


class MetricSample(NamedTuple):
	name: str
	labels: Tuple[Tuple[str, str], ...]
	value: float

	def label_dict(self) -> Dict[str, str]:
		return dict(self.labels)


def _device_labels(device: Device) -> Tuple[Tuple[str, str], ...]:
	return (("filesystem", device.filesystem), ("device", device.name))


def usage_samples(device: Device, text: str) -> List[MetricSample]:
	usage = OrderedDict()
	for record in parse_usage_table(text):
		usage[record.category] = usage.get(record.category, 0) + record.bytes

	if not usage:
		log.debug("no usage rows parsed for %s", device.path)

	labels = _device_labels(device)
	return [
		MetricSample(USAGE_BYTES, labels + (("category", category),), value)
		for category, value in usage.items()
	]


def capacity_samples(device: Device, text: str) -> List[MetricSample]:
	capacity = parse_capacity(text)
	if capacity is None:
		log.debug("no capacity parsed for %s", device.path)
		return []

	labels = _device_labels(device)
	return [
		MetricSample(CAPACITY_TOTAL_BYTES, labels, capacity.total),
		MetricSample(CAPACITY_AVAILABLE_BYTES, labels, capacity.available),
	]


def bucket_capacity_samples(device: Device, usage_text: str) -> List[MetricSample]:
	buckets = parse_alloc_debug_capacity(usage_text)
	if buckets is None:
		return []

	bucket_size = read_pseudo_file(device.file_path(BUCKET_SIZE_FILE))
	if bucket_size is None:
		return []

	try:
		size = parse_size(bucket_size)
	except ValueError as e:
		log.debug("unusable bucket size for %s: %s", device.path, e)
		return []

	return [MetricSample(CAPACITY_TOTAL_BYTES, _device_labels(device), buckets * size)]


def translate(
		device: Device,
		usage_file: str = USAGE_FILE,
		capacity_file: str = CAPACITY_FILE,
		io_counters: Optional[dict] = None) -> List[MetricSample]:
	"""
	Read and parse every file of one device.

	A device whose files do not parse contributes fewer samples, and one
	whose files all vanished contributes none. Neither is an error.
	"""
	if not os.path.isdir(device.path):
		log.debug("device %s vanished before being read", device.path)
		return []

	usage_text = read_pseudo_file(device.file_path(usage_file))
	capacity_text = read_pseudo_file(device.file_path(capacity_file))
	if usage_text is None and capacity_text is None:
		log.debug("device %s has nothing to read, it may have been removed", device.path)
		return []

	samples = []
	if usage_text is not None:
		samples += usage_samples(device, usage_text)

	capacity = capacity_samples(device, capacity_text) if capacity_text is not None else []
	if not capacity and usage_text is not None:
		# Kernels without a capacity file still publish the bucket count in alloc_debug.
		capacity = bucket_capacity_samples(device, usage_text)
	samples += capacity

	labels = _device_labels(device)
	block_device = device.block_device()
	samples.append(MetricSample(
		DEVICE_INFO,
		labels + (("label", device.label()), ("block_device", block_device)),
		1,
	))

	io_counter = (io_counters or {}).get(block_device) if block_device else None
	if io_counter is not None:
		samples.append(MetricSample(READ_BYTES, labels, io_counter.read_bytes))
		samples.append(MetricSample(WRITTEN_BYTES, labels, io_counter.write_bytes))

	return samples


def translate_filesystem(filesystem: Filesystem) -> List[MetricSample]:
	text = read_pseudo_file(filesystem.accounting_path())
	if text is None:
		return []

	return [
		MetricSample(BTREE_BYTES, (("filesystem", filesystem.uuid), ("btree", record.category)), record.bytes)
		for record in parse_accounting(text)
	]


def get_io_counters() -> dict:
	try:
		return psutil.disk_io_counters(perdisk=True) or {}
	except OSError as e:
		log.debug("could not read disk I/O counters: %s", e)
		return {}


def scrape(
		root: str = SYSFS_BCACHEFS_ROOT,
		usage_file: str = USAGE_FILE,
		capacity_file: str = CAPACITY_FILE,
		workers: int = 1) -> List[MetricSample]:
	"""Discover every device under root and translate them all."""
	samples = []
	devices = []

	for filesystem in discover(root):
		samples += translate_filesystem(filesystem)
		devices += filesystem.devices()

	if not devices:
		return samples

	translate_device = partial(
		translate,
		usage_file=usage_file,
		capacity_file=capacity_file,
		io_counters=get_io_counters(),
	)

	if workers > 1 and len(devices) > 1:
		with ThreadPoolExecutor(max_workers=workers) as executor:
			for device_samples in executor.map(translate_device, devices):
				samples += device_samples
	else:
		for device in devices:
			samples += translate_device(device)

	return samples
