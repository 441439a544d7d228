#
# collector.py exposes bcachefs samples through a prometheus_client collector.
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
from collections import OrderedDict

from prometheus_client.core import CounterMetricFamily, GaugeMetricFamily

from .sysfs import SYSFS_BCACHEFS_ROOT
from .translate import (
	BTREE_BYTES, CAPACITY_AVAILABLE_BYTES, CAPACITY_FILE, CAPACITY_TOTAL_BYTES, DEVICE_INFO, READ_BYTES,
	USAGE_BYTES, USAGE_FILE, WRITTEN_BYTES, scrape,
)

METRICS = OrderedDict([
	(USAGE_BYTES, (GaugeMetricFamily, "Bytes used on a device, by data type")),
	(CAPACITY_TOTAL_BYTES, (GaugeMetricFamily, "Total capacity of a device in bytes")),
	(CAPACITY_AVAILABLE_BYTES, (GaugeMetricFamily, "Available capacity of a device in bytes")),
	(DEVICE_INFO, (GaugeMetricFamily, "Label and block device of a bcachefs member device")),
	(READ_BYTES, (CounterMetricFamily, "Bytes read from the device's block device")),
	(WRITTEN_BYTES, (CounterMetricFamily, "Bytes written to the device's block device")),
	(BTREE_BYTES, (GaugeMetricFamily, "Size of each btree of a filesystem in bytes")),
])


class BcacheFSCollector(object):
	"""Walks sysfs from scratch on every collect, nothing is kept between scrapes."""

	def __init__(
			self, root=SYSFS_BCACHEFS_ROOT,
			usage_file=USAGE_FILE, capacity_file=CAPACITY_FILE, workers=1):
		self.root = root
		self.usage_file = usage_file
		self.capacity_file = capacity_file
		self.workers = workers

	def collect(self):
		samples = scrape(self.root, self.usage_file, self.capacity_file, self.workers)

		families = OrderedDict()
		for sample in samples:
			family = families.get(sample.name)
			if family is None:
				family_class, documentation = METRICS[sample.name]
				family = family_class(sample.name, documentation, labels=[k for k, _ in sample.labels])
				families[sample.name] = family
			family.add_metric([v for _, v in sample.labels], sample.value)

		for name in METRICS:
			if name in families:
				yield families[name]

	def __repr__(self):
		return "<%s root=%s>" % (self.__class__.__name__, self.root)
