#
# tables.py parses the text tables bcachefs publishes in sysfs.
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
import re
from typing import List, NamedTuple, Optional

from .units import parse_size, sectors_to_bytes

log = logging.getLogger("bcachefs-exporter")

LABEL_SIZE_REGEX = re.compile(r"^\s*([^\s:][^:]*?)\s*:\s*(\S.*?)\s*$")
ALLOC_DEBUG_HEADER = ["buckets", "sectors", "fragmented"]
ACCOUNTING_BTREE_REGEX = re.compile(r"^btree btree=(\w+): (\d+)$")
CAPACITY_PAIR_REGEX = re.compile(r"([A-Za-z_]+)\s*=\s*(\S+)")

CAPACITY_TOTAL_KEYS = ("total", "capacity", "size")
CAPACITY_AVAILABLE_KEYS = ("avail", "available", "free")


class UsageRecord(NamedTuple):
	category: str
	bytes: int


class CapacityRecord(NamedTuple):
	total: int
	available: int


def _parse_alloc_debug_row(cells: List[str]) -> Optional[UsageRecord]:
	if len(cells) != 4 or not all(cell.isdigit() for cell in cells[1:]):
		return None
	type_, _buckets, sectors, _fragmented = cells
	return UsageRecord(type_, sectors_to_bytes(sectors))


def parse_usage_table(text: str) -> List[UsageRecord]:
	"""
	Parse a device usage breakdown into records.

	Two row shapes are understood: "category: 12.3 GiB" lines, and the rows
	of the alloc_debug table following its "buckets sectors fragmented"
	header, up to the first blank line. Anything else is skipped, including
	lines whose size does not parse.
	"""
	records = []
	in_alloc_table = False

	for line in text.splitlines():
		cells = line.split()

		if cells == ALLOC_DEBUG_HEADER:
			in_alloc_table = True
			continue

		if in_alloc_table:
			if not cells:
				in_alloc_table = False
				continue
			record = _parse_alloc_debug_row(cells)
			if record is not None:
				records.append(record)
				continue

		match = LABEL_SIZE_REGEX.match(line)
		if not match:
			continue

		category, size = match.groups()
		try:
			records.append(UsageRecord(category, parse_size(size)))
		except ValueError as e:
			log.debug("skipping usage line %r: %s", line, e)

	return records


def parse_alloc_debug_capacity(text: str) -> Optional[int]:
	"""Bucket count of the alloc_debug "capacity" row, None when there is none."""
	in_alloc_table = False

	for line in text.splitlines():
		cells = line.split()

		if cells == ALLOC_DEBUG_HEADER:
			in_alloc_table = True
		elif in_alloc_table:
			if not cells:
				break
			if len(cells) == 2 and cells[0] == "capacity" and cells[1].isdigit():
				return int(cells[1])

	return None


def _capacity_pairs(text: str):
	for line in text.splitlines():
		if "=" in line:
			for pair in CAPACITY_PAIR_REGEX.findall(line):
				yield pair
		else:
			match = LABEL_SIZE_REGEX.match(line)
			if match:
				yield match.groups()


def parse_capacity(text: str) -> Optional[CapacityRecord]:
	"""Return total and available bytes, or None when either is missing."""
	total = None
	available = None

	for key, value in _capacity_pairs(text):
		key = key.strip().lower()
		if key not in CAPACITY_TOTAL_KEYS and key not in CAPACITY_AVAILABLE_KEYS:
			continue
		try:
			size = parse_size(value)
		except ValueError as e:
			log.debug("skipping capacity field %r: %s", key, e)
			continue
		if key in CAPACITY_TOTAL_KEYS:
			total = size
		else:
			available = size

	if total is None or available is None:
		return None
	return CapacityRecord(total, available)


def parse_accounting(text: str) -> List[UsageRecord]:
	"""Per-btree sizes in bytes from internal/accounting."""
	records = []
	for line in text.splitlines():
		match = ACCOUNTING_BTREE_REGEX.match(line.strip())
		if match:
			records.append(UsageRecord(match.group(1), sectors_to_bytes(match.group(2))))
	return records
