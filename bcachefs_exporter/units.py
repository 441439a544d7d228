#
# units.py converts the human-readable sizes printed by bcachefs to bytes.
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
import re
from decimal import Decimal, InvalidOperation

U64_MAX = 2 ** 64 - 1

SIZE_REGEX = re.compile(r"^\s*([0-9]+(?:\.[0-9]+)?)\s*([A-Za-z]*)\s*$")

# bcachefs prints sizes with base 2 multiples, with or without the "iB".
_binary_prefix = {
	'': 1,
	'B': 1,
	'k': 1024,
	'K': 1024,
	'KiB': 1024,
	'M': 1024 ** 2,
	'MiB': 1024 ** 2,
	'G': 1024 ** 3,
	'GiB': 1024 ** 3,
	'T': 1024 ** 4,
	'TiB': 1024 ** 4,
	'P': 1024 ** 5,
	'PiB': 1024 ** 5,
	'E': 1024 ** 6,
	'EiB': 1024 ** 6,
}
_si_prefix = {
	'kB': 1000,
	'KB': 1000,
	'MB': 1000 ** 2,
	'GB': 1000 ** 3,
	'TB': 1000 ** 4,
	'PB': 1000 ** 5,
	'EB': 1000 ** 6,
}
SIZE_UNITS = dict(_binary_prefix, **_si_prefix)


def parse_size(text: str) -> int:
	"""
	@param text: Size such as "12.3 GiB", "512k" or "4096".
	@return: Size in bytes, truncated to an integer.
	@rtype: int
	@raise ValueError: The size is malformed, uses an unknown unit or does not fit in 64 bits.
	"""
	match = SIZE_REGEX.match(text)
	if not match:
		raise ValueError("malformed size %r" % (text,))

	magnitude, unit = match.groups()
	if unit not in SIZE_UNITS:
		raise ValueError("unknown size unit %r in %r" % (unit, text))

	try:
		size = int(Decimal(magnitude) * SIZE_UNITS[unit])
	except InvalidOperation:
		raise ValueError("malformed size %r" % (text,))

	if size > U64_MAX:
		raise ValueError("size %r does not fit in 64 bits" % (text,))

	return size


def sectors_to_bytes(sectors: str) -> int:
	# Sectors are always 512 bytes, even when the disk runs with 4k sectors.
	return int(sectors) << 9
