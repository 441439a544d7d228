#
# cli.py parses the command line and runs the bcachefs Prometheus exporter.
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
import logging
import sys
from typing import Tuple

from prometheus_client import generate_latest

from .collector import BcacheFSCollector
from .server import create_app, create_registry
from .sysfs import SYSFS_BCACHEFS_ROOT
from .translate import CAPACITY_FILE, USAGE_FILE

log = logging.getLogger("bcachefs-exporter")
DEFAULT_LISTEN = "[::1]:22903"


def parse_listen_address(value: str) -> Tuple[str, int]:
	host, sep, port = value.rpartition(":")
	if not sep or not host:
		raise argparse.ArgumentTypeError("listen address must be HOST:PORT, got %r" % value)
	if host.startswith("[") and host.endswith("]"):
		host = host[1:-1]
	try:
		port = int(port)
	except ValueError:
		raise argparse.ArgumentTypeError("invalid port in listen address %r" % value)
	if not 0 < port < 65536:
		raise argparse.ArgumentTypeError("port out of range in listen address %r" % value)
	return host, port


def parse_arguments(argv=None):
	parser = argparse.ArgumentParser(description='BcacheFS Prometheus Exporter')
	parser.add_argument(
		'--listen', type=parse_listen_address, default=DEFAULT_LISTEN,
		help="Address to expose metrics on, IPv6 addresses in brackets. Default: %(default)s",
	)
	parser.add_argument(
		'--sysfs-root', default=SYSFS_BCACHEFS_ROOT,
		help="Path to the bcachefs sysfs directory. Default: %(default)s",
	)
	parser.add_argument(
		'--usage-file', default=USAGE_FILE,
		help="Usage breakdown file, relative to each dev-N directory. Default: %(default)s",
	)
	parser.add_argument(
		'--capacity-file', default=CAPACITY_FILE,
		help="Capacity file, relative to each dev-N directory. Default: %(default)s",
	)
	parser.add_argument(
		'--workers', type=int, default=1,
		help="Number of devices read in parallel during a scrape.",
	)
	parser.add_argument(
		'-v', '--verbose', action='count', default=0,
		help="Log more, repeat for debug messages.",
	)
	parser.add_argument(
		'--once', action='store_true',
		help="Print metrics once on stdout and exit, for the node_exporter textfile collector.",
	)
	args = parser.parse_args(argv)

	if args.workers < 1:
		parser.error("--workers must be at least 1.")

	return args


def main(argv=None):
	args = parse_arguments(argv)

	logging.basicConfig(level=logging.WARNING)
	log.setLevel(logging.DEBUG if args.verbose > 1 else logging.INFO if args.verbose else logging.WARNING)

	collector = BcacheFSCollector(args.sysfs_root, args.usage_file, args.capacity_file, args.workers)
	registry = create_registry(collector)

	if args.once:
		sys.stdout.write(generate_latest(registry).decode())
		return

	host, port = args.listen
	log.info("serving metrics from %s on [%s]:%d", args.sysfs_root, host, port)

	if not sys.flags.inspect:
		create_app(registry).run(host=host, port=port)
