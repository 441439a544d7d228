#
# server.py serves bcachefs metrics over HTTP for Prometheus.
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

from flask import Flask, Response
from prometheus_client import CONTENT_TYPE_LATEST, CollectorRegistry, generate_latest

from .collector import BcacheFSCollector
from .sysfs import SysfsUnreachableError

log = logging.getLogger("bcachefs-exporter")


def create_registry(collector: BcacheFSCollector) -> CollectorRegistry:
	registry = CollectorRegistry()
	registry.register(collector)
	return registry


def create_app(registry: CollectorRegistry) -> Flask:
	app = Flask(__name__)

	@app.route("/metrics")
	def get_metrics():
		return Response(generate_latest(registry), content_type=CONTENT_TYPE_LATEST)

	@app.errorhandler(SysfsUnreachableError)
	def sysfs_unreachable(error):
		log.error("scrape failed", exc_info=error)
		return Response("Something went wrong: %s\n" % error, status=500, content_type='text/plain; charset="UTF-8"')

	return app
