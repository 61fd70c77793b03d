#
# Copyright (c) 2019 Matthias Tafelmeier.
#
# This file is part of godon
#
# godon is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as
# published by the Free Software Foundation, either version 3 of the
# License, or (at your option) any later version.
#
# godon is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU Affero General Public License for more details.
#
# You should have received a copy of the GNU Affero General Public License
# along with this godon. If not, see <http://www.gnu.org/licenses/>.
#

import os
import time
import uuid
import logging
from datetime import datetime
from typing import Dict, Any, Optional

from effectuation import artifact
from reconnaissance.hardware import detect_install_path
from sysctl_generation import preflight
from sysctl_generation.errors import RenderFailure
from sysctl_generation.generator_metrics_client import GeneratorMetricsClient
from sysctl_generation.resolution_engine import merge_layers, order_settings, render, resolve_layers

logger = logging.getLogger(__name__)

DEFAULT_OUTPUT_FILE = "~/sysctl-suggestion.conf"


class SysctlGenerator:

    def __init__(self, config: Dict[str, Any]):
        self.config = config

        self.facts = preflight.facts_from_config(config)
        self.profile = preflight.parse_profile(config.get('profile'))
        self.ipv6_disabled = config.get('ipv6', {}).get('disabled', False)
        self.container_type = config.get('hardware', {}).get('container_type')

        output_config = config.get('output', {})
        self.output_path = output_config.get('path') or os.environ.get(
            "SYSCTL_GENERATOR_OUTPUT_FILE", DEFAULT_OUTPUT_FILE)
        self.install_path = (output_config.get('install_path')
                             or os.environ.get("SYSCTL_GENERATOR_INSTALL_PATH")
                             or detect_install_path())

        self.run_id = config.get('run_id') or uuid.uuid4().hex[:12]
        self.metrics = GeneratorMetricsClient(run_id=self.run_id, profile=self.profile.value)
        self.parameter_count = 0

    def generate(self, generated_at: Optional[datetime] = None) -> str:
        """Resolve and render the artifact text without touching the filesystem"""
        started = time.perf_counter()
        layers = resolve_layers(self.facts, self.profile, self.ipv6_disabled)
        settings = order_settings(merge_layers(*layers.values()))
        content = render(self.facts, self.profile, self.ipv6_disabled,
                         self.install_path, generated_at=generated_at, settings=settings)
        self.metrics.observe_render_duration(time.perf_counter() - started)

        self.parameter_count = len(settings)
        self.metrics.set_parameter_count(self.parameter_count)
        self.metrics.inc_overrides('profile', len(layers['profile']))
        self.metrics.inc_overrides('ipv6', len(layers['ipv6']))

        logger.debug(f"Generated {self.parameter_count} parameters for {self.facts.summary()}")
        return content

    def summary(self) -> Dict[str, Any]:
        return {
            'run_id': self.run_id,
            'profile': self.profile.value,
            'hardware': self.facts.summary(),
            'ipv6_disabled': self.ipv6_disabled,
            'install_path': self.install_path,
            'parameter_count': self.parameter_count,
        }

    def run(self, generated_at: Optional[datetime] = None) -> Dict[str, Any]:
        logger.info(f"Starting SysctlGenerator run {self.run_id}: profile '{self.profile.value}', "
                    f"IPv6 {'disabled' if self.ipv6_disabled else 'enabled'}")

        try:
            content = self.generate(generated_at)
            written = artifact.main(content, self.output_path, self.install_path,
                                    is_container=self.facts.is_container)
        except RenderFailure:
            self.metrics.inc_run('failure')
            self.metrics.push()
            raise

        self.metrics.inc_run('success')
        self.metrics.push()

        result = self.summary()
        result.update({'path': written['path'], 'status': 'completed'})
        logger.info(f"SysctlGenerator run {self.run_id} wrote {self.parameter_count} parameters "
                    f"to {written['path']}")
        return result


def main(config: Dict[str, Any]) -> Dict[str, Any]:
    """
    Main entry point for one generation run.

    Args:
        config: Generation configuration (hardware, profile, ipv6, output)

    Returns:
        Run summary, or a failure dict when preflight rejects the config
    """
    validation = preflight.main(config)
    if validation['result'] != 'SUCCESS':
        logger.error(validation['error'])
        profile = (config or {}).get('profile') or 'unknown'
        metrics = GeneratorMetricsClient(run_id=uuid.uuid4().hex[:12], profile=str(profile))
        metrics.inc_run('invalid')
        metrics.push()
        return {
            'status': 'invalid',
            'error': validation['error'],
        }

    generator = SysctlGenerator(config)
    return generator.run()
