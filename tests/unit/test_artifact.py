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

import pytest

from effectuation import artifact
from sysctl_generation.errors import RenderFailure


class TestWriteArtifact:
    """Test writing the rendered artifact"""

    def test_writes_content(self, tmp_path):
        destination = tmp_path / 'sysctl.conf'

        written = artifact.write_artifact('vm.swappiness = 10\n', str(destination))

        assert written == str(destination)
        assert destination.read_text() == 'vm.swappiness = 10\n'

    def test_replaces_existing_file(self, tmp_path):
        destination = tmp_path / 'sysctl.conf'
        destination.write_text('old\n')

        artifact.write_artifact('new\n', str(destination))

        assert destination.read_text() == 'new\n'

    def test_expands_home(self, tmp_path, monkeypatch):
        monkeypatch.setenv('HOME', str(tmp_path))

        written = artifact.write_artifact('x = 1\n', '~/sysctl-suggestion.conf')

        assert written == str(tmp_path / 'sysctl-suggestion.conf')
        assert (tmp_path / 'sysctl-suggestion.conf').exists()

    def test_io_error_wrapped(self, tmp_path):
        """Test OSError surfaces as RenderFailure carrying path and cause"""
        destination = tmp_path / 'missing-dir' / 'sysctl.conf'

        with pytest.raises(RenderFailure) as exc_info:
            artifact.write_artifact('x = 1\n', str(destination))

        assert exc_info.value.path == str(destination)
        assert isinstance(exc_info.value.cause, OSError)
        assert not destination.exists()


class TestInstructions:
    """Test the printed apply instructions"""

    def test_apply_steps(self):
        lines = artifact.apply_instructions('/tmp/out.conf', '/etc/sysctl.conf', is_container=False)

        assert '  1. Review the configuration: less /tmp/out.conf' in lines
        assert '  2. Copy it to system location: sudo cp /tmp/out.conf /etc/sysctl.conf' in lines
        assert '  3. Apply the settings: sudo sysctl -p /etc/sysctl.conf' in lines
        assert 'Container Environment Notes:' not in lines
        assert lines[-1].startswith('Note: Always test these settings in a staging environment')

    def test_container_notes(self):
        lines = artifact.apply_instructions('/tmp/out.conf', '/etc/sysctl.conf', is_container=True)

        assert 'Container Environment Notes:' in lines
        assert any('lxc.cap.drop=' in line for line in lines)

    def test_main_prints_and_summarises(self, tmp_path, capsys):
        destination = tmp_path / 'out.conf'

        result = artifact.main('a = 1\n', str(destination), '/etc/sysctl.d/99-custom.conf')

        assert result == {'status': 'completed', 'path': str(destination), 'bytes': 6}
        out = capsys.readouterr().out
        assert f'Configuration saved to: {destination}' in out
        assert 'sudo sysctl -p /etc/sysctl.d/99-custom.conf' in out
