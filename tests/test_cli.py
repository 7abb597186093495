#!/usr/bin/env python3
"""
Tests for the rtsp-client command
"""

import pytest

from rtsp_client.cli import build_parser, main


class TestParser:

    def test_defaults(self):
        args = build_parser().parse_args([])
        assert args.duration == 10.0
        assert args.config is None
        assert not args.debug

    def test_overrides(self):
        args = build_parser().parse_args(
            ['-s', 'media', '-p', '5540', '-v', 'clip', '-t', '2.5', '-o', 'out', '-d'])
        assert (args.server, args.port, args.video) == ('media', 5540, 'clip')
        assert args.duration == 2.5
        assert args.output_dir == 'out'
        assert args.debug


class TestMain:

    def test_short_session(self, rtsp_server, tmp_path, capsys):
        main(['--server', rtsp_server.host, '--port', str(rtsp_server.port),
              '--video', 'clip', '--duration', '0.2',
              '--output-dir', str(tmp_path / 'frames')])

        assert rtsp_server.methods == ['SETUP', 'PLAY', 'TEARDOWN']
        out = capsys.readouterr().out
        assert "Average FPS: 0" in out
        assert "Frames written: 0" in out

    def test_missing_config_exits(self, tmp_path):
        with pytest.raises(SystemExit) as excinfo:
            main(['--config', str(tmp_path / 'missing.toml')])
        assert excinfo.value.code == 1

    def test_refused_server_exits(self, refused_port):
        with pytest.raises(SystemExit) as excinfo:
            main(['--server', '127.0.0.1', '--port', str(refused_port), '--duration', '0'])
        assert excinfo.value.code == 1

    def test_rejected_setup_exits(self, rtsp_server):
        rtsp_server.fail('SETUP', 404, 'Not Found')
        with pytest.raises(SystemExit):
            main(['--server', rtsp_server.host, '--port', str(rtsp_server.port),
                  '--duration', '0'])
        assert rtsp_server.methods == ['SETUP']

    @pytest.mark.parametrize("option", [['--port', '70000'], ['--port', '0']])
    def test_invalid_override_exits(self, option, capsys):
        with pytest.raises(SystemExit) as excinfo:
            main(option + ['--duration', '0'])

        assert excinfo.value.code == 1
        assert "Invalid option" in capsys.readouterr().out
