"""
Tests for the command-line interface.
"""

import json

import pytest

from dupescan.cli import main
from dupescan.cli.arg_parser import parse_arguments

from conftest import CHANNEL, png_bytes


@pytest.fixture
def export_dir(temp_dir):
    """Telegram Desktop export with two identical photos and a text post."""
    directory = temp_dir / "export"
    (directory / "photos").mkdir(parents=True)
    same = png_bytes('checker')
    (directory / "photos" / "one.png").write_bytes(same)
    (directory / "photos" / "three.png").write_bytes(same)
    data = {
        'name': 'Exported channel',
        'type': 'private_channel',
        'id': 1234567890,
        'messages': [
            {'id': 1, 'type': 'message', 'date_unixtime': '1700000001', 'photo': 'photos/one.png'},
            {'id': 2, 'type': 'message', 'date_unixtime': '1700000002', 'text': 'no image'},
            {'id': 3, 'type': 'message', 'date_unixtime': '1700000003', 'photo': 'photos/three.png'},
        ],
    }
    (directory / "result.json").write_text(json.dumps(data), encoding='utf-8')
    return directory


@pytest.fixture
def cli_paths(temp_dir):
    return {
        'db': str(temp_dir / "store" / "images.db"),
        'reports': temp_dir / "reports",
    }


def run_export_scan(export_dir, cli_paths, *extra):
    return main([
        'scan',
        '--method', 'export',
        '--export-path', str(export_dir),
        '--db', cli_paths['db'],
        '--report-dir', str(cli_paths['reports']),
        '--cooldown', '0',
        *extra,
    ])


class TestArgumentParsing:
    """Test argument parsing."""

    def test_scan_defaults(self):
        args = parse_arguments(['scan', '@mychannel'])
        assert args.command == 'scan'
        assert args.channel == '@mychannel'
        assert args.method == 'auto'
        assert args.batch_size is None

    def test_scan_options(self):
        args = parse_arguments([
            'scan', '--method', 'history', '--threshold', '5', '--mode', 'lightweight',
            '--hash-method', 'dhash', '--max-messages', '50',
        ])
        assert args.method == 'history'
        assert args.similarity_threshold_percent == 5.0
        assert args.ingestion_mode == 'lightweight'
        assert args.hash_method == 'dhash'
        assert args.max_messages == 50

    def test_command_required(self):
        with pytest.raises(SystemExit):
            parse_arguments([])

    def test_invalid_method(self):
        with pytest.raises(SystemExit):
            parse_arguments(['scan', '--method', 'pigeon'])


class TestScanCommand:
    """Test the scan command end to end on an offline export."""

    def test_export_scan(self, isolated_config, export_dir, cli_paths, capsys):
        assert run_export_scan(export_dir, cli_paths) == 0

        report_file = cli_paths['reports'] / "duplicates_report.json"
        report = json.loads(report_file.read_text(encoding='utf-8'))
        assert report['channelInfo']['id'] == CHANNEL
        assert report['stats']['totalMessages'] == 3
        assert report['stats']['processedImages'] == 2
        assert report['stats']['duplicateGroups'] == 1
        group = report['duplicateGroups'][0]
        assert group['original']['messageId'] == 1
        assert group['duplicates'][0]['link'] == "https://t.me/c/1234567890/3"

        out = capsys.readouterr().out
        assert "SCAN COMPLETED" in out
        assert "Images processed:  2" in out

    def test_export_scan_lightweight(self, isolated_config, export_dir, cli_paths):
        assert run_export_scan(export_dir, cli_paths, '--mode', 'lightweight') == 0
        report = json.loads((cli_paths['reports'] / "duplicates_report.json").read_text(encoding='utf-8'))
        # Different file paths, so metadata signatures do not match
        assert report['stats']['duplicateGroups'] == 0

    def test_export_requires_path(self, isolated_config, cli_paths):
        assert main(['scan', '--method', 'export', '--db', cli_paths['db']]) == 1

    def test_no_credentials(self, isolated_config, cli_paths):
        assert main(['scan', '@mychannel', '--db', cli_paths['db']]) == 1

    def test_invalid_settings(self, isolated_config, cli_paths):
        assert main(['scan', '@mychannel', '--batch-size', '0', '--db', cli_paths['db']]) == 1


class TestStoreCommands:
    """Test report and stats on a populated store."""

    def test_report_stdout(self, isolated_config, export_dir, cli_paths, capsys):
        run_export_scan(export_dir, cli_paths)
        capsys.readouterr()

        assert main([
            'report', CHANNEL, '--provenance', 'channel_scan_export', '--stdout', '--db', cli_paths['db'],
        ]) == 0

        report = json.loads(capsys.readouterr().out)
        assert report['stats']['duplicateGroups'] == 1
        assert report['stats']['processedImages'] == 2

    def test_report_file(self, isolated_config, export_dir, cli_paths, temp_dir):
        run_export_scan(export_dir, cli_paths)
        out_dir = temp_dir / "rebuilt"

        assert main(['report', '--db', cli_paths['db'], '--report-dir', str(out_dir)]) == 0
        assert (out_dir / "duplicates_report.json").exists()

    def test_stats(self, isolated_config, export_dir, cli_paths, capsys):
        run_export_scan(export_dir, cli_paths)
        capsys.readouterr()

        assert main(['stats', '--db', cli_paths['db']]) == 0
        out = capsys.readouterr().out
        assert "Records:           2" in out
        assert "channel_scan_export: 2" in out

    def test_stats_vacuum(self, isolated_config, export_dir, cli_paths, capsys):
        run_export_scan(export_dir, cli_paths)
        capsys.readouterr()

        assert main(['stats', '--vacuum', '--db', cli_paths['db']]) == 0
        out = capsys.readouterr().out
        assert "Records:           2" in out
        assert " KB" in out


class TestConfigCommand:
    """Test the config command."""

    def test_show(self, isolated_config, capsys):
        assert main(['config']) == 0
        out = capsys.readouterr().out
        assert "Not found" in out
        assert "hash_method: phash" in out

    def test_init(self, isolated_config, capsys):
        assert main(['config', '--init']) == 0
        assert isolated_config.config_file_path.exists()
