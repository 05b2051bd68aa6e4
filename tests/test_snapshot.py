"""
Tests for snapshot file reading and atomic replacement.
"""
import os
import stat
from datetime import date
from unittest.mock import patch

import pytest
from options_iv_repair.data.snapshot import SnapshotLines, atomic_write, snapshot_date, snapshot_path


def test_snapshot_date():
    assert snapshot_date('/data/spy/20240102.csv') == date(2024, 1, 2)
    assert snapshot_date('/data/spy/notes.csv') is None


def test_snapshot_path():
    assert snapshot_path('/data/spy', date(2024, 1, 2)) == os.path.join('/data/spy', '20240102.csv')


def test_blank_lines_are_dropped(temp_dir):
    path = os.path.join(temp_dir, '20240102.csv')
    with open(path, 'w') as f:
        f.write("a,b\n\n1,2\n   \n3,4\n")
    snapshot = SnapshotLines.read(path)
    assert snapshot.lines == ['a,b', '1,2', '3,4']
    assert snapshot.locate(['b']) == {'b': 1}
    assert snapshot.locate(['b', 'c']) is None


def test_atomic_write_keeps_permissions(temp_dir):
    path = os.path.join(temp_dir, '20240102.csv')
    with open(path, 'w') as f:
        f.write("old\n")
    os.chmod(path, 0o640)

    atomic_write(path, "new\n")

    with open(path) as f:
        assert f.read() == "new\n"
    assert stat.S_IMODE(os.stat(path).st_mode) == 0o640
    assert os.listdir(temp_dir) == ['20240102.csv']


def test_failed_write_keeps_original(temp_dir):
    path = os.path.join(temp_dir, '20240102.csv')
    with open(path, 'w') as f:
        f.write("old\n")

    with patch('options_iv_repair.data.snapshot.os.replace', side_effect=OSError("disk full")):
        with pytest.raises(OSError):
            atomic_write(path, "new\n")

    with open(path) as f:
        assert f.read() == "old\n"
    assert os.listdir(temp_dir) == ['20240102.csv']
