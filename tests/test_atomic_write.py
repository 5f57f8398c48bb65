"""Tests for atomic write utilities."""

import json
from unittest.mock import patch

import pytest

from placebook.atomic_write import atomic_json_write, atomic_text_write


class TestAtomicJsonWrite:
    """Test atomic_json_write function."""

    def test_basic_write(self, tmp_path):
        target = tmp_path / "flowers.json"
        data = [{"id": "flower_1", "latitude": 1.0}]
        atomic_json_write(target, data)
        assert json.loads(target.read_text()) == data

    def test_write_with_indent(self, tmp_path):
        target = tmp_path / "flowers.json"
        atomic_json_write(target, {"a": 1}, indent=2)
        assert "  " in target.read_text()

    def test_overwrites_existing(self, tmp_path):
        target = tmp_path / "flowers.json"
        target.write_text("[1, 2, 3]")
        atomic_json_write(target, [])
        assert json.loads(target.read_text()) == []

    def test_creates_parent_directories(self, tmp_path):
        target = tmp_path / "server" / "data" / "flowers.json"
        atomic_json_write(target, [])
        assert target.exists()

    def test_unserializable_never_touches_disk(self, tmp_path):
        target = tmp_path / "flowers.json"
        target.write_text('{"original": true}')

        with pytest.raises(TypeError):
            atomic_json_write(target, {"bad": object()})

        assert json.loads(target.read_text()) == {"original": True}
        assert not (tmp_path / "flowers.json.tmp").exists()


class TestAtomicTextWrite:

    def test_no_tmp_file_on_success(self, tmp_path):
        target = tmp_path / "gpsFlowers.json"
        atomic_text_write(target, "[]")
        assert target.read_text() == "[]"
        assert list(tmp_path.iterdir()) == [target]

    def test_preserves_original_when_rename_fails(self, tmp_path):
        target = tmp_path / "gpsFlowers.json"
        target.write_text("old")

        with patch("pathlib.Path.replace", side_effect=OSError("disk full")):
            with pytest.raises(OSError):
                atomic_text_write(target, "new")

        assert target.read_text() == "old"
        assert not (tmp_path / "gpsFlowers.json.tmp").exists()
