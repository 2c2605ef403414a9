"""Tests for snapshot serialization and persistence."""

from __future__ import annotations

import json
import re
from pathlib import Path

import pytest

from blockdoc import (
    BlockTypeConfig,
    Configuration,
    Document,
    DocumentSnapshot,
    InvalidBlockDataError,
    MalformedSnapshotError,
    SnapshotIOError,
    UnknownBlockTypeError,
    deserialize_document,
    load_snapshot,
    save_snapshot,
    serialize_document,
)
from blockdoc.serialization import read_text, write_text_atomic


class TestSerializeDocument:
    """Tests for serialize_document."""

    def test_snapshot_structure(self, populated: Document) -> None:
        """Test the persisted format."""
        data = json.loads(serialize_document(populated))

        assert data["format_version"] == 1
        assert [block["id"] for block in data["blocks"]] == populated.ids()
        assert data["blocks"][0] == {"id": populated.ids()[0], "type": "text", "raw_data": {"content": "one"}}
        assert "configuration_metadata" not in data

    def test_render_output_never_persisted(self, populated: Document) -> None:
        """Test that cached render output is not part of the snapshot."""
        populated.render_cache.store(populated.ids()[0], "<p>one</p>", populated.configuration.version)

        text = serialize_document(populated)

        assert "render" not in text
        assert "<p>" not in text

    def test_configuration_metadata(self, config_factory) -> None:
        """Test that declarative metadata is included on request."""
        config = config_factory(metadata={"image": {"label": "Image"}})
        document = Document(config)

        data = json.loads(serialize_document(document, include_configuration_metadata=True))

        assert data["configuration_metadata"] == {"image": {"label": "Image"}}

    def test_non_json_data(self, document: Document) -> None:
        """Test that data that cannot be encoded raises MalformedSnapshotError."""
        document.configuration.register("image", BlockTypeConfig())
        document.append("image", {"url": object()})

        with pytest.raises(MalformedSnapshotError):
            serialize_document(document)

    @pytest.mark.parametrize(
        ("raw_data", "location"),
        [
            ({"url": "a", "size": (1, 2)}, "raw_data.size"),
            ({"url": "a", "labels": {1: "x"}}, "raw_data.labels"),
            ({"url": "a", "tags": [["ok"], {"b"}]}, "raw_data.tags[1]"),
        ],
    )
    def test_data_json_cannot_round_trip(self, document: Document, raw_data: dict, location: str) -> None:
        """Test that tuples, sets and non-string keys are refused instead of silently altered."""
        document.configuration.register("image", BlockTypeConfig())
        document.append("image", raw_data)

        with pytest.raises(MalformedSnapshotError, match=re.escape(location)):
            serialize_document(document)


class TestDeserializeDocument:
    """Tests for deserialize_document."""

    def test_round_trip(self, populated: Document) -> None:
        """Test that serialize then deserialize reproduces the pairs and ids."""
        populated.append("image", {"url": "a", "alt": "b"})

        restored = deserialize_document(serialize_document(populated), populated.configuration)

        assert restored.pairs() == populated.pairs()
        assert restored.ids() == populated.ids()
        assert restored.history.can_undo is False

    def test_round_trip_reassigning_ids(self, populated: Document) -> None:
        """Test the round trip with fresh ids."""
        restored = deserialize_document(
            serialize_document(populated), populated.configuration, preserve_ids=False
        )

        assert restored.pairs() == populated.pairs()
        assert set(restored.ids()).isdisjoint(populated.ids())

    def test_round_trip_unicode(self, document: Document) -> None:
        """Test that non-ASCII text survives the round trip."""
        document.append("text", {"content": "Grüße, 世界"})

        restored = deserialize_document(serialize_document(document), document.configuration)

        assert restored.get(0).raw_data == {"content": "Grüße, 世界"}

    @pytest.mark.parametrize(
        "text",
        [
            "not json",
            "[]",
            '{"blocks": []}',
            '{"format_version": "1", "blocks": []}',
            '{"format_version": 99, "blocks": []}',
            '{"format_version": 1, "blocks": {}}',
            '{"format_version": 1, "blocks": [1]}',
            '{"format_version": 1, "blocks": [{"type": "text", "raw_data": {}}]}',
            '{"format_version": 1, "blocks": [{"id": "a", "raw_data": {}}]}',
            '{"format_version": 1, "blocks": [{"id": "a", "type": "text"}]}',
            '{"format_version": 1, "blocks": [], "configuration_metadata": []}',
        ],
    )
    def test_malformed(self, config: Configuration, text: str) -> None:
        """Test structurally invalid snapshots."""
        with pytest.raises(MalformedSnapshotError):
            deserialize_document(text, config)

    def test_duplicate_ids(self, config: Configuration) -> None:
        """Test that repeated ids make the snapshot malformed."""
        block = {"id": "a", "type": "text", "raw_data": {"content": "x"}}
        text = json.dumps({"format_version": 1, "blocks": [block, block]})

        with pytest.raises(MalformedSnapshotError, match="duplicate block id"):
            deserialize_document(text, config)

    def test_unknown_type(self, config: Configuration) -> None:
        """Test that a stored type missing from the schema is rejected."""
        text = json.dumps(
            {"format_version": 1, "blocks": [{"id": "a", "type": "video", "raw_data": {}}]}
        )

        with pytest.raises(UnknownBlockTypeError):
            deserialize_document(text, config)

    def test_invalid_data(self, config: Configuration) -> None:
        """Test that stored data rejected by the validator fails."""
        text = json.dumps(
            {"format_version": 1, "blocks": [{"id": "a", "type": "text", "raw_data": {"content": 7}}]}
        )

        with pytest.raises(InvalidBlockDataError):
            deserialize_document(text, config)


class TestDocumentSnapshot:
    """Tests for the DocumentSnapshot dataclass."""

    def test_capture_and_to_document(self, populated: Document) -> None:
        """Test capturing and rebuilding a document."""
        snapshot = DocumentSnapshot.capture(populated)

        rebuilt = snapshot.to_document(populated.configuration)

        assert rebuilt.pairs() == populated.pairs()

    def test_from_dict(self) -> None:
        """Test building a snapshot from a dictionary."""
        snapshot = DocumentSnapshot.from_dict(
            {
                "format_version": 1,
                "blocks": [{"id": "a", "type": "text", "raw_data": {"content": "x"}}],
                "configuration_metadata": {"text": {"label": "Text"}},
            }
        )

        assert snapshot.blocks[0].id == "a"
        assert snapshot.configuration_metadata == {"text": {"label": "Text"}}
        assert snapshot.to_dict()["configuration_metadata"] == {"text": {"label": "Text"}}


class TestSnapshotFiles:
    """Tests for async snapshot persistence."""

    async def test_save_and_load(self, populated: Document, temp_dir: Path) -> None:
        """Test saving a snapshot and loading it back."""
        path = temp_dir / "docs" / "snapshot.json"

        await save_snapshot(path, populated)
        restored = await load_snapshot(path, populated.configuration)

        assert restored is not None
        assert restored.pairs() == populated.pairs()
        assert restored.ids() == populated.ids()
        assert not list(path.parent.glob(".tmp_*"))

    async def test_load_missing_file(self, config: Configuration, temp_dir: Path) -> None:
        """Test that a missing snapshot file loads as None."""
        assert await load_snapshot(temp_dir / "missing.json", config) is None

    async def test_write_text_atomic_overwrites(self, temp_dir: Path) -> None:
        """Test that atomic writes replace existing content."""
        path = temp_dir / "file.json"

        await write_text_atomic(path, "first")
        await write_text_atomic(path, "second")

        assert await read_text(path) == "second"

    async def test_write_into_file_path_fails(self, temp_dir: Path) -> None:
        """Test that an unwritable target raises SnapshotIOError."""
        blocker = temp_dir / "blocker"
        blocker.write_text("not a directory")

        with pytest.raises(SnapshotIOError):
            await write_text_atomic(blocker / "snapshot.json", "{}")
