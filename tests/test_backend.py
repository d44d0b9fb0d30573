"""Tests for the file-backed collection of envelopes."""

import json
import logging

import pytest

from custodial_wallet.storage.backend import CollectionFile
from custodial_wallet.storage.errors import DuplicateKeyError, StoreIOError

BACKEND_LOGGER = "custodial_wallet.storage.backend"


def _line(cipher, record_id, doc):
    return json.dumps({"_id": record_id, "encryptedData": cipher.encrypt(doc)})


class TestCollectionFileLoad:

    def test_creates_missing_file_and_dirs(self, tmp_path, cipher):
        path = tmp_path / "nested" / "dir" / "wallet.db"
        coll = CollectionFile(path, cipher)
        assert path.exists()
        assert path.read_text() == ""
        assert len(coll) == 0
        assert coll.name == "wallet"

    def test_corrupted_line_is_skipped_with_one_warning(self, tmp_path, cipher, caplog):
        path = tmp_path / "wallet.db"
        path.write_text(
            _line(cipher, "r1", {"id": "a"}) + "\n"
            + "this is not a record\n"
            + _line(cipher, "r3", {"id": "c"}) + "\n"
        )

        with caplog.at_level(logging.WARNING):
            coll = CollectionFile(path, cipher)

        assert len(coll) == 2
        assert "a" in coll and "c" in coll
        warnings = [r for r in caplog.records if r.levelno >= logging.WARNING]
        assert len(warnings) == 1
        assert warnings[0].name == BACKEND_LOGGER
        assert ":2:" in warnings[0].getMessage()

    def test_undecryptable_envelope_is_skipped(self, tmp_path, cipher, caplog):
        path = tmp_path / "wallet.db"
        path.write_text(
            json.dumps({"_id": "r1", "encryptedData": "00" * 16 + ":" + "ab" * 16}) + "\n"
            + _line(cipher, "r2", {"id": "ok"}) + "\n"
        )
        with caplog.at_level(logging.DEBUG):
            coll = CollectionFile(path, cipher)
        assert len(coll) == 1
        assert coll.lookup("ok")[0] == "r2"

        warnings = [r for r in caplog.records if r.levelno >= logging.WARNING]
        assert [r.name for r in warnings] == [BACKEND_LOGGER]
        assert "cannot decrypt" in warnings[0].getMessage()

    def test_blank_lines_are_ignored(self, tmp_path, cipher, caplog):
        path = tmp_path / "wallet.db"
        path.write_text("\n\n" + _line(cipher, "r1", {"id": "a"}) + "\n\n")
        with caplog.at_level(logging.WARNING):
            coll = CollectionFile(path, cipher)
        assert len(coll) == 1
        assert not [r for r in caplog.records if r.name == BACKEND_LOGGER]

    def test_duplicate_on_disk_keeps_first(self, tmp_path, cipher):
        path = tmp_path / "wallet.db"
        path.write_text(
            _line(cipher, "r1", {"id": "a", "v": 1}) + "\n"
            + _line(cipher, "r2", {"id": "a", "v": 2}) + "\n"
        )
        coll = CollectionFile(path, cipher)
        record_id, envelope = coll.lookup("a")
        assert record_id == "r1"
        assert cipher.decrypt(envelope)["v"] == 1


class TestCollectionFileMutations:

    @pytest.mark.asyncio
    async def test_insert_persists_envelopes_only(self, tmp_path, cipher):
        path = tmp_path / "wallet.db"
        coll = CollectionFile(path, cipher)
        record_id = await coll.insert(cipher.encrypt({"id": "a", "secret": "hunter2"}), "a")

        text = path.read_text()
        assert "hunter2" not in text
        lines = text.splitlines()
        assert len(lines) == 1
        raw = json.loads(lines[0])
        assert raw["_id"] == record_id
        assert cipher.decrypt(raw["encryptedData"]) == {"id": "a", "secret": "hunter2"}

    @pytest.mark.asyncio
    async def test_duplicate_insert_raises(self, tmp_path, cipher):
        coll = CollectionFile(tmp_path / "wallet.db", cipher)
        await coll.insert(cipher.encrypt({"id": "a"}), "a")
        with pytest.raises(DuplicateKeyError) as exc_info:
            await coll.insert(cipher.encrypt({"id": "a"}), "a")
        assert "Duplicate identifier" in str(exc_info.value)
        assert len(coll) == 1

    @pytest.mark.asyncio
    async def test_reopen_sees_committed_records(self, tmp_path, cipher):
        path = tmp_path / "wallet.db"
        coll = CollectionFile(path, cipher)
        for key in ("a", "b", "c"):
            await coll.insert(cipher.encrypt({"id": key}), key)
        await coll.remove([coll.lookup("b")[0]])

        reopened = CollectionFile(path, cipher)
        assert len(reopened) == 2
        assert [cipher.decrypt(env)["id"] for _, env in reopened.envelopes()] == ["a", "c"]

    @pytest.mark.asyncio
    async def test_unreadable_lines_survive_resync(self, tmp_path, cipher):
        path = tmp_path / "wallet.db"
        path.write_text("garbage line\n")
        coll = CollectionFile(path, cipher)

        await coll.insert(cipher.encrypt({"id": "a"}), "a")

        lines = path.read_text().splitlines()
        assert "garbage line" in lines
        assert len(lines) == 2

    @pytest.mark.asyncio
    async def test_replace_reindexes(self, tmp_path, cipher):
        coll = CollectionFile(tmp_path / "wallet.db", cipher)
        rid = await coll.insert(cipher.encrypt({"id": "a"}), "a")
        other = await coll.insert(cipher.encrypt({"id": "b"}), "b")

        await coll.replace(rid, cipher.encrypt({"id": "z"}), "z")
        assert "a" not in coll
        assert coll.lookup("z")[0] == rid

        with pytest.raises(DuplicateKeyError):
            await coll.replace(rid, cipher.encrypt({"id": "b"}), "b")
        assert coll.lookup("b")[0] == other

    @pytest.mark.asyncio
    async def test_remove_unknown_ids_is_noop(self, tmp_path, cipher):
        coll = CollectionFile(tmp_path / "wallet.db", cipher)
        assert await coll.remove(["nope"]) == 0

    @pytest.mark.asyncio
    async def test_write_failure_raises_store_io_error(self, tmp_path, cipher, monkeypatch):
        coll = CollectionFile(tmp_path / "wallet.db", cipher)

        def _fail(payload):
            raise PermissionError("read-only filesystem")

        monkeypatch.setattr(coll, "_write", _fail)
        with pytest.raises(StoreIOError):
            await coll.insert(cipher.encrypt({"id": "a"}), "a")

    @pytest.mark.asyncio
    async def test_replace_missing_record_returns_false(self, tmp_path, cipher):
        coll = CollectionFile(tmp_path / "wallet.db", cipher)
        assert await coll.replace("gone", cipher.encrypt({"id": "a"}), "a") is False
        assert len(coll) == 0

    @pytest.mark.asyncio
    async def test_update_transforms_under_lock(self, tmp_path, cipher):
        coll = CollectionFile(tmp_path / "wallet.db", cipher)
        rid = await coll.insert(cipher.encrypt({"id": "a", "n": 1}), "a")

        def bump(envelope):
            doc = cipher.decrypt(envelope)
            doc["n"] += 1
            return cipher.encrypt(doc), doc["id"]

        assert await coll.update("a", bump) is True
        assert await coll.update("missing", bump) is False
        assert await coll.update("a", lambda envelope: None) is False
        assert coll.lookup("a")[0] == rid
        assert cipher.decrypt(coll.lookup("a")[1])["n"] == 2

    @pytest.mark.asyncio
    async def test_remove_key_and_matching(self, tmp_path, cipher):
        coll = CollectionFile(tmp_path / "wallet.db", cipher)
        for key in ("a", "b", "c"):
            await coll.insert(cipher.encrypt({"id": key}), key)

        assert await coll.remove_key("a") == 1
        assert await coll.remove_key("a") == 0
        assert await coll.remove_matching(lambda e: cipher.decrypt(e)["id"] == "b") == 1
        assert "c" in coll and len(coll) == 1
        assert len(CollectionFile(coll.path, cipher)) == 1

    @pytest.mark.asyncio
    async def test_reload_reads_file_again(self, tmp_path, cipher):
        path = tmp_path / "wallet.db"
        coll = CollectionFile(path, cipher)
        await CollectionFile(path, cipher).insert(cipher.encrypt({"id": "x"}), "x")

        assert "x" not in coll
        await coll.reload()
        assert "x" in coll
