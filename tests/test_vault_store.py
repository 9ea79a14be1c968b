"""
Tests for the Vault store.

Covers:
- CRUD validation order and bounds
- Reordering and search
- fill() over every result
- save() verification, fallback write and state adoption
"""

import base64

import pytest

from passtable.core.config import VaultConfig
from passtable.core.crypto import encrypt
from passtable.core.vault import (
    CURRENT_FILE_VERSION,
    ErrorKind,
    FillResult,
    ItemResult,
    RecordView,
    SaveResult,
    TagColor,
    Vault,
    parse_records,
    serialize_records,
)
from passtable.core.vault.record import Record
from passtable.core.vault.store import CorruptPayloadError


def _file_content(payload: str, passphrase: str) -> str:
    return CURRENT_FILE_VERSION.char + encrypt(payload.encode("utf-8"), passphrase)


@pytest.fixture
def filled(new_vault):
    new_vault.add("1", "mail", "bob@example.com", "secret")
    new_vault.add("0", "wifi at home", "", "")
    new_vault.add("3", "", "alice", "hunter2")
    return new_vault


class TestPayload:
    def test_serialize(self):
        records = [Record("1", "mail", "bob", "pw"), Record("0", "note", "", "")]
        assert serialize_records(records) == "1\tmail\tbob\tpw\n0\tnote\t\t"

    def test_serialize_empty(self):
        assert serialize_records([]) == "/emptyCollection"

    def test_parse_empty_sentinel(self):
        assert parse_records("/emptyCollection") == []

    def test_parse_keeps_empty_fields(self):
        [record] = parse_records("0\tnote\t\t")
        assert (record.tag, record.note, record.username, record.password) == ("0", "note", "", "")

    @pytest.mark.parametrize("payload", ["", "1\tmail\tbob", "1\tmail\tbob\tpw\textra"])
    def test_parse_wrong_field_count(self, payload):
        with pytest.raises(CorruptPayloadError):
            parse_records(payload)


class TestAdd:
    def test_add(self, new_vault):
        assert new_vault.add("1", "mail", "bob", "secret") is ItemResult.SUCCESS
        assert new_vault.size == 1
        assert new_vault.is_dirty

    def test_control_chars(self, new_vault):
        assert new_vault.add("1", "a\tb", "bob", "secret") is ItemResult.INVALID_CHARACTERS

    def test_empty_item(self, new_vault):
        assert new_vault.add("1", "", "bob", "") is ItemResult.EMPTY_ITEM

    def test_invalid_tag(self, new_vault):
        assert new_vault.add("7", "mail", "", "") is ItemResult.INVALID_TAG

    def test_unencodable_text(self, new_vault):
        assert new_vault.add("1", "mail\ud800", "bob", "pw") is ItemResult.INVALID_CHARACTERS
        assert new_vault.size == 0

    def test_characters_checked_before_tag(self, new_vault):
        assert new_vault.add("7", "a\nb", "", "") is ItemResult.INVALID_CHARACTERS

    def test_failure_leaves_vault_unchanged(self, new_vault):
        new_vault.add("9", "mail", "", "")
        assert new_vault.size == 0
        assert new_vault.is_saved


class TestUpdate:
    def test_set_fields(self, filled):
        assert filled.set_tag(0, "5") is ItemResult.SUCCESS
        assert filled.set_note(0, "work mail") is ItemResult.SUCCESS
        assert filled.set_username(0, "robert") is ItemResult.SUCCESS
        assert filled.set_password(0, "n3w") is ItemResult.SUCCESS
        assert filled.get_all()[0] == RecordView("5", "work mail", "robert", True)
        assert filled.get_password(0) == "n3w"

    def test_set_note_would_empty_item(self, filled):
        assert filled.set_note(1, "") is ItemResult.EMPTY_ITEM
        assert filled.get_note(1) == "wifi at home"

    def test_set_password_empty_with_note_ok(self, filled):
        assert filled.set_password(0, "") is ItemResult.SUCCESS
        assert filled.get_all()[0].has_password is False

    def test_set_password_empty_without_note(self, filled):
        assert filled.set_password(2, "") is ItemResult.EMPTY_ITEM

    def test_out_of_bounds(self, filled):
        assert filled.set_tag(3, "1") is ItemResult.OUT_OF_BOUNDS
        assert filled.set_note(-1, "x") is ItemResult.OUT_OF_BOUNDS

    def test_field_checked_before_bounds(self, filled):
        assert filled.set_tag(99, "x") is ItemResult.INVALID_TAG
        assert filled.set_username(99, "a\x00") is ItemResult.INVALID_CHARACTERS

    def test_unencodable_text(self, filled):
        assert filled.set_note(0, "\ud800") is ItemResult.INVALID_CHARACTERS
        assert filled.set_password(0, "pw\udfff") is ItemResult.INVALID_CHARACTERS
        assert filled.set_data(0, "1", "mail", "bob\ud800", "pw") is ItemResult.INVALID_CHARACTERS
        assert filled.get_all()[0] == RecordView("1", "mail", "bob@example.com", True)

    def test_set_data(self, filled):
        assert filled.set_data(1, "2", "router", "admin", "pw") is ItemResult.SUCCESS
        assert filled.get_all()[1] == RecordView("2", "router", "admin", True)

    def test_set_data_validates_before_bounds(self, filled):
        assert filled.set_data(99, "2", "", "", "") is ItemResult.EMPTY_ITEM
        assert filled.set_data(99, "2", "ok", "", "") is ItemResult.OUT_OF_BOUNDS

    def test_delete(self, filled):
        assert filled.delete(1) is ItemResult.SUCCESS
        assert [v.note for v in filled.get_all()] == ["mail", ""]

    def test_delete_out_of_bounds(self, filled):
        assert filled.delete(3) is ItemResult.OUT_OF_BOUNDS
        assert filled.size == 3


class TestReorder:
    def test_swap(self, filled):
        assert filled.swap_items(0, 2) is ItemResult.SUCCESS
        assert [v.tag for v in filled.get_all()] == ["3", "0", "1"]

    def test_move_forward(self, filled):
        assert filled.move_item(0, 2) is ItemResult.SUCCESS
        assert [v.tag for v in filled.get_all()] == ["0", "3", "1"]

    def test_move_backward(self, filled):
        assert filled.move_item(2, 0) is ItemResult.SUCCESS
        assert [v.tag for v in filled.get_all()] == ["3", "1", "0"]

    def test_reorder_out_of_bounds(self, filled):
        assert filled.swap_items(0, 3) is ItemResult.OUT_OF_BOUNDS
        assert filled.move_item(-1, 0) is ItemResult.OUT_OF_BOUNDS

    def test_reorder_marks_unsaved(self, filled):
        filled.save("/vaults/a.ptb", "qwerty")
        filled.swap_items(0, 1)
        assert filled.is_dirty


class TestRead:
    def test_get_all_hides_passwords(self, filled):
        views = filled.get_all()
        assert [v.has_password for v in views] == [True, False, True]
        assert all(v.position is None for v in views)
        assert not hasattr(views[0], "password")

    def test_get_field(self, filled):
        assert filled.get_field(2, "username") == "alice"
        assert filled.get_username(5) is None

    def test_get_field_unknown_name(self, filled):
        with pytest.raises(ValueError):
            filled.get_field(0, "secret")

    def test_search_by_text_ignores_case(self, filled):
        results = filled.search_by_text("MAIL")
        assert [(v.position, v.note) for v in results] == [(0, "mail")]

    def test_search_by_text_matches_username(self, filled):
        assert [v.position for v in filled.search_by_text("ali")] == [2]

    def test_search_does_not_match_password(self, filled):
        assert filled.search_by_text("hunter") == []

    def test_search_by_tag(self, filled):
        assert [v.position for v in filled.search_by_tag("3")] == [2]

    def test_search_by_tag_colors(self, filled):
        results = filled.search_by_tag_colors([TagColor.RED, 3])
        assert [v.position for v in results] == [0, 2]

    def test_search_by_unknown_color(self, filled):
        with pytest.raises(ValueError):
            filled.search_by_tag_colors([9])

    def test_repr_hides_secrets(self, filled):
        filled.save("/vaults/a.ptb", "qwerty")
        assert "qwerty" not in repr(filled)
        assert "secret" not in repr(filled)


class TestFill:
    def test_new_vault(self):
        vault = Vault()
        assert vault.fill() is FillResult.SUCCESS
        assert vault.size == 0
        assert vault.is_saved

    def test_open(self):
        content = _file_content("1\tmail\tbob\tsecret\n0\tnote\t\t", "qwerty")
        vault = Vault("/vaults/a.ptb", "qwerty", content)
        assert vault.fill() is FillResult.SUCCESS
        assert vault.size == 2
        assert vault.get_password(0) == "secret"
        assert vault.is_saved

    def test_open_empty_collection(self):
        vault = Vault("/vaults/a.ptb", "qwerty", _file_content("/emptyCollection", "qwerty"))
        assert vault.fill() is FillResult.SUCCESS
        assert vault.size == 0

    def test_open_bytes(self):
        content = _file_content("1\tmail\tbob\tsecret", "qwerty").encode("utf-8")
        vault = Vault("/vaults/a.ptb", "qwerty", content)
        assert vault.fill() is FillResult.SUCCESS

    def test_missing_ciphertext(self):
        assert Vault("/vaults/a.ptb", "qwerty", "").fill() is FillResult.MISSING_CIPHERTEXT

    @pytest.mark.parametrize("passphrase", [None, ""])
    def test_missing_passphrase(self, passphrase):
        content = _file_content("/emptyCollection", "qwerty")
        assert Vault("/vaults/a.ptb", passphrase, content).fill() is FillResult.MISSING_PASSPHRASE

    def test_unencodable_passphrase(self):
        content = _file_content("/emptyCollection", "qwerty")
        assert Vault("/vaults/a.ptb", "qw\ud800", content).fill() is FillResult.INVALID_PASSPHRASE

    def test_unsupported_version(self):
        content = "\x16" + encrypt(b"/emptyCollection", "qwerty")
        assert Vault("/vaults/a.ptb", "qwerty", content).fill() is FillResult.UNSUPPORTED_VERSION

    def test_wrong_passphrase(self):
        content = _file_content("1\tmail\tbob\tsecret", "qwerty")
        result = Vault("/vaults/a.ptb", "qwertz", content).fill()
        # Garbage that happens to unpad cleanly cannot parse as records
        assert result in (FillResult.INVALID_PASSPHRASE, FillResult.CORRUPT_DATA)

    def test_passphrase_too_long(self):
        content = _file_content("/emptyCollection", "qwerty")
        assert Vault("/vaults/a.ptb", "x" * 40, content).fill() is FillResult.INVALID_PASSPHRASE

    def test_malformed_base64(self):
        content = CURRENT_FILE_VERSION.char + "!!!"
        assert Vault("/vaults/a.ptb", "qwerty", content).fill() is FillResult.CORRUPT_DATA

    def test_version_char_only(self):
        content = CURRENT_FILE_VERSION.char
        assert Vault("/vaults/a.ptb", "qwerty", content).fill() is FillResult.CORRUPT_DATA

    def test_bad_record_layout(self):
        content = _file_content("1\tmail\tbob", "qwerty")
        assert Vault("/vaults/a.ptb", "qwerty", content).fill() is FillResult.CORRUPT_DATA

    def test_invalid_utf8(self):
        content = CURRENT_FILE_VERSION.char + encrypt(b"\xff\xfe\tx\ty\tz", "qwerty")
        assert Vault("/vaults/a.ptb", "qwerty", content).fill() is FillResult.CORRUPT_DATA

    def test_failed_fill_keeps_records(self, filled):
        filled.save("/vaults/a.ptb", "qwerty")
        bad = Vault("/vaults/a.ptb", "qwerty", CURRENT_FILE_VERSION.char + "!!!")
        assert bad.fill() is FillResult.CORRUPT_DATA
        assert bad.size == 0
        assert filled.size == 3

    def test_result_kinds(self):
        assert FillResult.INVALID_PASSPHRASE.kind is ErrorKind.CRYPTO
        assert FillResult.CORRUPT_DATA.kind is ErrorKind.FORMAT
        assert FillResult.SUCCESS.kind is None


class TestSave:
    def test_no_path(self, filled):
        assert filled.save() is SaveResult.NO_PATH

    def test_no_passphrase(self, filled):
        assert filled.save("/vaults/a.ptb") is SaveResult.NO_PASSPHRASE

    def test_save_and_reopen(self, filled, writer):
        assert filled.save("/vaults/a.ptb", "qwerty") is SaveResult.SUCCESS
        assert filled.is_saved
        assert filled.path == "/vaults/a.ptb"

        content = writer.files["/vaults/a.ptb"]
        assert content[0] == "\x15"
        assert content == filled.encrypted_data

        reopened = Vault("/vaults/a.ptb", "qwerty", content)
        assert reopened.fill() is FillResult.SUCCESS
        assert reopened.get_all() == filled.get_all()
        assert reopened.get_password(2) == "hunter2"

    def test_save_empty_vault(self, new_vault, writer):
        assert new_vault.save("/vaults/empty.ptb", "qwerty") is SaveResult.SUCCESS
        reopened = Vault("/vaults/empty.ptb", "qwerty", writer.files["/vaults/empty.ptb"])
        assert reopened.fill() is FillResult.SUCCESS
        assert reopened.size == 0

    def test_save_reuses_path_and_passphrase(self, filled, writer):
        filled.save("/vaults/a.ptb", "qwerty")
        filled.add("4", "bank", "", "")
        assert filled.save() is SaveResult.SUCCESS
        assert writer.calls == ["/vaults/a.ptb", "/vaults/a.ptb"]

        reopened = Vault("/vaults/a.ptb", "qwerty", writer.files["/vaults/a.ptb"])
        reopened.fill()
        assert reopened.size == 4

    def test_save_as_changes_passphrase(self, filled, writer):
        filled.save("/vaults/a.ptb", "qwerty")
        filled.save("/vaults/b.ptb", "asdfgh")
        assert filled.path == "/vaults/b.ptb"

        reopened = Vault("/vaults/b.ptb", "asdfgh", writer.files["/vaults/b.ptb"])
        assert reopened.fill() is FillResult.SUCCESS

    def test_encryption_failure(self, filled, writer):
        assert filled.save("/vaults/a.ptb", "y" * 33) is SaveResult.ENCRYPTION_FAILED
        assert writer.calls == []
        assert filled.path is None
        assert filled.is_dirty

    def test_empty_passphrase_fails_encryption(self, filled):
        assert filled.save("/vaults/a.ptb", "") is SaveResult.ENCRYPTION_FAILED

    def test_unencodable_passphrase(self, filled, writer):
        assert filled.save("/vaults/a.ptb", "qw\ud800") is SaveResult.ENCRYPTION_FAILED
        assert writer.calls == []

    def test_unencodable_payload(self, filled, writer, monkeypatch):
        import passtable.core.vault.store as store_mod

        monkeypatch.setattr(store_mod, "serialize_records", lambda records: "mail\ud800")
        assert filled.save("/vaults/a.ptb", "qwerty") is SaveResult.ENCRYPTION_FAILED
        assert writer.calls == []
        assert filled.is_dirty

    def test_verification_failure(self, filled, writer, monkeypatch):
        import passtable.core.vault.store as store_mod

        monkeypatch.setattr(store_mod.aes_cbc, "decrypt", lambda blob, passphrase: b"tampered")
        assert filled.save("/vaults/a.ptb", "qwerty") is SaveResult.VERIFICATION_FAILED
        assert writer.calls == []
        assert filled.is_dirty

    def test_fallback_write(self, make_writer):
        writer = make_writer(fail_on={"/locked/work.ptb"})
        vault = Vault(writer=writer)
        vault.fill()
        vault.add("1", "mail", "bob", "secret")

        assert vault.save("/locked/work.ptb", "qwerty") is SaveResult.SAVED_TO_FALLBACK
        assert writer.calls == ["/locked/work.ptb", "work.passtable"]
        assert vault.path == "work.passtable"
        assert vault.is_saved

    def test_fallback_dir_from_config(self, make_writer, tmp_path):
        writer = make_writer(fail_on={"/locked/work.ptb"})
        vault = Vault(writer=writer, config=VaultConfig(fallback_dir=tmp_path))
        vault.fill()
        vault.add("0", "note", "", "")

        assert vault.save("/locked/work.ptb", "qwerty") is SaveResult.SAVED_TO_FALLBACK
        assert vault.path == str(tmp_path / "work.passtable")

    def test_both_writes_fail(self, make_writer):
        writer = make_writer(fail_on={"*"})
        vault = Vault(writer=writer)
        vault.fill()
        vault.add("0", "note", "", "")

        assert vault.save("/locked/work.ptb", "qwerty") is SaveResult.WRITE_FAILED
        assert SaveResult.WRITE_FAILED.kind is ErrorKind.IO
        assert vault.path is None
        assert vault.is_dirty
        assert not vault.has_passphrase

    def test_default_writer_writes_file(self, tmp_path):
        vault = Vault()
        vault.fill()
        vault.add("2", "router", "admin", "pw")
        target = tmp_path / "router.ptb"

        assert vault.save(str(target), "qwerty") is SaveResult.SUCCESS
        content = target.read_text(encoding="utf-8")
        assert content[0] == "\x15"
        base64.b64decode(content[1:], validate=True)


class TestScenarios:
    def test_empty_vault_save_and_reopen(self, tmp_path):
        target = str(tmp_path / "v.ptb")
        vault = Vault()
        vault.fill()
        assert vault.save(target, "abc") is SaveResult.SUCCESS

        with open(target, "rb") as f:
            raw = f.read()
        reopened = Vault(target, "abc", raw)
        assert reopened.fill() is FillResult.SUCCESS
        assert reopened.size == 0
        assert reopened.is_saved

    def test_credential_pair_admitted_bad_tag_rejected(self, new_vault):
        assert new_vault.add("1", "", "bob", "secret") is ItemResult.SUCCESS

        result = new_vault.add("9", "", "bob", "secret")
        assert result is ItemResult.INVALID_TAG
        assert result.kind is ErrorKind.VALIDATION
        assert new_vault.size == 1

    def test_order_survives_round_trip(self, writer):
        vault = Vault(writer=writer)
        vault.fill()
        for i in range(5):
            vault.add(str(i), f"note {i}", f"user{i}", f"pw{i}")
        vault.move_item(4, 0)
        vault.save("/vaults/order.ptb", "qwerty")

        reopened = Vault("/vaults/order.ptb", "qwerty", writer.files["/vaults/order.ptb"])
        reopened.fill()
        assert [v.note for v in reopened.get_all()] == ["note 4", "note 0", "note 1", "note 2", "note 3"]
        assert [reopened.get_password(i) for i in range(5)] == ["pw4", "pw0", "pw1", "pw2", "pw3"]

    def test_password_marker(self, filled):
        assert [v.password_marker for v in filled.get_all()] == ["/yes", "/no", "/yes"]
