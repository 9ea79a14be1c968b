"""
Vault Store
===========

The in-memory, ordered collection of records of one vault file, plus the
protocol that opens (fill) and persists (save) it.

Persistence Flow:
    save: serialize -> encrypt -> decrypt and compare -> version char +
          ciphertext -> injected writer (one retry at a fallback location)
    fill: version char -> decrypt -> parse -> replace the collection

Payload Format:
    tag \\t note \\t username \\t password, one record per line, no
    trailing newline. An empty vault is stored as the empty collection
    sentinel so "no records" never looks like a blank ciphertext.

Threading:
    Not synchronized. A host sharing a vault between threads must hold one
    exclusive lock per open vault around every call.
"""

from __future__ import annotations

import hmac
import logging
from typing import Callable, Final, Iterable, List, Optional

from passtable.core.config import VaultConfig
from passtable.core.crypto import aes_cbc
from passtable.core.crypto.aes_cbc import CryptoEngineError, CryptoError, InvalidKeyLengthError
from passtable.core.vault.file_version import CURRENT_FILE_VERSION, FileVersion
from passtable.core.vault.record import Record, RecordView, TagColor
from passtable.core.vault.results import FillResult, ItemResult, SaveResult
from passtable.security.constants import (
    EMPTY_COLLECTION_SENTINEL,
    FIELD_SEPARATOR,
    FIELDS_PER_RECORD,
    RECORD_SEPARATOR,
)
from passtable.utils.paths import fallback_path, write_vault_file
from passtable.utils.validators import verify_data, verify_item, verify_tag

Writer = Callable[[str, str], None]

FIELD_NAMES: Final[tuple[str, ...]] = ("tag", "note", "username", "password")


class CorruptPayloadError(ValueError):
    """Raised when a decrypted payload does not follow the record template."""
    pass


def serialize_records(records: Iterable[Record]) -> str:
    """Render records as the plaintext payload of a vault file."""
    lines = [
        FIELD_SEPARATOR.join((r.tag, r.note, r.username, r.password))
        for r in records
    ]
    if not lines:
        return EMPTY_COLLECTION_SENTINEL
    return RECORD_SEPARATOR.join(lines)


def parse_records(payload: str) -> List[Record]:
    """
    Parse a plaintext payload back into records.

    Raises:
        CorruptPayloadError: If a line does not hold exactly four fields
    """
    if payload == EMPTY_COLLECTION_SENTINEL:
        return []

    records: List[Record] = []
    for line_number, line in enumerate(payload.split(RECORD_SEPARATOR), start=1):
        fields = line.split(FIELD_SEPARATOR)
        if len(fields) != FIELDS_PER_RECORD:
            raise CorruptPayloadError(
                f"Record {line_number} has {len(fields)} fields, expected {FIELDS_PER_RECORD}"
            )
        records.append(Record(*fields))
    return records


class Vault:
    """
    One open vault: records, saved state, path and primary passphrase.

    Usage:
        # New file
        vault = Vault(writer=write_vault_file)
        vault.fill()
        vault.add("1", "mail", "bob", "secret")
        vault.save("/home/bob/mail.passtable", "my primary passphrase")

        # Existing file
        vault = Vault(path, passphrase, read_vault_file(path), writer=write_vault_file)
        if vault.fill() is FillResult.INVALID_PASSPHRASE:
            ...

    Expected failures are returned as ItemResult / FillResult / SaveResult
    members. Read operations never expose passwords except through the
    explicit get_password() call.
    """

    def __init__(
        self,
        path: Optional[str] = None,
        primary_passphrase: Optional[str] = None,
        encrypted_data: str | bytes = "",
        writer: Optional[Writer] = None,
        config: Optional[VaultConfig] = None,
    ) -> None:
        """
        Initialize a vault.

        Args:
            path: File the vault was read from; None for a file not yet saved
            primary_passphrase: Passphrase of the existing file
            encrypted_data: Content of the existing file, as the host read it
            writer: Host function writing content to a path, raising OSError
                on failure (defaults to write_vault_file)
            config: Fallback location settings
        """
        if isinstance(encrypted_data, bytes):
            encrypted_data = encrypted_data.decode("utf-8", errors="replace")

        self._path = path
        self._primary_passphrase = primary_passphrase
        self._encrypted_data = encrypted_data
        self._writer: Writer = writer or write_vault_file
        self._config = config or VaultConfig()
        self._records: List[Record] = []
        self._is_saved = True
        self._log = logging.getLogger("passtable.vault")

    def __repr__(self) -> str:
        """Safe representation without passphrase or records."""
        return f"Vault(path={self._path!r}, size={len(self._records)}, saved={self._is_saved})"

    def __len__(self) -> int:
        return len(self._records)

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def path(self) -> Optional[str]:
        """Path of the last successful save or of the opened file."""
        return self._path

    @property
    def size(self) -> int:
        return len(self._records)

    @property
    def is_saved(self) -> bool:
        """True when the collection matches the last save or fill."""
        return self._is_saved

    @property
    def is_dirty(self) -> bool:
        return not self._is_saved

    @property
    def has_passphrase(self) -> bool:
        return bool(self._primary_passphrase)

    @property
    def encrypted_data(self) -> str:
        """Content of the last successful save, or of the opened file."""
        return self._encrypted_data

    def _in_bounds(self, *positions: int) -> bool:
        return all(0 <= p < len(self._records) for p in positions)

    def _mark_unsaved(self) -> None:
        self._is_saved = False

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def add(self, tag: str, note: str, username: str, password: str) -> ItemResult:
        """
        Append a record to the end of the collection.

        Args:
            tag: One of "0".."5"
            note: Free text; may be blank when username and password are set
            username: Login name
            password: Secret; may be empty when the note is not blank

        Returns:
            SUCCESS, INVALID_CHARACTERS, EMPTY_ITEM or INVALID_TAG. Fields are
            checked in that order and nothing changes on failure.
        """
        if not verify_data(note, username, password):
            return ItemResult.INVALID_CHARACTERS
        if not verify_item(note, username, password):
            return ItemResult.EMPTY_ITEM
        if not verify_tag(tag):
            return ItemResult.INVALID_TAG

        self._records.append(Record(tag, note, username, password))
        self._mark_unsaved()
        return ItemResult.SUCCESS

    def delete(self, position: int) -> ItemResult:
        """Remove the record at position."""
        if not self._in_bounds(position):
            return ItemResult.OUT_OF_BOUNDS

        del self._records[position]
        self._mark_unsaved()
        return ItemResult.SUCCESS

    def set_tag(self, position: int, tag: str) -> ItemResult:
        """Change the tag of the record at position. Returns INVALID_TAG before OUT_OF_BOUNDS."""
        if not verify_tag(tag):
            return ItemResult.INVALID_TAG
        if not self._in_bounds(position):
            return ItemResult.OUT_OF_BOUNDS

        self._records[position].tag = tag
        self._mark_unsaved()
        return ItemResult.SUCCESS

    def set_note(self, position: int, note: str) -> ItemResult:
        """
        Change the note of the record at position.

        Args:
            position: Zero-based index
            note: New note

        Returns:
            SUCCESS, INVALID_CHARACTERS, OUT_OF_BOUNDS, or EMPTY_ITEM when the
            record would no longer pass the admission rule.
        """
        if not verify_data(note):
            return ItemResult.INVALID_CHARACTERS
        if not self._in_bounds(position):
            return ItemResult.OUT_OF_BOUNDS

        record = self._records[position]
        if not verify_item(note, record.username, record.password):
            return ItemResult.EMPTY_ITEM

        record.note = note
        self._mark_unsaved()
        return ItemResult.SUCCESS

    def set_username(self, position: int, username: str) -> ItemResult:
        """
        Change the username of the record at position.

        Returns:
            Same results as set_note(); blanking the username of a record
            with no note gives EMPTY_ITEM.
        """
        if not verify_data(username):
            return ItemResult.INVALID_CHARACTERS
        if not self._in_bounds(position):
            return ItemResult.OUT_OF_BOUNDS

        record = self._records[position]
        if not verify_item(record.note, username, record.password):
            return ItemResult.EMPTY_ITEM

        record.username = username
        self._mark_unsaved()
        return ItemResult.SUCCESS

    def set_password(self, position: int, password: str) -> ItemResult:
        """
        Change the password of the record at position.

        Args:
            position: Zero-based index
            password: New password, kept in memory only until the next save

        Returns:
            Same results as set_note().
        """
        if not verify_data(password):
            return ItemResult.INVALID_CHARACTERS
        if not self._in_bounds(position):
            return ItemResult.OUT_OF_BOUNDS

        record = self._records[position]
        if not verify_item(record.note, record.username, password):
            return ItemResult.EMPTY_ITEM

        record.password = password
        self._mark_unsaved()
        return ItemResult.SUCCESS

    def set_data(self, position: int, tag: str, note: str, username: str, password: str) -> ItemResult:
        """
        Replace every field of the record at position.

        Args:
            position: Zero-based index
            tag, note, username, password: As for add()

        Returns:
            The add() results, then OUT_OF_BOUNDS. The record is left as it
            was on any failure.
        """
        if not verify_data(note, username, password):
            return ItemResult.INVALID_CHARACTERS
        if not verify_item(note, username, password):
            return ItemResult.EMPTY_ITEM
        if not verify_tag(tag):
            return ItemResult.INVALID_TAG
        if not self._in_bounds(position):
            return ItemResult.OUT_OF_BOUNDS

        self._records[position] = Record(tag, note, username, password)
        self._mark_unsaved()
        return ItemResult.SUCCESS

    def swap_items(self, first: int, second: int) -> ItemResult:
        """
        Exchange the records at two positions.

        Args:
            first: Zero-based index
            second: Zero-based index, may equal first

        Returns:
            SUCCESS, or OUT_OF_BOUNDS when either index is outside the collection
        """
        if not self._in_bounds(first, second):
            return ItemResult.OUT_OF_BOUNDS

        records = self._records
        records[first], records[second] = records[second], records[first]
        self._mark_unsaved()
        return ItemResult.SUCCESS

    def move_item(self, from_: int, to: int) -> ItemResult:
        """Take the record at from_ out and insert it so it ends up at to."""
        if not self._in_bounds(from_, to):
            return ItemResult.OUT_OF_BOUNDS

        record = self._records.pop(from_)
        self._records.insert(to, record)
        self._mark_unsaved()
        return ItemResult.SUCCESS

    # ------------------------------------------------------------------
    # Reading
    # ------------------------------------------------------------------

    def get_field(self, position: int, name: str) -> Optional[str]:
        """
        Value of one field of the record at position.

        Returns:
            The value, or None if position is out of range

        Raises:
            ValueError: If name is not a record field
        """
        if name not in FIELD_NAMES:
            raise ValueError(f"Unknown record field: {name!r}")
        if not self._in_bounds(position):
            return None
        return getattr(self._records[position], name)

    def get_tag(self, position: int) -> Optional[str]:
        return self.get_field(position, "tag")

    def get_note(self, position: int) -> Optional[str]:
        return self.get_field(position, "note")

    def get_username(self, position: int) -> Optional[str]:
        return self.get_field(position, "username")

    def get_password(self, position: int) -> Optional[str]:
        """Plain password. Use only when it has to be shown or copied."""
        return self.get_field(position, "password")

    def get_all(self) -> List[RecordView]:
        """Every record, in order, with passwords masked."""
        return [record.view() for record in self._records]

    def search_by_text(self, query: str) -> List[RecordView]:
        """Records whose note or username contains query, ignoring case."""
        needle = query.lower()
        return [
            record.view(position)
            for position, record in enumerate(self._records)
            if needle in record.note.lower() or needle in record.username.lower()
        ]

    def search_by_tag(self, query: str) -> List[RecordView]:
        """Records whose tag symbol contains query."""
        return [
            record.view(position)
            for position, record in enumerate(self._records)
            if query in record.tag
        ]

    def search_by_tag_colors(self, colors: Iterable[TagColor | int]) -> List[RecordView]:
        """Records tagged with any of the given colors."""
        wanted = {TagColor(color).tag for color in colors}
        return [
            record.view(position)
            for position, record in enumerate(self._records)
            if record.tag in wanted
        ]

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def fill(self) -> FillResult:
        """
        Decrypt and parse the file content given at construction.

        A vault without a path is a new file: it is left empty and saved.
        The collection is only replaced when the whole file parses.
        """
        if self._path is None:
            self._records = []
            self._is_saved = True
            return FillResult.SUCCESS

        if not self._encrypted_data:
            return FillResult.MISSING_CIPHERTEXT
        if not self._primary_passphrase:
            return FillResult.MISSING_PASSPHRASE

        if FileVersion.from_char(self._encrypted_data[0]) is not CURRENT_FILE_VERSION:
            self._log.warning("Unsupported vault file version: %s", self._path)
            return FillResult.UNSUPPORTED_VERSION

        try:
            plaintext = aes_cbc.decrypt(self._encrypted_data[1:], self._primary_passphrase)
        except (InvalidKeyLengthError, UnicodeEncodeError):
            return FillResult.INVALID_PASSPHRASE
        except CryptoEngineError:
            self._log.warning("Vault ciphertext is malformed: %s", self._path)
            return FillResult.CORRUPT_DATA

        if plaintext is CryptoError.FAILED:
            self._log.info("Vault could not be unlocked: %s", self._path)
            return FillResult.INVALID_PASSPHRASE

        try:
            records = parse_records(plaintext.decode("utf-8"))
        except (UnicodeDecodeError, CorruptPayloadError) as e:
            self._log.warning("Vault payload is corrupted (%s): %s", type(e).__name__, self._path)
            return FillResult.CORRUPT_DATA

        self._records = records
        self._is_saved = True
        self._log.debug("Opened vault with %d records", len(records))
        return FillResult.SUCCESS

    def save(self, new_path: Optional[str] = None, new_passphrase: Optional[str] = None) -> SaveResult:
        """
        Encrypt the collection and write it through the injected writer.

        Args:
            new_path: Save under this path instead of the current one
            new_passphrase: Protect the file with this passphrase instead

        Returns:
            SUCCESS, or SAVED_TO_FALLBACK when the primary write failed and
            the file went next to the running process; the fallback becomes
            the vault path. Nothing is written on any other result.
        """
        path = new_path if new_path is not None else self._path
        if path is None:
            return SaveResult.NO_PATH
        passphrase = new_passphrase if new_passphrase is not None else self._primary_passphrase
        if passphrase is None:
            return SaveResult.NO_PASSPHRASE

        try:
            payload = serialize_records(self._records).encode("utf-8")
            ciphertext = aes_cbc.encrypt(payload, passphrase)
            check = aes_cbc.decrypt(ciphertext, passphrase)
        except (CryptoEngineError, UnicodeEncodeError) as e:
            self._log.error("Vault encryption failed: %s", type(e).__name__)
            return SaveResult.ENCRYPTION_FAILED

        if check is CryptoError.FAILED or not hmac.compare_digest(check, payload):
            self._log.error("Encrypted vault did not decrypt back to the same data")
            return SaveResult.VERIFICATION_FAILED

        content = CURRENT_FILE_VERSION.char + ciphertext

        try:
            self._writer(path, content)
        except OSError as e:
            rescue = fallback_path(path, self._config.fallback_extension, self._config.fallback_dir)
            self._log.warning("Cannot write vault to %s (%s), trying %s", path, e.strerror, rescue)
            try:
                self._writer(rescue, content)
            except OSError as e2:
                self._log.error("Cannot write vault to fallback %s (%s)", rescue, e2.strerror)
                return SaveResult.WRITE_FAILED

            self._commit(rescue, passphrase, content)
            return SaveResult.SAVED_TO_FALLBACK

        self._commit(path, passphrase, content)
        return SaveResult.SUCCESS

    def _commit(self, path: str, passphrase: str, content: str) -> None:
        self._path = path
        self._primary_passphrase = passphrase
        self._encrypted_data = content
        self._is_saved = True
        self._log.info("Saved vault with %d records to %s", len(self._records), path)
