"""
Passtable Local Web API
=======================
Flask host for one vault at a time, bound to localhost.

The host supplies what the vault core leaves out: reading and writing
files inside the data directory, checking names and passphrases typed by
the user, and one exclusive lock around every vault call.
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime, timezone
from functools import wraps
from typing import Optional

from flask import Flask, current_app, jsonify, request
from werkzeug.exceptions import HTTPException

from passtable import __version__
from passtable.core.config import PasstableConfig
from passtable.core.logging import configure_logging
from passtable.core.vault import NO_TAG, ErrorKind, FillResult, ItemResult, SaveResult, Vault
from passtable.security.constants import (
    ENCRYPTION_ALGORITHM,
    FILE_NAME_INVALID_CHARS,
    FILE_NAME_INVALID_WIN_WORDS,
    MAX_FILE_NAME_LENGTH,
    MAX_PRIMARY_PASSPHRASE_LENGTH,
)
from passtable.security.password_generator import GenerationError, PasswordGenerator
from passtable.utils.paths import read_vault_file, write_vault_file
from passtable.utils.validators import (
    FileNameCheck,
    PassphraseCheck,
    ValidationError,
    get_primary_allowed_chars,
    validate_path_safe,
    verify_file_name,
    verify_primary_passphrase,
)

_EXTENSION_KEY = "passtable"

_MINIMUM_FIELDS = ("min_lowercase", "min_symbols", "min_uppercase", "min_numbers")

_STATUS_BY_KIND = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.BOUNDS: 404,
    ErrorKind.CRYPTO: 401,
    ErrorKind.IO: 500,
    ErrorKind.FORMAT: 422,
    ErrorKind.GENERATION: 400,
}

_MESSAGES = {
    ItemResult.INVALID_CHARACTERS: "Data contains invalid characters",
    ItemResult.EMPTY_ITEM: "A record needs a note, or a username and a password",
    ItemResult.INVALID_TAG: "Invalid tag",
    ItemResult.OUT_OF_BOUNDS: "No record at this position",
    FillResult.MISSING_CIPHERTEXT: "The file contains nothing",
    FillResult.MISSING_PASSPHRASE: "The primary passphrase was not specified",
    FillResult.UNSUPPORTED_VERSION: "Unsupported file version",
    FillResult.INVALID_PASSPHRASE: "Cannot unlock the file with this passphrase",
    FillResult.CORRUPT_DATA: "The file is corrupted",
    SaveResult.NO_PATH: "The file name was not specified",
    SaveResult.NO_PASSPHRASE: "The primary passphrase was not specified",
    SaveResult.ENCRYPTION_FAILED: "Encryption failed",
    SaveResult.VERIFICATION_FAILED: "The saved data does not match the current data",
    SaveResult.WRITE_FAILED: "The file could not be written",
}

_FILE_NAME_HINTS = {
    FileNameCheck.BLANK: "The file name is empty",
    FileNameCheck.INVALID_CHAR: f"The file name must not contain {FILE_NAME_INVALID_CHARS}",
    FileNameCheck.LEADING_SPACE: "The file name must not start with a space",
    FileNameCheck.RESERVED_WORD: f"The file name must not be one of {FILE_NAME_INVALID_WIN_WORDS}",
    FileNameCheck.TOO_LONG: f"The file name must not exceed {MAX_FILE_NAME_LENGTH} characters",
}

_PASSPHRASE_HINTS = {
    PassphraseCheck.EMPTY: "The primary passphrase is empty",
    PassphraseCheck.INVALID_CHAR: "Allowed characters:\n" + get_primary_allowed_chars(),
    PassphraseCheck.RESERVED_PREFIX: "The primary passphrase must not start with '/'",
    PassphraseCheck.TOO_LONG: f"The primary passphrase must not exceed {MAX_PRIMARY_PASSPHRASE_LENGTH} characters",
}

log = logging.getLogger("passtable.web")


class VaultSession:
    """The open vault of the host and the lock that serializes access to it."""

    def __init__(self, config: PasstableConfig) -> None:
        self.config = config
        self.lock = threading.Lock()
        self.vault: Optional[Vault] = None

    def new_vault(self, path: Optional[str] = None, passphrase: Optional[str] = None,
                  content: str = "") -> Vault:
        return Vault(
            path=path,
            primary_passphrase=passphrase,
            encrypted_data=content,
            writer=write_vault_file,
            config=self.config.vault,
        )

    def resolve(self, name: str) -> str:
        """
        Turn a file name typed by the user into a path inside the data dir.

        Raises:
            ValidationError: If the name or the resulting path is not allowed
        """
        check = verify_file_name(name)
        if check is not FileNameCheck.OK:
            raise ValidationError(_FILE_NAME_HINTS[check])

        data_dir = self.config.paths.data_dir
        path = validate_path_safe(data_dir / name, base_directory=data_dir)
        if path == data_dir.resolve():
            raise ValidationError("The file name must name a file")
        return str(path)


def _session() -> VaultSession:
    return current_app.extensions[_EXTENSION_KEY]


def _error(message: str, status: int, code: Optional[str] = None):
    body = {"error": message}
    if code:
        body["code"] = code
    return jsonify(body), status


def _result_error(result: ItemResult | FillResult | SaveResult):
    return _error(_MESSAGES[result], _STATUS_BY_KIND[result.kind], result.name)


def _view_to_json(view) -> dict:
    data = {
        "tag": view.tag,
        "note": view.note,
        "username": view.username,
        "has_password": view.has_password,
    }
    if view.position is not None:
        data["position"] = view.position
    return data


def _json_body() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def _text_fields(data: dict, **defaults: Optional[str]) -> list[Optional[str]]:
    """
    Pull string fields out of a JSON body, in keyword order.

    A field may only be absent or null when its default is None.

    Raises:
        ValidationError: If a field holds anything other than a string
    """
    values = []
    for key, default in defaults.items():
        value = data.get(key, default)
        if not isinstance(value, str) and not (value is None and default is None):
            raise ValidationError(f"'{key}' must be a string")
        values.append(value)
    return values


def _generator_minimums(data: dict, generator: PasswordGenerator, defaults, length: int) -> dict[str, int]:
    """
    Minimum count per category for PasswordGenerator.generate().

    Explicit min_* values are passed through. Configured defaults apply to
    enabled categories only and shrink, in category order, to whatever
    length is left after the explicit values.
    """
    explicit = {name: int(data[name]) for name in _MINIMUM_FIELDS if data.get(name) is not None}
    room = length - sum(explicit.values())

    minimums = {}
    for name in _MINIMUM_FIELDS:
        if name in explicit:
            minimums[name] = explicit[name]
            continue
        category = name.removeprefix("min_")
        wanted = getattr(defaults, name) if getattr(generator, f"{category}_allowed") else 0
        minimums[name] = max(0, min(wanted, room))
        room -= minimums[name]
    return minimums


def require_vault(f):
    """Run the view with the session lock held and a vault open."""
    @wraps(f)
    def wrapper(*args, **kwargs):
        session = _session()
        with session.lock:
            if session.vault is None:
                return _error("No vault is open", 409)
            return f(session.vault, *args, **kwargs)
    return wrapper


def create_app(config: Optional[PasstableConfig] = None) -> Flask:
    """Build the Flask application around a fresh VaultSession."""
    config = config or PasstableConfig.get_instance()

    app = Flask(__name__)
    app.config["MAX_CONTENT_LENGTH"] = 1024 * 1024
    app.extensions[_EXTENSION_KEY] = VaultSession(config)

    # ============================================================
    # APP CONFIG
    # ============================================================

    @app.after_request
    def add_security_headers(response):
        # Responses may carry plain passwords
        response.headers["Cache-Control"] = "no-store"
        response.headers["X-Content-Type-Options"] = "nosniff"
        return response

    @app.errorhandler(HTTPException)
    def handle_http_error(e: HTTPException):
        return _error(e.description or e.name, e.code or 500)

    # ============================================================
    # HEALTH CHECK
    # ============================================================

    @app.route("/api/health")
    def health():
        session = _session()
        return jsonify({
            "status": "healthy",
            "version": __version__,
            "algorithm": ENCRYPTION_ALGORITHM,
            "vault_open": session.vault is not None,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        })

    # ============================================================
    # OPEN / NEW / CLOSE
    # ============================================================

    @app.route("/api/vault/new", methods=["POST"])
    def new_vault():
        session = _session()
        with session.lock:
            if session.vault is not None and not session.vault.is_saved:
                return _error("The open vault has unsaved changes", 409)
            vault = session.new_vault()
            vault.fill()
            session.vault = vault
        return jsonify({"message": "New vault created", "size": 0}), 201

    @app.route("/api/vault/open", methods=["POST"])
    def open_vault():
        session = _session()
        try:
            name, passphrase = _text_fields(_json_body(), name="", passphrase="")
            path = session.resolve(name)
        except ValidationError as e:
            return _error(str(e), 400)

        try:
            content = read_vault_file(path)
        except FileNotFoundError:
            return _error("File not found", 404)
        except OSError as e:
            log.error("Cannot read vault %s: %s", path, e.strerror)
            return _error("The file could not be read", 500)

        with session.lock:
            if session.vault is not None and not session.vault.is_saved:
                return _error("The open vault has unsaved changes", 409)

            vault = session.new_vault(path, passphrase, content)
            result = vault.fill()
            if not result.ok:
                return _result_error(result)
            session.vault = vault

        return jsonify({"message": "Vault opened", "size": vault.size})

    @app.route("/api/vault/close", methods=["POST"])
    def close_vault():
        force = bool(_json_body().get("force", False))
        session = _session()
        with session.lock:
            if session.vault is None:
                return _error("No vault is open", 409)
            if not session.vault.is_saved and not force:
                return _error("The open vault has unsaved changes", 409)
            session.vault = None
        return jsonify({"message": "Vault closed"})

    # ============================================================
    # RECORDS
    # ============================================================

    @app.route("/api/vault/items", methods=["GET"])
    @require_vault
    def list_items(vault: Vault):
        return jsonify({
            "items": [_view_to_json(v) for v in vault.get_all()],
            "saved": vault.is_saved,
        })

    @app.route("/api/vault/search", methods=["GET"])
    @require_vault
    def search_items(vault: Vault):
        """Search by text (?q=), tag symbol (?tag=) or colors (?colors=1,3)."""
        query = request.args.get("q")
        tag = request.args.get("tag")
        colors = request.args.get("colors")

        try:
            if query is not None:
                views = vault.search_by_text(query)
            elif tag is not None:
                views = vault.search_by_tag(tag)
            elif colors is not None:
                views = vault.search_by_tag_colors(int(c) for c in colors.split(",") if c)
            else:
                return _error("One of 'q', 'tag' or 'colors' is required", 400)
        except ValueError:
            return _error("Invalid colors", 400)

        return jsonify({"items": [_view_to_json(v) for v in views]})

    @app.route("/api/vault/items", methods=["POST"])
    @require_vault
    def add_item(vault: Vault):
        try:
            fields = _text_fields(_json_body(), tag=NO_TAG, note="", username="", password="")
        except ValidationError as e:
            return _error(str(e), 400)

        result = vault.add(*fields)
        if not result.ok:
            return _result_error(result)
        return jsonify({"message": "Record added", "position": vault.size - 1}), 201

    @app.route("/api/vault/items/<int:position>", methods=["PUT"])
    @require_vault
    def update_item(vault: Vault, position: int):
        try:
            fields = _text_fields(_json_body(), tag=NO_TAG, note="", username="", password="")
        except ValidationError as e:
            return _error(str(e), 400)

        result = vault.set_data(position, *fields)
        if not result.ok:
            return _result_error(result)
        return jsonify({"message": "Record updated"})

    @app.route("/api/vault/items/<int:position>", methods=["DELETE"])
    @require_vault
    def delete_item(vault: Vault, position: int):
        result = vault.delete(position)
        if not result.ok:
            return _result_error(result)
        return jsonify({"message": "Record deleted"})

    @app.route("/api/vault/items/<int:position>/password", methods=["GET"])
    @require_vault
    def reveal_password(vault: Vault, position: int):
        password = vault.get_password(position)
        if password is None:
            return _result_error(ItemResult.OUT_OF_BOUNDS)
        return jsonify({"password": password})

    @app.route("/api/vault/items/move", methods=["POST"])
    @require_vault
    def move_item(vault: Vault):
        data = _json_body()
        try:
            result = vault.move_item(int(data["from"]), int(data["to"]))
        except (KeyError, TypeError, ValueError):
            return _error("'from' and 'to' positions are required", 400)
        if not result.ok:
            return _result_error(result)
        return jsonify({"message": "Record moved"})

    @app.route("/api/vault/items/swap", methods=["POST"])
    @require_vault
    def swap_items(vault: Vault):
        data = _json_body()
        try:
            result = vault.swap_items(int(data["first"]), int(data["second"]))
        except (KeyError, TypeError, ValueError):
            return _error("'first' and 'second' positions are required", 400)
        if not result.ok:
            return _result_error(result)
        return jsonify({"message": "Records swapped"})

    # ============================================================
    # SAVE
    # ============================================================

    @app.route("/api/vault/save", methods=["POST"])
    @require_vault
    def save_vault(vault: Vault):
        new_path = None
        try:
            name, passphrase = _text_fields(_json_body(), name=None, passphrase=None)
            if name is not None:
                new_path = _session().resolve(name)
        except ValidationError as e:
            return _error(str(e), 400)

        if passphrase is not None:
            check = verify_primary_passphrase(passphrase)
            if check is not PassphraseCheck.OK:
                return _error(_PASSPHRASE_HINTS[check], 400, check.name)

        result = vault.save(new_path, passphrase)
        if not result.ok:
            return _result_error(result)

        body = {"message": "Vault saved", "path": vault.path}
        if result is SaveResult.SAVED_TO_FALLBACK:
            body["message"] = "Vault saved next to the application instead"
            body["relocated"] = True
        return jsonify(body)

    # ============================================================
    # PASSWORD GENERATOR
    # ============================================================

    @app.route("/api/generator/password", methods=["POST"])
    def generate_password():
        defaults = config.generator
        data = _json_body()

        generator = PasswordGenerator()
        generator.lowercase_allowed = bool(data.get("lowercase", True))
        generator.uppercase_allowed = bool(data.get("uppercase", True))
        generator.numbers_allowed = bool(data.get("numbers", True))
        generator.symbols_allowed = bool(data.get("symbols", True))
        generator.easy_symbols_mode = bool(data.get("easy_symbols", defaults.easy_symbols_mode))
        blocked = data.get("blocked") or ""
        if not isinstance(blocked, str):
            return _error("'blocked' must be a string", 400)
        generator.block_chars(blocked)

        try:
            length = int(data.get("length", defaults.default_length))
            if length > defaults.max_length:
                return _error(f"Length must not exceed {defaults.max_length}", 400)
            password = generator.generate(length, **_generator_minimums(data, generator, defaults, length))
        except GenerationError as e:
            return _error(str(e), _STATUS_BY_KIND[ErrorKind.GENERATION], type(e).__name__)
        except (TypeError, ValueError):
            return _error("Generator parameters must be integers", 400)

        return jsonify({"password": password})

    return app


# ============================================================
# ENTRY POINT
# ============================================================

def main() -> None:
    """Run the local API with the configured host and port."""
    config = PasstableConfig.get_instance()
    configure_logging(config)
    config.ensure_directories()

    app = create_app(config)
    log.info("Serving vaults from %s", config.paths.data_dir)
    app.run(host=config.app.host, port=config.app.port)


if __name__ == "__main__":
    main()
