"""
Unit tests for V3 keystore files and password resolution.
"""

import json
import os
import stat

import pytest

from helpeth.core.config import CliConfig
from helpeth.core.exceptions import (
    KeystoreDecryptError,
    KeystoreExistsError,
    KeystoreMismatchError,
    MissingPasswordError,
    PasswordRequiredError,
)
from helpeth.core.keystore import keystore_filename, load_keystore, resolve_password, save_keystore


class TestSaveAndLoad:
    def test_file_name_and_permissions(self, keystore_file, wallet):
        assert keystore_file.name == "9d8a62f656a8d1615c1294fd71e9cfb3e4855a4f.json"
        assert keystore_filename(wallet) == keystore_file.name
        assert stat.S_IMODE(os.stat(keystore_file).st_mode) == 0o600

    def test_contents_are_v3(self, keystore_file):
        data = json.loads(keystore_file.read_text())
        assert data["version"] == 3
        assert data["address"].lower() == "9d8a62f656a8d1615c1294fd71e9cfb3e4855a4f"
        assert data["crypto"]["kdf"] == "pbkdf2"

    def test_load_round_trip(self, keystore_file, wallet):
        assert load_keystore(keystore_file, "hunter2") == wallet

    def test_wrong_password(self, keystore_file):
        with pytest.raises(KeystoreDecryptError):
            load_keystore(keystore_file, "wrong")

    def test_never_overwrites(self, keystore_file, wallet):
        with pytest.raises(KeystoreExistsError):
            save_keystore(wallet, "other", keystore_file.parent, kdf="pbkdf2", iterations=2)

    def test_address_mismatch(self, keystore_file, wallet):
        data = json.loads(keystore_file.read_text())
        data["address"] = "00" * 20
        tampered = keystore_file.parent / "tampered.json"
        tampered.write_text(json.dumps(data))

        with pytest.raises(KeystoreMismatchError):
            load_keystore(tampered, "hunter2")
        assert load_keystore(tampered, "hunter2", strict=False) == wallet

    def test_unreadable_files(self, tmp_path):
        with pytest.raises(KeystoreDecryptError, match="not found"):
            load_keystore(tmp_path / "missing.json", "pw")

        broken = tmp_path / "broken.json"
        broken.write_text("{not json")
        with pytest.raises(KeystoreDecryptError, match="format"):
            load_keystore(broken, "pw")

        listing = tmp_path / "list.json"
        listing.write_text("[]")
        with pytest.raises(KeystoreDecryptError, match="structure"):
            load_keystore(listing, "pw")


class TestResolvePassword:
    def test_explicit_password(self):
        assert resolve_password(CliConfig(password="secret")) == "secret"

    def test_missing(self):
        with pytest.raises(PasswordRequiredError):
            resolve_password(CliConfig())

    def test_prompt(self):
        prompts = []

        def prompt(text):
            prompts.append(text)
            return "typed"

        config = CliConfig(password_prompt=True)
        assert resolve_password(config, prompt=prompt) == "typed"
        assert prompts == ["Password: "]

        prompts.clear()
        assert resolve_password(config, confirm=True, prompt=prompt) == "typed"
        assert prompts == ["Password: ", "Confirm password: "]

    def test_prompt_uses_getpass_by_default(self, monkeypatch):
        monkeypatch.setattr("getpass.getpass", lambda prompt="": "from-getpass")
        assert resolve_password(CliConfig(password_prompt=True)) == "from-getpass"

    def test_confirmation_mismatch(self):
        answers = iter(["one", "two"])
        with pytest.raises(MissingPasswordError, match="do not match"):
            resolve_password(CliConfig(password_prompt=True), confirm=True, prompt=lambda _: next(answers))

    def test_empty_prompt_rejected(self):
        with pytest.raises(MissingPasswordError, match="Empty"):
            resolve_password(CliConfig(password_prompt=True), prompt=lambda _: "")
