import json

import pytest
from click.testing import CliRunner

from helpeth.cli.enhanced_cli import cli

PRIVATE_KEY = "0x" + "46" * 32
ADDRESS = "0x9d8A62f656a8d1615C1294fd71e9CFb3E4855A4F"
RECIPIENT = "0x" + "35" * 20
EIP155_SIGNED_TX = (
    "0xf86c098504a817c800825208943535353535353535353535353535353535353535880de0b6b3a7640000"
    "8025a028ef61340bd939bc2195fe537567866003e1a15d3c71ff63e1590620aa636276a067cbe9d8997f76"
    "1aecb703304b3800ccf555c9f3dc64214b297fb1966a3b6d83"
)
MNEMONIC = (
    "abandon abandon abandon abandon abandon abandon "
    "abandon abandon abandon abandon abandon about"
)


@pytest.fixture
def runner():
    return CliRunner()


def _invoke_json(runner, args, **kwargs):
    result = runner.invoke(cli, ["--json-output", *args], **kwargs)
    assert result.exit_code == 0, result.output
    return json.loads(result.output)


class TestTransactions:
    def test_create_tx_end_to_end(self, runner):
        result = runner.invoke(
            cli,
            ["-p", PRIVATE_KEY, "--chain-id", "1", "createTx", "9", RECIPIENT, "1 eth", "", "21000", "20 gwei"],
        )
        assert result.exit_code == 0, result.output
        assert EIP155_SIGNED_TX in result.output
        assert "Minimum balance: 1000420000000000000 wei (1.00042 ETH)" in result.output
        assert "Total cost: 420000000000000 wei (0.00042 ETH)" in result.output
        assert f"Signer (checksum): {ADDRESS}" in result.output

    def test_create_tx_json(self, runner):
        payload = _invoke_json(
            runner,
            ["-p", PRIVATE_KEY, "--chain-id", "1", "createTx", "9", RECIPIENT, "1 eth", "", "21000", "20 gwei"],
        )
        assert payload["serialized"] == EIP155_SIGNED_TX
        assert payload["signer"] == ADDRESS
        assert payload["minBalance"] == 10**18 + 21000 * 20 * 10**9
        assert payload["transaction"]["v"] == 37

    def test_create_tx_requires_key(self, runner):
        result = runner.invoke(cli, ["createTx", "0", RECIPIENT, "0", "", "21000", "1"])
        assert result.exit_code == 1
        assert "Error: A key is required" in result.output

    def test_create_tx_bad_number(self, runner):
        result = runner.invoke(cli, ["-p", PRIVATE_KEY, "createTx", "nine", RECIPIENT, "0", "", "21000", "1"])
        assert result.exit_code == 1
        assert "Error: Not a decimal or hex number" in result.output

    def test_parse_tx(self, runner):
        result = runner.invoke(cli, ["parseTx", EIP155_SIGNED_TX])
        assert result.exit_code == 0, result.output
        assert f"Signer (checksum): {ADDRESS}" in result.output
        assert "Chain id: 1" in result.output
        assert "Nonce: 9" in result.output
        assert "(1.00042 ETH)" in result.output

    def test_parse_tx_garbage(self, runner):
        result = runner.invoke(cli, ["parseTx", "0xdeadbeef"])
        assert result.exit_code == 1
        assert "Error: Malformed transaction payload" in result.output

    def test_assemble_tx(self, runner):
        parsed = _invoke_json(runner, ["parseTx", EIP155_SIGNED_TX])
        tx = parsed["transaction"]
        payload = _invoke_json(
            runner,
            [
                "assembleTx", "9", RECIPIENT, "1 eth", "", "21000", "20 gwei",
                str(tx["v"]), tx["r"], tx["s"],
            ],
        )
        assert payload["serialized"] == EIP155_SIGNED_TX
        assert payload["signer"] == ADDRESS


class TestSignatures:
    def test_sign_then_verify(self, runner):
        signed = _invoke_json(runner, ["-p", PRIVATE_KEY, "signMessage", "hello"])
        assert signed["signer"] == ADDRESS

        verified = _invoke_json(runner, ["verifySig", signed["hash"], signed["signature"]])
        assert verified["signer"] == ADDRESS
        assert "warnings" not in verified

        by_params = _invoke_json(
            runner,
            ["verifySigParams", signed["hash"], signed["r"], signed["s"], str(signed["v"])],
        )
        assert by_params["signer"] == ADDRESS

    def test_sign_message_text_output(self, runner):
        result = runner.invoke(cli, ["-p", PRIVATE_KEY, "signMessage", "hello"])
        assert result.exit_code == 0, result.output
        assert "Input message: hello" in result.output
        assert "The signature: 0x" in result.output

    def test_high_s_signature_warns(self, runner):
        from helpeth.core.constants import SECP256K1_N

        signed = _invoke_json(runner, ["-p", PRIVATE_KEY, "signMessage", "hello"])
        flipped_s = hex(SECP256K1_N - int(signed["s"], 16))
        flipped_v = str(55 - signed["v"])

        result = runner.invoke(cli, ["verifySigParams", signed["hash"], signed["r"], flipped_s, flipped_v])
        assert result.exit_code == 0, result.output
        assert "Homestead" in result.output
        assert f"Signer (checksum): {ADDRESS}" in result.output

    def test_verify_rejects_short_signature(self, runner):
        result = runner.invoke(cli, ["verifySig", "0x" + "00" * 32, "0x1234"])
        assert result.exit_code == 1
        assert "Error: Signature must be 65 bytes" in result.output


class TestAddresses:
    def test_address_details(self, runner):
        payload = _invoke_json(runner, ["addressDetails", ADDRESS.lower()])
        assert payload["checksummed"] == ADDRESS
        assert payload["icap"].startswith("XE")

    def test_checksum_mismatch_is_a_warning(self, runner):
        tampered = "0x9D8A62f656a8d1615C1294fd71e9CFb3E4855A4F"
        result = runner.invoke(cli, ["addressDetails", tampered])
        assert result.exit_code == 0, result.output
        assert "failed the checksum test" in result.output
        assert f"Address (checksum): {ADDRESS}" in result.output

    def test_direct_icap(self, runner):
        result = runner.invoke(cli, ["addressDetails", "XE7338O073KYGTWWZN0F2WZ0R8PX5ZPPZS"])
        assert result.exit_code == 0, result.output
        assert "Address: 0x00c5496aee77c1ba1f0854206a26dda82a81d6d8" in result.output

    def test_indirect_icap_fails(self, runner):
        result = runner.invoke(cli, ["addressDetails", "XE81ETHXREGGAVOFYORK"])
        assert result.exit_code == 1
        assert "Error: Indirect ICAP" in result.output
        assert "Address:" not in result.output


class TestKeys:
    def test_key_details_hides_private_key(self, runner):
        result = runner.invoke(cli, ["-p", PRIVATE_KEY, "keyDetails"])
        assert result.exit_code == 0, result.output
        assert f"Address (checksum): {ADDRESS}" in result.output
        assert "Private key" not in result.output

        shown = runner.invoke(cli, ["-p", PRIVATE_KEY, "--show-private", "keyDetails"])
        assert f"Private key: {PRIVATE_KEY}" in shown.output

    def test_conflicting_sources(self, runner):
        result = runner.invoke(cli, ["-p", PRIVATE_KEY, "--mnemonic", MNEMONIC, "keyDetails"])
        assert result.exit_code == 1
        assert "Only one key source" in result.output

    def test_mnemonic_key_details(self, runner):
        payload = _invoke_json(runner, ["--mnemonic", MNEMONIC, "keyDetails"])
        assert payload["checksummed"] == "0x9858EfFD232B4033E47d90003D41EC34EcaEda94"

    def test_key_generate_raw(self, runner):
        payload = _invoke_json(runner, ["keyGenerate", "raw"])
        assert payload["privateKey"].startswith("0x")
        assert len(payload["privateKey"]) == 66

    def test_key_generate_icap_direct(self, runner):
        payload = _invoke_json(runner, ["keyGenerate", "raw", "true"])
        assert len(payload["icap"].replace(" ", "")) == 34

    def test_key_generate_json_prompts_twice(self, runner, tmp_path, monkeypatch):
        prompts = []

        def fake_getpass(prompt=""):
            prompts.append(prompt)
            return "hunter2"

        monkeypatch.setattr("getpass.getpass", fake_getpass)
        result = runner.invoke(
            cli,
            [
                "--password-prompt", "--output-dir", str(tmp_path),
                "keyGenerate", "json", "--kdf", "pbkdf2", "--iterations", "2",
            ],
        )
        assert result.exit_code == 0, result.output
        assert prompts == ["Password: ", "Confirm password: "]
        keystores = list(tmp_path.glob("*.json"))
        assert len(keystores) == 1
        assert f"Keystore: {keystores[0]}" in result.output

    def test_key_generate_json_needs_password(self, runner, tmp_path):
        result = runner.invoke(cli, ["--output-dir", str(tmp_path), "keyGenerate", "json"])
        assert result.exit_code == 1
        assert "A password is required" in result.output
        assert list(tmp_path.iterdir()) == []

    def test_key_convert_then_load(self, runner, tmp_path):
        converted = runner.invoke(
            cli,
            [
                "-p", PRIVATE_KEY, "--password", "hunter2", "--output-dir", str(tmp_path),
                "keyConvert", "--kdf", "pbkdf2", "--iterations", "2",
            ],
        )
        assert converted.exit_code == 0, converted.output
        keyfile = tmp_path / "9d8a62f656a8d1615c1294fd71e9cfb3e4855a4f.json"
        assert keyfile.exists()

        payload = _invoke_json(
            runner,
            ["-k", str(keyfile), "keyDetails"],
            env={"HELPETH_PASSWORD": "hunter2"},
        )
        assert payload["checksummed"] == ADDRESS

        again = runner.invoke(
            cli,
            [
                "-p", PRIVATE_KEY, "--password", "hunter2", "--output-dir", str(tmp_path),
                "keyConvert", "--kdf", "pbkdf2", "--iterations", "2",
            ],
        )
        assert again.exit_code == 1
        assert "Refusing to overwrite" in again.output

    def test_keyfile_wrong_password(self, runner, keystore_file):
        result = runner.invoke(cli, ["-k", str(keystore_file), "--password", "nope", "keyDetails"])
        assert result.exit_code == 1
        assert "Unable to decrypt keystore" in result.output

    def test_xprv_follows_hd_path(self, runner):
        master = _invoke_json(runner, ["--mnemonic", MNEMONIC, "--show-private", "bip32Details", "m"])
        from_mnemonic = _invoke_json(runner, ["--mnemonic", MNEMONIC, "--hd-path", "m/0/1", "keyDetails"])
        from_xprv = _invoke_json(runner, ["-p", master["xprv"], "--hd-path", "m/0/1", "keyDetails"])
        assert from_xprv["address"] == from_mnemonic["address"]
        assert from_xprv["address"] != master["address"]

    def test_plain_key_rejects_hd_path(self, runner):
        result = runner.invoke(cli, ["-p", PRIVATE_KEY, "--hd-path", "m/0/1", "keyDetails"])
        assert result.exit_code == 1
        assert "no chain code" in result.output
        assert ADDRESS not in result.output

    def test_bip32_details(self, runner):
        payload = _invoke_json(runner, ["--mnemonic", MNEMONIC, "bip32Details", "m/44'/60'/0'/0/0"])
        assert payload["checksummed"] == "0x9858EfFD232B4033E47d90003D41EC34EcaEda94"
        assert payload["depth"] == 5
        assert payload["xpub"].startswith("xpub")
        assert "xprv" not in payload

        shown = _invoke_json(
            runner,
            ["--mnemonic", MNEMONIC, "--show-private", "bip32Details", "m/44'/60'/0'/0/0"],
        )
        assert shown["xprv"].startswith("xprv")

    def test_bip32_details_from_xpub(self, runner):
        master = _invoke_json(runner, ["--mnemonic", MNEMONIC, "--show-private", "bip32Details", "m"])
        from_xprv = _invoke_json(runner, ["-p", master["xprv"], "bip32Details", "m/0/1"])
        from_xpub = _invoke_json(runner, ["-p", master["xpub"], "bip32Details", "m/0/1"])
        assert from_xpub["address"] == from_xprv["address"]


class TestUsageErrors:
    def test_missing_keyfile(self, runner, tmp_path):
        missing = tmp_path / "key.json"
        result = runner.invoke(cli, ["-k", str(missing), "--password", "x", "keyDetails"])
        assert result.exit_code == 1
        assert "Keystore file not found" in result.output

    def test_unknown_key_format(self, runner):
        result = runner.invoke(cli, ["keyGenerate", "foo"])
        assert result.exit_code == 1
        assert "Error:" in result.output
        assert "foo" in result.output

    def test_missing_arguments(self, runner):
        result = runner.invoke(cli, ["createTx", "0"])
        assert result.exit_code == 1
        assert "Missing argument" in result.output

    def test_help_still_succeeds(self, runner):
        result = runner.invoke(cli, ["--help"])
        assert result.exit_code == 0
        assert "unitConvert" in result.output


class TestUnits:
    def test_unit_convert(self, runner):
        result = runner.invoke(cli, ["unitConvert", "1", "eth", "gwei"])
        assert result.exit_code == 0, result.output
        assert "1 eth: 1000000000 gwei" in result.output

    def test_unit_convert_fraction(self, runner):
        payload = _invoke_json(runner, ["unitConvert", "21000", "gwei", "ether"])
        assert payload["result"] == "0.000021"

    def test_unknown_unit(self, runner):
        result = runner.invoke(cli, ["unitConvert", "1", "eth", "parsecs"])
        assert result.exit_code == 1
        assert "Error: Unknown unit: parsecs" in result.output


def test_log_file_option(runner, tmp_path):
    log_file = tmp_path / "helpeth.log"
    result = runner.invoke(
        cli,
        ["--log-level", "DEBUG", "--log-file", str(log_file), "unitConvert", "1", "eth", "wei"],
    )
    assert result.exit_code == 0, result.output
    events = [json.loads(line).get("event") for line in log_file.read_text().splitlines()]
    assert "command.completed" in events
