#!/usr/bin/env python3
"""
helpeth - Ethereum key and transaction CLI
Command-line interface with rich terminal output
"""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.markup import escape

from helpeth import __version__
from helpeth.cli.commands import (
    AddressDetails,
    AssembleTx,
    Bip32Details,
    Command,
    CreateTx,
    KeyConvert,
    KeyDetails,
    KeyGenerate,
    ParseTx,
    Report,
    SignMessage,
    UnitConvert,
    VerifySig,
    VerifySigParams,
    dispatch,
)
from helpeth.core.config import (
    DEFAULT_LOG_LEVEL,
    ENV_HD_PATH,
    ENV_LOG_LEVEL,
    ENV_OUTPUT_DIR,
    ENV_PASSWORD,
    CliConfig,
)
from helpeth.core.constants import DEFAULT_HD_PATH
from helpeth.core.exceptions import HelpethError, get_error_context
from helpeth.core.keystore import DEFAULT_KDF, KDF_CHOICES
from helpeth.core.logging_config import LOG_LEVELS, setup_logging

# Configure module logger
logger = logging.getLogger(__name__)

# Long hex values must stay on one line so they can be copied
console = Console(soft_wrap=True, highlight=False)
err_console = Console(stderr=True, soft_wrap=True, highlight=False)


def _cli_fail(exc: Exception, exit_code: int = 1) -> None:
    """Centralized CLI error handler for consistent messaging."""
    logger.debug("CLI error: %s", exc, exc_info=True, extra=get_error_context(exc))
    err_console.print(f"[bold red]Error:[/] {escape(str(exc))}")
    sys.exit(exit_code)


def _render(ctx: click.Context, report: Report) -> None:
    config: CliConfig = ctx.obj
    if config.json_output:
        payload = dict(report.payload)
        if report.warnings:
            payload["warnings"] = list(report.warnings)
        click.echo(json.dumps(payload, indent=2))
        return

    for label, value in report.lines:
        console.print(f"[bold cyan]{escape(label)}:[/] {escape(value)}")
    for warning in report.warnings:
        err_console.print(f"[bold yellow]Warning:[/] {escape(warning)}")


def _run(ctx: click.Context, command: Command) -> None:
    try:
        report = dispatch(command, ctx.obj)
    except (HelpethError, OSError) as exc:
        _cli_fail(exc)
    else:
        _render(ctx, report)


class HelpethGroup(click.Group):
    """Command group whose usage errors exit with status 1 like any other fatal error."""

    def main(self, args=None, prog_name=None, complete_var=None, standalone_mode=True, **extra):
        if not standalone_mode:
            return super().main(args, prog_name, complete_var, standalone_mode=False, **extra)
        try:
            super().main(args, prog_name, complete_var, standalone_mode=False, **extra)
        except click.ClickException as exc:
            _cli_fail(exc)
        except click.Abort:
            err_console.print("\n[yellow]Operation cancelled by user[/]")
            sys.exit(130)
        sys.exit(0)


# ============================================================================
# CLI Group
# ============================================================================

@click.group(cls=HelpethGroup)
@click.version_option(__version__, prog_name="helpeth")
@click.option('-p', '--private', 'private_key', help='Private key (hex or extended xprv)')
@click.option('-k', '--keyfile', type=click.Path(dir_okay=False, path_type=Path),
              help='Encrypted V3 keystore file')
@click.option('--mnemonic', help='BIP-39 mnemonic phrase')
@click.option('--password', envvar=ENV_PASSWORD, help='Keystore password')
@click.option('--password-prompt', is_flag=True, help='Ask for the keystore password')
@click.option('--show-private', is_flag=True, help='Include private keys in the output')
@click.option(
    '--hd-path',
    envvar=ENV_HD_PATH,
    help=f'Derivation path for --mnemonic (default {DEFAULT_HD_PATH}) or an extended --private key',
)
@click.option('--chain-id', type=click.IntRange(min=1), help='Sign with EIP-155 replay protection')
@click.option(
    '--output-dir',
    envvar=ENV_OUTPUT_DIR,
    type=click.Path(file_okay=False, path_type=Path),
    default=Path('.'),
    show_default=True,
    help='Directory receiving keystore files',
)
@click.option('--json-output', is_flag=True, help='Output raw JSON')
@click.option(
    '--log-level',
    envvar=ENV_LOG_LEVEL,
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    default=DEFAULT_LOG_LEVEL,
    show_default=True,
    help='Diagnostic log level (JSON lines on stderr)',
)
@click.option('--log-file', type=click.Path(dir_okay=False), help='Also write diagnostics to this file')
@click.pass_context
def cli(
    ctx: click.Context,
    private_key: Optional[str],
    keyfile: Optional[Path],
    mnemonic: Optional[str],
    password: Optional[str],
    password_prompt: bool,
    show_private: bool,
    hd_path: Optional[str],
    chain_id: Optional[int],
    output_dir: Path,
    json_output: bool,
    log_level: str,
    log_file: Optional[str],
):
    """
    helpeth - Ethereum keys, signatures and transactions

    Create, inspect, sign and verify account keys and legacy transactions
    entirely offline.
    """
    setup_logging(level=log_level, log_file=log_file)
    ctx.obj = CliConfig(
        private_key=private_key,
        keyfile=keyfile,
        mnemonic=mnemonic,
        password=password,
        password_prompt=password_prompt,
        show_private=show_private,
        hd_path=hd_path,
        chain_id=chain_id,
        output_dir=output_dir,
        json_output=json_output,
    )


# ============================================================================
# Signature Commands
# ============================================================================

@cli.command('signMessage')
@click.argument('message')
@click.pass_context
def sign_message(ctx: click.Context, message: str):
    """Sign a message with the personal-message prefix"""
    _run(ctx, SignMessage(message))


@cli.command('verifySig')
@click.argument('hash')
@click.argument('sig')
@click.pass_context
def verify_sig(ctx: click.Context, hash: str, sig: str):
    """Recover the signer of HASH from a 65-byte signature"""
    _run(ctx, VerifySig(hash, sig))


@cli.command('verifySigParams')
@click.argument('hash')
@click.argument('r')
@click.argument('s')
@click.argument('v')
@click.pass_context
def verify_sig_params(ctx: click.Context, hash: str, r: str, s: str, v: str):
    """Recover the signer of HASH from separate r, s and v values"""
    _run(ctx, VerifySigParams(hash, r, s, v))


# ============================================================================
# Transaction Commands
# ============================================================================

@cli.command('createTx')
@click.argument('nonce')
@click.argument('to')
@click.argument('value')
@click.argument('data')
@click.argument('gas_limit', metavar='GASLIMIT')
@click.argument('gas_price', metavar='GASPRICE')
@click.pass_context
def create_tx(ctx: click.Context, nonce: str, to: str, value: str, data: str, gas_limit: str, gas_price: str):
    """
    Build and sign a transaction

    Numbers accept decimal, 0x-hex or "<amount> <unit>" (e.g. "20 gwei").
    Pass an empty TO for contract creation.
    """
    _run(ctx, CreateTx(nonce, to, value, data, gas_limit, gas_price))


@cli.command('assembleTx')
@click.argument('nonce')
@click.argument('to')
@click.argument('value')
@click.argument('data')
@click.argument('gas_limit', metavar='GASLIMIT')
@click.argument('gas_price', metavar='GASPRICE')
@click.argument('v')
@click.argument('r')
@click.argument('s')
@click.pass_context
def assemble_tx(
    ctx: click.Context,
    nonce: str,
    to: str,
    value: str,
    data: str,
    gas_limit: str,
    gas_price: str,
    v: str,
    r: str,
    s: str,
):
    """Assemble a signed transaction from its fields and an existing signature"""
    _run(ctx, AssembleTx(nonce, to, value, data, gas_limit, gas_price, v, r, s))


@cli.command('parseTx')
@click.argument('tx')
@click.pass_context
def parse_tx(ctx: click.Context, tx: str):
    """Decode a serialized transaction and recover its signer"""
    _run(ctx, ParseTx(tx))


# ============================================================================
# Key Commands
# ============================================================================

@cli.command('keyGenerate')
@click.argument('key_format', metavar='[FORMAT]', type=click.Choice(['raw', 'json']), default='raw')
@click.argument('icap_direct', metavar='[ICAPDIRECT]', type=click.BOOL, default=False)
@click.option('--kdf', type=click.Choice(KDF_CHOICES), default=DEFAULT_KDF, show_default=True,
              help='Key derivation function for json keystores')
@click.option('--iterations', type=click.IntRange(min=1), help='KDF work factor override')
@click.pass_context
def key_generate(ctx: click.Context, key_format: str, icap_direct: bool, kdf: str, iterations: Optional[int]):
    """
    Generate a new key

    FORMAT is raw (print the key) or json (write an encrypted keystore).
    ICAPDIRECT=true keeps generating until the address has a direct ICAP form.
    """
    _run(ctx, KeyGenerate(key_format, icap_direct, kdf, iterations))


@cli.command('keyConvert')
@click.option('--kdf', type=click.Choice(KDF_CHOICES), default=DEFAULT_KDF, show_default=True,
              help='Key derivation function')
@click.option('--iterations', type=click.IntRange(min=1), help='KDF work factor override')
@click.pass_context
def key_convert(ctx: click.Context, kdf: str, iterations: Optional[int]):
    """Write the loaded key to an encrypted V3 keystore"""
    _run(ctx, KeyConvert(kdf, iterations))


@cli.command('keyDetails')
@click.pass_context
def key_details(ctx: click.Context):
    """Show the address and public key of the loaded key"""
    _run(ctx, KeyDetails())


@cli.command('bip32Details')
@click.argument('path')
@click.pass_context
def bip32_details(ctx: click.Context, path: str):
    """Derive PATH from a mnemonic or extended key and show the child"""
    _run(ctx, Bip32Details(path))


# ============================================================================
# Address and Unit Commands
# ============================================================================

@cli.command('addressDetails')
@click.argument('address')
@click.pass_context
def address_details(ctx: click.Context, address: str):
    """Show an address in hex, checksummed and ICAP forms"""
    _run(ctx, AddressDetails(address))


@cli.command('unitConvert')
@click.argument('value')
@click.argument('from_unit', metavar='FROM')
@click.argument('to_unit', metavar='TO')
@click.pass_context
def unit_convert(ctx: click.Context, value: str, from_unit: str, to_unit: str):
    """Convert VALUE between denominations (e.g. 1 eth gwei)"""
    _run(ctx, UnitConvert(value, from_unit, to_unit))


# ============================================================================
# Main Entry Point
# ============================================================================

def main():
    """Main CLI entry point"""
    try:
        cli()
    except KeyboardInterrupt:
        err_console.print("\n[yellow]Operation cancelled by user[/]")
        sys.exit(130)


if __name__ == '__main__':
    main()
