"""
helpeth Configuration

The command line is parsed once into an immutable ``CliConfig`` that is
handed to every command handler. Environment variables only supply defaults
for options the operator did not pass explicitly.

SECURITY NOTICE:
- Prefer --password-prompt over --password / HELPETH_PASSWORD
- Private keys passed with --private end up in shell history
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple

from helpeth.core.constants import DEFAULT_HD_PATH
from helpeth.core.exceptions import ConfigurationError, ConflictingKeyError

logger = logging.getLogger(__name__)

ENV_PASSWORD = "HELPETH_PASSWORD"
ENV_LOG_LEVEL = "HELPETH_LOG_LEVEL"
ENV_HD_PATH = "HELPETH_HD_PATH"
ENV_OUTPUT_DIR = "HELPETH_OUTPUT_DIR"

DEFAULT_LOG_LEVEL = os.getenv(ENV_LOG_LEVEL, "WARNING").upper()


@dataclass(frozen=True)
class CliConfig:
    """Global options shared by all commands."""

    private_key: Optional[str] = None
    keyfile: Optional[Path] = None
    mnemonic: Optional[str] = None
    password: Optional[str] = None
    password_prompt: bool = False
    show_private: bool = False
    hd_path: Optional[str] = None
    chain_id: Optional[int] = None
    output_dir: Path = Path(".")
    json_output: bool = False

    @property
    def derivation_path(self) -> str:
        """The --hd-path value, or the first BIP-44 account path when unset."""
        return self.hd_path or DEFAULT_HD_PATH

    def key_sources(self) -> Tuple[str, ...]:
        """Names of the key sources the operator supplied."""
        sources = []
        if self.private_key:
            sources.append("private")
        if self.keyfile:
            sources.append("keyfile")
        if self.mnemonic:
            sources.append("mnemonic")
        return tuple(sources)

    def validate(self) -> "CliConfig":
        """
        Reject contradictory option combinations.

        Raises:
            ConflictingKeyError: If more than one key source is set
            ConfigurationError: If --hd-path is combined with a keystore
        """
        sources = self.key_sources()
        if len(sources) > 1:
            raise ConflictingKeyError(
                "Only one key source may be given, got: " + ", ".join(f"--{name}" for name in sources)
            )
        if self.hd_path and self.keyfile:
            raise ConfigurationError("--hd-path needs --mnemonic or an extended key, not a keystore")
        return self
