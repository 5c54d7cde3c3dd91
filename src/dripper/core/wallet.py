"""Wallet provider abstraction for signing extrinsics."""

import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path

from pydantic import SecretStr
from substrateinterface import Keypair


class WalletProvider(ABC):
    """Abstract wallet provider for signing extrinsics."""

    @abstractmethod
    def get_keypair(self) -> Keypair:
        """Get the keypair used for signing.

        Returns
        -------
        Keypair
            The sr25519 keypair.
        """
        ...

    @property
    def address(self) -> str:
        """Get the wallet address.

        Returns
        -------
        str
            The SS58 encoded address.
        """
        return self.get_keypair().ss58_address


class MnemonicWallet(WalletProvider):
    """Derive a keypair from a mnemonic held in the environment or a file.

    Parameters
    ----------
    mnemonic : SecretStr, optional
        The mnemonic phrase (from env var).
    mnemonic_file : str, optional
        Path to a file containing the mnemonic phrase.
    ss58_format : int
        Address format of the target network.

    Raises
    ------
    ValueError
        If neither mnemonic nor mnemonic_file is provided.
    FileNotFoundError
        If mnemonic_file does not exist.
    """

    def __init__(
        self,
        mnemonic: SecretStr | None = None,
        mnemonic_file: str | None = None,
        ss58_format: int = 42,
    ):
        if mnemonic is not None:
            phrase = mnemonic.get_secret_value()
        elif mnemonic_file is not None:
            path = Path(mnemonic_file).expanduser()
            if not path.exists():
                raise FileNotFoundError(f"Mnemonic file not found: {mnemonic_file}")
            phrase = path.read_text().strip()
        else:
            raise ValueError("Either mnemonic or mnemonic_file must be provided")

        self._keypair = Keypair.create_from_mnemonic(phrase, ss58_format=ss58_format)

    def get_keypair(self) -> Keypair:
        return self._keypair


def load_wallet(
    mnemonic: SecretStr | None,
    mnemonic_file: str | None,
    ss58_format: int = 42,
) -> MnemonicWallet | None:
    """Build a wallet from whichever source is configured, or None."""
    if mnemonic is None and mnemonic_file is None:
        return None
    if mnemonic is not None:
        return MnemonicWallet(mnemonic=mnemonic, ss58_format=ss58_format)
    return MnemonicWallet(mnemonic_file=mnemonic_file, ss58_format=ss58_format)


def generate_mnemonic_file(output_path: str, ss58_format: int = 42) -> str:
    """Write a fresh mnemonic to ``output_path`` with 0600 permissions.

    The file is written to a temp file in the same directory and renamed
    into place.

    Returns
    -------
    str
        The SS58 address of the new account.
    """
    mnemonic = Keypair.generate_mnemonic()
    keypair = Keypair.create_from_mnemonic(mnemonic, ss58_format=ss58_format)

    key_path = Path(output_path)
    key_path.parent.mkdir(parents=True, exist_ok=True)

    fd, temp_path = tempfile.mkstemp(dir=key_path.parent, prefix=".dripper-mnemonic-")
    fd_closed = False
    try:
        os.fchmod(fd, 0o600)
        os.write(fd, mnemonic.encode())
        os.close(fd)
        fd_closed = True
        os.rename(temp_path, key_path)
    except Exception:
        if not fd_closed:
            os.close(fd)
        Path(temp_path).unlink(missing_ok=True)
        raise

    return keypair.ss58_address
