"""Core Dripper components."""

from .wallet import MnemonicWallet, WalletProvider, generate_mnemonic_file, load_wallet

__all__ = [
    "MnemonicWallet",
    "WalletProvider",
    "generate_mnemonic_file",
    "load_wallet",
]
