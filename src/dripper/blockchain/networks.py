"""Network configuration for Dripper.

Each supported network is a static record. The active one is selected by
name at startup; an unknown name is a fatal configuration error.
"""

from dataclasses import dataclass, field
from decimal import Decimal


class UnknownNetworkError(ValueError):
    """Raised when the configured network name has no entry in the table."""


@dataclass(frozen=True)
class ChainData:
    """A chain served by a network."""

    name: str
    id: int


@dataclass(frozen=True)
class NetworkData:
    """Static description of a faucet network.

    Attributes
    ----------
    network_name : str
        Human readable network name.
    currency : str
        Native token symbol.
    rpc_endpoint : str
        Default websocket RPC endpoint.
    decimals : int
        Number of decimals of the native token.
    drip_amount : str
        Default drip in whole units.
    balance_cap : int
        Maximum whole-unit balance an address may hold to receive a drip.
    explorer : str | None
        Optional block explorer URL for transaction links.
    chains : list[ChainData]
        Chains reachable through this network.
    ss58_format : int
        Address format used for keypairs.
    app_id : int | None
        App id signed into extrinsics on runtimes with the CheckAppId
        extension. None for runtimes without it.
    """

    network_name: str
    currency: str
    rpc_endpoint: str
    decimals: int
    drip_amount: str
    balance_cap: int
    explorer: str | None = None
    chains: list[ChainData] = field(default_factory=list)
    ss58_format: int = 42
    app_id: int | None = None

    @property
    def default_drip_amount(self) -> int:
        """Default drip in the smallest unit."""
        return parse_amount(self.drip_amount, self.decimals)

    def get_tx_url(self, tx_hash: str) -> str | None:
        """Get the block explorer URL for a transaction.

        Parameters
        ----------
        tx_hash : str
            The extrinsic hash.

        Returns
        -------
        str | None
            The block explorer URL, or None if no explorer configured.
        """
        if self.explorer:
            return f"{self.explorer.rstrip('/')}/#/extrinsics/{tx_hash}"
        return None

    def get_address_url(self, address: str) -> str | None:
        """Get the block explorer URL for an address.

        Parameters
        ----------
        address : str
            The SS58 address.

        Returns
        -------
        str | None
            The block explorer URL, or None if no explorer configured.
        """
        if self.explorer:
            return f"{self.explorer.rstrip('/')}/#/accounts/{address}"
        return None


avail = NetworkData(
    network_name="Avail-Testnet",
    currency="AVL",
    rpc_endpoint="wss://rpc-goldberg.sandbox.avail.tools",
    decimals=18,
    drip_amount="1",
    balance_cap=100,
    explorer="https://goldberg.avail.tools/",
    chains=[ChainData(name="Avail", id=-1)],
    app_id=0,
)

local = NetworkData(
    network_name="Local-Development",
    currency="UNIT",
    rpc_endpoint="ws://127.0.0.1:9944",
    decimals=12,
    drip_amount="10",
    balance_cap=100,
    chains=[ChainData(name="Development", id=-1)],
)

networks: dict[str, NetworkData] = {"avail": avail, "local": local}


def get_network_data(network_name: str) -> NetworkData:
    """Look up a network by its configuration name.

    Raises
    ------
    UnknownNetworkError
        If the name is not in the network table.
    """
    if network_name not in networks:
        raise UnknownNetworkError(
            f"Unknown NETWORK in env: {network_name}; "
            f"valid networks are: [{', '.join(networks)}]"
        )
    return networks[network_name]


def format_amount(amount: int, decimals: int) -> str:
    """Render a smallest-unit amount in whole units, e.g. ``1.5``."""
    value = Decimal(amount) / (Decimal(10) ** decimals)
    return format(value.normalize(), "f")


def parse_amount(amount: str | float | Decimal, decimals: int) -> int:
    """Convert a whole-unit amount to the smallest unit."""
    return int(Decimal(str(amount)) * (Decimal(10) ** decimals))
