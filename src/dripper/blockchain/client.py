"""Substrate client wrapper for Dripper operations."""

import asyncio
import logging
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from typing import TypeVar

from substrateinterface import Keypair, SubstrateInterface

from .connection import ChainConnection

logger = logging.getLogger(__name__)

T = TypeVar("T")


@asynccontextmanager
async def rpc_watchdog(service: str, timeout: float) -> AsyncIterator[None]:
    """Log an error if the wrapped block runs longer than ``timeout`` seconds.

    The block is never cancelled; the watchdog only reports.
    """
    loop = asyncio.get_running_loop()
    handle = loop.call_later(
        timeout,
        lambda: logger.error(
            "Oops, %s took more than %ss to answer",
            service,
            timeout,
            extra={"service": service, "timeout_seconds": timeout},
        ),
    )
    try:
        yield
    finally:
        handle.cancel()


class SubstrateClient:
    """Async wrapper around substrate-interface for faucet operations.

    Every call waits for the shared connection before issuing its query or
    extrinsic, then runs the blocking SDK call in a worker thread.

    Parameters
    ----------
    connection : ChainConnection
        The shared chain connection.
    """

    def __init__(self, connection: ChainConnection):
        self._connection = connection
        # One websocket is shared, so SDK calls must not interleave
        self._lock = asyncio.Lock()

    @property
    def connection(self) -> ChainConnection:
        """The underlying shared connection."""
        return self._connection

    async def _run(self, fn: Callable[[SubstrateInterface], T]) -> T:
        substrate = await self._connection.get_connection()
        async with self._lock:
            return await asyncio.to_thread(fn, substrate)

    async def chain_name(self) -> str:
        """Get the chain name reported by the node.

        Returns
        -------
        str
            The chain name, e.g. ``Avail Goldberg Testnet``.
        """
        return await self._run(lambda substrate: str(substrate.chain))

    async def get_free_balance(self, address: str) -> int:
        """Get the free balance of an account.

        Parameters
        ----------
        address : str
            The SS58 address to query.

        Returns
        -------
        int
            Free balance in the smallest unit.
        """

        def query(substrate: SubstrateInterface) -> int:
            account = substrate.query("System", "Account", [address])
            return int(account.value["data"]["free"])

        return await self._run(query)

    async def get_next_nonce(self, address: str) -> int:
        """Get the next nonce of an account, including pool transactions.

        Parameters
        ----------
        address : str
            The SS58 address.

        Returns
        -------
        int
            The next usable nonce.
        """
        return await self._run(lambda substrate: int(substrate.get_account_nonce(address)))

    async def transfer(
        self,
        keypair: Keypair,
        dest: str,
        amount: int,
        nonce: int | None = None,
    ) -> str:
        """Sign and submit a keep-alive transfer.

        Parameters
        ----------
        keypair : Keypair
            The signing account.
        dest : str
            The recipient address.
        amount : int
            Amount in the smallest unit.
        nonce : int | None
            Explicit nonce. The node picks one when None.

        Returns
        -------
        str
            The extrinsic hash.
        """

        def submit(substrate: SubstrateInterface) -> str:
            call = substrate.compose_call(
                call_module="Balances",
                call_function="transfer_keep_alive",
                call_params={"dest": dest, "value": amount},
            )
            extrinsic = substrate.create_signed_extrinsic(call=call, keypair=keypair, nonce=nonce)
            receipt = substrate.submit_extrinsic(extrinsic, wait_for_inclusion=False)
            return receipt.extrinsic_hash

        tx_hash = await self._run(submit)
        logger.info(
            "Transfer submitted",
            extra={
                "tx_hash": tx_hash,
                "signer": keypair.ss58_address,
                "to": dest,
                "amount": str(amount),
                "nonce": nonce,
            },
        )
        return tx_hash

    async def batch_transfer(self, keypair: Keypair, dests: list[str], amount: int) -> str:
        """Sign and submit one ``Utility.batch`` of transfers.

        Parameters
        ----------
        keypair : Keypair
            The signing account.
        dests : list[str]
            Recipient addresses, each receiving ``amount``.
        amount : int
            Amount per recipient in the smallest unit.

        Returns
        -------
        str
            The extrinsic hash of the batch.
        """

        def submit(substrate: SubstrateInterface) -> str:
            calls = [
                substrate.compose_call(
                    call_module="Balances",
                    call_function="transfer_keep_alive",
                    call_params={"dest": dest, "value": amount},
                )
                for dest in dests
            ]
            batch = substrate.compose_call(
                call_module="Utility",
                call_function="batch",
                call_params={"calls": calls},
            )
            extrinsic = substrate.create_signed_extrinsic(call=batch, keypair=keypair)
            receipt = substrate.submit_extrinsic(extrinsic, wait_for_inclusion=False)
            return receipt.extrinsic_hash

        tx_hash = await self._run(submit)
        logger.info(
            "Batch transfer submitted",
            extra={
                "tx_hash": tx_hash,
                "signer": keypair.ss58_address,
                "recipients": len(dests),
                "amount": str(amount),
            },
        )
        return tx_hash
