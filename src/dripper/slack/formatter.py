"""Message formatter for Slack responses."""

from dripper.blockchain.networks import NetworkData, format_amount


def _section(text: str) -> dict:
    return {"type": "section", "text": {"type": "mrkdwn", "text": text}}


class MessageFormatter:
    """Formats drip responses for Slack using Block Kit.

    Parameters
    ----------
    network : NetworkData
        Active network, for currency, decimals and explorer links.
    """

    def __init__(self, network: NetworkData):
        self._network = network

    def _amount(self, amount: int) -> str:
        return f"{format_amount(amount, self._network.decimals)} {self._network.currency}"

    def format_drip_success(self, address: str, amount: int, tx_hash: str) -> dict:
        """Format a successful drip.

        Parameters
        ----------
        address : str
            Recipient address.
        amount : int
            Amount sent in the smallest unit.
        tx_hash : str
            The extrinsic hash.

        Returns
        -------
        dict
            Slack Block Kit message.
        """
        tx_text = f"`{tx_hash}`"
        tx_url = self._network.get_tx_url(tx_hash)
        if tx_url:
            tx_text = f"<{tx_url}|{tx_hash[:16]}...>"

        return {
            "response_type": "ephemeral",
            "blocks": [
                _section(f":white_check_mark: *Sent {self._amount(amount)}* to `{address}`"),
                {
                    "type": "context",
                    "elements": [{"type": "mrkdwn", "text": f"Transaction: {tx_text}"}],
                },
            ],
        }

    def format_drip_error(self, message: str) -> dict:
        """Format a refused or failed drip."""
        return {
            "response_type": "ephemeral",
            "blocks": [_section(f":x: *Drip failed*\n{message}")],
        }

    def format_balance(self, balance: str) -> dict:
        """Format the faucet balance (raw smallest-unit string)."""
        try:
            text = self._amount(int(balance))
        except ValueError:
            text = f"{balance} {self._network.currency}"
        return {
            "response_type": "ephemeral",
            "blocks": [_section(f":potable_water: *Faucet balance:* {text}")],
        }

    def format_help(self) -> dict:
        """Format the usage message."""
        drip = self._amount(self._network.default_drip_amount)
        return {
            "response_type": "ephemeral",
            "blocks": [
                _section(f"*{self._network.network_name} faucet*"),
                _section(
                    f"`/drip <address> [parachain_id]` - Receive {drip}, once per day\n"
                    "`/drip balance` - Show the faucet balance\n"
                    "`/drip help` - Show this message"
                ),
            ],
        }

    def format_error(self, message: str) -> dict:
        """Format a usage error."""
        return {
            "response_type": "ephemeral",
            "blocks": [_section(f":warning: {message}")],
        }
