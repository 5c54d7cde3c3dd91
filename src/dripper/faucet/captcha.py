"""reCAPTCHA verification for external drip requests."""

import asyncio
import logging

import aiohttp
from pydantic import SecretStr

logger = logging.getLogger(__name__)

RECAPTCHA_VERIFY_URL = "https://www.google.com/recaptcha/api/siteverify"


class Recaptcha:
    """Validates captcha tokens against the reCAPTCHA siteverify API.

    Parameters
    ----------
    secret : SecretStr | None
        Server-side reCAPTCHA secret. Every token is rejected when None.
    verify_url : str
        Verification endpoint.
    timeout_seconds : float
        Total timeout for the verification call.
    """

    def __init__(
        self,
        secret: SecretStr | None,
        verify_url: str = RECAPTCHA_VERIFY_URL,
        timeout_seconds: float = 10.0,
    ):
        self._secret = secret
        self._verify_url = verify_url
        self._timeout = aiohttp.ClientTimeout(total=timeout_seconds)

    async def validate(self, token: str) -> bool:
        """Check a captcha token.

        Parameters
        ----------
        token : str
            The token submitted by the client.

        Returns
        -------
        bool
            True only if the provider confirmed the token.
        """
        if self._secret is None:
            logger.error("Captcha secret is not configured, rejecting request")
            return False
        if not token:
            return False

        payload = {"secret": self._secret.get_secret_value(), "response": token}
        try:
            async with aiohttp.ClientSession(timeout=self._timeout) as session:
                async with session.post(self._verify_url, data=payload) as response:
                    body = await response.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            logger.error("Captcha verification failed", extra={"error": str(e)})
            return False

        success = bool(body.get("success")) if isinstance(body, dict) else False
        if not success:
            logger.info(
                "Captcha rejected",
                extra={"error_codes": body.get("error-codes") if isinstance(body, dict) else None},
            )
        return success
