"""
Twilio Telephony Provider
Searches for, purchases and releases phone numbers using the Twilio API
"""

import asyncio
from typing import Optional, List, Any

from twilio.rest import Client
from twilio.base.exceptions import TwilioRestException

from agent_provisioning.core.config import settings
from agent_provisioning.core.logging import get_logger
from agent_provisioning.models.provisioning import PurchasedNumber, RegionPolicy
from agent_provisioning.services.base import TelephonyProvider
from agent_provisioning.utils.retry import retry_async_operation, RetryError

logger = get_logger(__name__)

# Twilio API error code for "resource not found"
TWILIO_NOT_FOUND = 20404

NUMBER_TYPES = ("local", "toll_free", "mobile")


def is_retryable(error: Exception) -> bool:
    """Rate limits, Twilio server errors and transport failures are retried"""
    if isinstance(error, TwilioRestException):
        status = error.status or 0
        return status == 429 or status >= 500
    return True


class TwilioService(TelephonyProvider):
    """Telephony provider backed by the Twilio REST API"""

    def __init__(
        self,
        account_sid: Optional[str] = None,
        auth_token: Optional[str] = None,
        webhook_url: Optional[str] = None,
        client: Optional[Client] = None
    ):
        self.account_sid = account_sid or settings.twilio_account_sid
        self.auth_token = auth_token or settings.twilio_auth_token
        self.webhook_url = webhook_url if webhook_url is not None else settings.twilio_webhook_url

        self.client = client or Client(self.account_sid, self.auth_token)

    async def search_numbers(self, policy: RegionPolicy) -> List[Any]:
        """
        Search available numbers matching the policy

        Searching has no side effect and is retried on transport errors,
        rate limiting and Twilio server errors. Other API errors (bad
        credentials, unknown country) are raised at once.

        Args:
            policy: Number search policy

        Returns:
            Candidate numbers in the order Twilio returned them
        """
        if policy.number_type not in NUMBER_TYPES:
            raise ValueError(f"Unsupported number type: {policy.number_type}")

        country = self.client.available_phone_numbers(policy.country_code)
        resource = getattr(country, policy.number_type)
        filters = policy.search_filters()

        logger.info(
            f"Searching {policy.number_type} numbers in {policy.country_code} with {filters}"
        )
        return await retry_async_operation(
            lambda: asyncio.to_thread(resource.list, **filters),
            exceptions=(TwilioRestException, OSError),
            operation_name="Twilio number search",
            retry_if=is_retryable
        )

    async def purchase_number(self, phone_number: str) -> PurchasedNumber:
        """
        Purchase a specific number and wire its callbacks

        Args:
            phone_number: Number to buy (E.164 format)

        Returns:
            The purchased number as reported by Twilio
        """
        create_params = {"phone_number": phone_number}
        if self.webhook_url:
            create_params["sms_url"] = self.webhook_url
            create_params["voice_url"] = self.webhook_url

        number = await asyncio.to_thread(
            self.client.incoming_phone_numbers.create,
            **create_params
        )

        logger.info(f"Purchased Twilio number: {number.phone_number} ({number.sid})")
        return PurchasedNumber(phone_number=number.phone_number, sid=number.sid)

    async def acquire_number(self, policy: RegionPolicy) -> Optional[PurchasedNumber]:
        """
        Search for and purchase a number matching the policy

        Candidates are tried in order until one purchase succeeds.

        Args:
            policy: Number search policy

        Returns:
            PurchasedNumber, or None if nothing could be bought
        """
        try:
            candidates = await self.search_numbers(policy)
        except RetryError as e:
            logger.error(f"Twilio number search failed: {e.last_exception}")
            return None
        except TwilioRestException as e:
            logger.error(f"Twilio API error: {e.code} - {e.msg}")
            return None

        if not candidates:
            logger.warning(f"No available numbers found in {policy.country_code}")
            return None

        for candidate in candidates:
            try:
                return await self.purchase_number(candidate.phone_number)
            except TwilioRestException as e:
                logger.warning(
                    f"Failed to purchase {candidate.phone_number}: {e.code} - {e.msg}"
                )
            except Exception as e:
                logger.warning(f"Failed to purchase {candidate.phone_number}: {str(e)}")

        logger.error(f"All {len(candidates)} candidate numbers failed to purchase")
        return None

    async def release_number(self, sid: str) -> bool:
        """
        Release a purchased number

        Args:
            sid: Twilio incoming phone number SID

        Returns:
            True if the number was released or no longer exists
        """
        logger.info(f"Releasing Twilio number: {sid}")

        async def _delete() -> bool:
            try:
                return await asyncio.to_thread(
                    self.client.incoming_phone_numbers(sid).delete
                )
            except TwilioRestException as e:
                if e.code == TWILIO_NOT_FOUND or e.status == 404:
                    logger.warning(f"Twilio number already released: {sid}")
                    return True
                raise

        try:
            released = await retry_async_operation(
                _delete,
                exceptions=(TwilioRestException, OSError),
                operation_name=f"release Twilio number {sid}",
                retry_if=is_retryable
            )
        except RetryError as e:
            logger.error(f"Failed to release Twilio number {sid}: {e.last_exception}")
            return False
        except TwilioRestException as e:
            logger.error(f"Failed to release Twilio number {sid}: {e.code} - {e.msg}")
            return False

        if released:
            logger.info(f"Released Twilio number: {sid}")
        return bool(released)
