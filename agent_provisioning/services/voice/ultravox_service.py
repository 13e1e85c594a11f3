"""
Ultravox Agent Provider
Creates and deletes agent configurations using the Ultravox agents API
"""

import time
from datetime import datetime
from typing import Optional, Dict, Any

import httpx

from agent_provisioning.core.config import settings
from agent_provisioning.core.logging import get_logger
from agent_provisioning.models.agent import AgentConfig, get_agent_template
from agent_provisioning.services.base import AgentProvider
from agent_provisioning.utils.retry import retry_async_operation, RetryError

logger = get_logger(__name__)


def is_retryable(error: Exception) -> bool:
    """Transport failures, rate limits and server errors are retried"""
    if isinstance(error, httpx.HTTPStatusError):
        status = error.response.status_code
        return status == 429 or status >= 500
    return True


class UltravoxService(AgentProvider):
    """Agent provider backed by the Ultravox agents API"""

    def __init__(
        self,
        api_key: Optional[str] = None,
        agents_endpoint: Optional[str] = None,
        timeout: Optional[float] = None
    ):
        self.api_key = api_key or settings.ultravox_api_key
        self.agents_endpoint = (agents_endpoint or settings.ultravox_agents_endpoint).rstrip("/")
        self.timeout = timeout or settings.ultravox_http_timeout

        self.headers = {
            "X-API-Key": self.api_key,
            "Content-Type": "application/json"
        }

    def _debug_log(self, message: str, start_time: Optional[float] = None) -> float:
        """Debug logging with timestamps and elapsed time"""
        current_time = time.time()
        timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S.%f")[:-3]
        if start_time:
            elapsed = current_time - start_time
            logger.debug(f"[{timestamp}] [{elapsed:.3f}s elapsed] {message}")
        else:
            logger.debug(f"[{timestamp}] {message}")
        return current_time

    def build_payload(self, company_name: str, agent_type: str) -> Dict[str, Any]:
        """Build the agent creation payload from the agent-type template"""
        template = get_agent_template(agent_type)
        if template is None:
            raise ValueError(f"No agent template for agent type: {agent_type}")

        return {
            "name": company_name,
            "role": template.role,
            "persona": template.persona,
            "voice": template.voice,
            "prompt": template.render_prompt(company_name),
            "contextAware": template.context_aware
        }

    async def allocate_agent(self, company_name: str, agent_type: str) -> Optional[AgentConfig]:
        """
        Create an agent configuration for a company

        Creation is not idempotent and is attempted exactly once.

        Args:
            company_name: Display name embedded in the agent prompt
            agent_type: Agent type selecting the behavioural template

        Returns:
            AgentConfig, or None on a non-2xx response or transport error
        """
        logger.info(f"Creating Ultravox agent for {company_name}")
        payload = self.build_payload(company_name, agent_type)
        start_time = self._debug_log("Starting Ultravox agent creation")

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    self.agents_endpoint,
                    headers=self.headers,
                    json=payload
                )
                response.raise_for_status()
                result = response.json()

        except httpx.HTTPStatusError as e:
            self._debug_log(f"HTTP Error: {e.response.status_code}", start_time)
            logger.error(f"Ultravox API error: {e.response.status_code} - {e.response.text}")
            return None
        except httpx.RequestError as e:
            self._debug_log(f"Request Error: {type(e).__name__}", start_time)
            logger.error(f"Ultravox request failed: {e}")
            return None
        except ValueError as e:
            logger.error(f"Ultravox returned an invalid response body: {e}")
            return None

        if not isinstance(result, dict):
            logger.error("Ultravox returned an unexpected response body")
            return None

        self._debug_log("Ultravox agent creation successful", start_time)
        provider_agent_id = result.get("agentId") or result.get("id")
        logger.info(f"Ultravox agent created: {provider_agent_id or 'unknown'}")

        return AgentConfig(
            provider_agent_id=provider_agent_id,
            name=result.get("name", payload["name"]),
            role=payload["role"],
            persona=payload["persona"],
            voice=payload["voice"],
            prompt=payload["prompt"],
            context_aware=payload["contextAware"],
            raw_response=result
        )

    async def release_agent(self, provider_agent_id: str) -> bool:
        """
        Delete an Ultravox agent

        Args:
            provider_agent_id: Ultravox agent ID

        Returns:
            True if the agent was deleted or no longer exists
        """
        logger.info(f"Deleting Ultravox agent: {provider_agent_id}")
        url = f"{self.agents_endpoint}/{provider_agent_id}"

        async def _delete() -> bool:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.delete(url, headers=self.headers)
                if response.status_code == 404:
                    logger.warning(f"Ultravox agent already gone: {provider_agent_id}")
                    return True
                response.raise_for_status()
                return True

        try:
            return await retry_async_operation(
                _delete,
                exceptions=(httpx.HTTPError,),
                operation_name=f"delete Ultravox agent {provider_agent_id}",
                retry_if=is_retryable
            )
        except RetryError as e:
            logger.error(f"Failed to delete Ultravox agent {provider_agent_id}: {e.last_exception}")
            return False
        except httpx.HTTPStatusError as e:
            logger.error(
                f"Failed to delete Ultravox agent {provider_agent_id}: "
                f"{e.response.status_code} - {e.response.text}"
            )
            return False
