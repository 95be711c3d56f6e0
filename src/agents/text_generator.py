import asyncio
import threading
from typing import Any, Optional, Protocol

from azure.ai.agents.models import ListSortOrder, MessageRole
from azure.ai.projects import AIProjectClient
from azure.core.exceptions import HttpResponseError, ServiceRequestError
from azure.identity import DefaultAzureCredential

from src.shared.config import AppConfig
from src.shared.logging_utils import info as log_info, warning as log_warning
from src.shared.retry_utils import retry_with_backoff
from src.specs.common.errors import ConfigurationError, EnrichmentError

_BASE_INSTRUCTIONS = (
    "You are the SEO writer for SmartPortfolio. "
    "You rewrite portfolio project texts for organic search and always answer with a single JSON object."
)


class TextGenerator(Protocol):
    """A request/response text completion service."""

    async def complete(self, system_prompt: str, user_prompt: str) -> str:
        ...


class FoundryTextGenerator:
    """Text completion through an Azure AI Foundry agent.

    The agent is looked up by name and created on first use. Each completion
    runs on its own thread, which is deleted afterwards.
    """

    def __init__(
        self,
        *,
        endpoint: Optional[str],
        model: Optional[str],
        agent_name: str,
        client: Optional[Any] = None,
        disable_managed_identity: bool = False,
        run_trace_id: Optional[str] = None,
    ) -> None:
        if client is None:
            if not endpoint:
                raise ConfigurationError("PROJECT_ENDPOINT is required for AIProjectClient")
            cred = DefaultAzureCredential(exclude_managed_identity_credential=disable_managed_identity)
            client = AIProjectClient(endpoint=endpoint, credential=cred)
        self._client = client
        self.model = model
        self.agent_name = agent_name
        self._agent_id: Optional[str] = None
        self._agent_lock = threading.Lock()
        self._run_trace_id = run_trace_id

    @classmethod
    def from_config(cls, config: AppConfig, run_trace_id: Optional[str] = None) -> Optional["FoundryTextGenerator"]:
        """None when the AI project is not configured; callers then use local heuristics."""
        if not config.ai_configured:
            return None
        return cls(
            endpoint=config.projectEndpoint,
            model=config.modelDeploymentName,
            agent_name=config.seoAgentName,
            disable_managed_identity=config.disableManagedIdentity,
            run_trace_id=run_trace_id,
        )

    def _ensure_agent(self) -> str:
        if self._agent_id:
            return self._agent_id
        # Completions of one batch run on parallel worker threads
        with self._agent_lock:
            if self._agent_id:
                return self._agent_id
            for agent in self._client.agents.list_agents():
                if getattr(agent, "name", None) == self.agent_name:
                    self._agent_id = agent.id
                    return agent.id
            if not self.model:
                raise ConfigurationError(f"MODEL_DEPLOYMENT_NAME not set; cannot create agent '{self.agent_name}'")
            created = self._client.agents.create_agent(
                model=self.model,
                name=self.agent_name,
                instructions=_BASE_INSTRUCTIONS,
            )
            log_info(self._run_trace_id, "foundry:agent_created", agentName=self.agent_name, agentId=created.id)
            self._agent_id = created.id
            return created.id

    def _last_agent_text(self, thread_id: str) -> str:
        messages = self._client.agents.messages.list(thread_id=thread_id, order=ListSortOrder.DESCENDING)
        for msg in messages:
            if msg.role == MessageRole.AGENT and msg.text_messages:
                return msg.text_messages[-1].text.value
        return ""

    def _complete_sync(self, system_prompt: str, user_prompt: str) -> str:
        agent_id = retry_with_backoff(
            self._ensure_agent,
            attempts=3,
            exceptions=(HttpResponseError, ServiceRequestError),
            run_trace_id=self._run_trace_id,
        )
        thread = self._client.agents.threads.create()
        try:
            self._client.agents.messages.create(thread_id=thread.id, role=MessageRole.USER, content=user_prompt)
            run = self._client.agents.runs.create_and_process(
                thread_id=thread.id,
                agent_id=agent_id,
                additional_instructions=system_prompt,
            )
            if str(getattr(run, "status", "")).lower().endswith("failed"):
                raise EnrichmentError(f"Agent run failed: {getattr(run, 'last_error', None)}")
            text = self._last_agent_text(thread.id)
            if not text:
                raise EnrichmentError("Agent returned no text")
            return text
        finally:
            try:
                self._client.agents.threads.delete(thread.id)
            except Exception as exc:
                log_warning(self._run_trace_id, "foundry:thread_delete_failed", threadId=thread.id, error=str(exc))

    async def complete(self, system_prompt: str, user_prompt: str) -> str:
        return await asyncio.to_thread(self._complete_sync, system_prompt, user_prompt)


__all__ = ["TextGenerator", "FoundryTextGenerator"]
